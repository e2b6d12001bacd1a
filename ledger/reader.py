"""Readers for exported posts and viewer avatars, with boundary validation."""

import csv
import io
import json
import logging
import re
from pathlib import Path

from ledger import AvatarConfig, Post
from ledger.avatar import validate_avatar
from ledger.matching import is_valid_for_matching
from ledger.sighting_time import parse_date

log = logging.getLogger(__name__)

# Matches any sequence of whitespace (including Unicode whitespace like U+2006)
_WHITESPACE_RE = re.compile(r'\s+')

REQUIRED_POST_COLUMNS = {'id', 'created_at', 'target_avatar', 'sighting_date', 'time_granularity'}

TIME_GRANULARITIES = {'specific', 'morning', 'afternoon', 'evening'}


def detect_encoding(path: Path) -> str:
    """Detect file encoding by checking for BOM bytes.

    Args:
        path: Path to the export file.

    Returns:
        Encoding string suitable for open().
    """
    with open(path, 'rb') as f:
        bom = f.read(2)
    if bom == b'\xff\xfe':
        return 'utf-16-le'
    return 'utf-8-sig'


def normalize_whitespace(value: str) -> str:
    """Collapse any whitespace run into a single space and strip the ends."""
    return _WHITESPACE_RE.sub(' ', value).strip()


def _read_text(path: Path) -> str:
    with open(path, 'r', encoding=detect_encoding(path)) as f:
        content = f.read()
    return content.lstrip('\ufeff')


def parse_avatar(data: object, source: str = '') -> AvatarConfig:
    """Build an avatar from a decoded camelCase record.

    Raises:
        ValueError: If the record is not an object, carries values outside
            the option sets, or lacks a primary attribute.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Avatar {source} is not a JSON object")
    avatar = AvatarConfig.from_dict(data)
    issues = validate_avatar(avatar)
    if issues:
        raise ValueError(f"Invalid avatar {source}: {', '.join(issues)}")
    if not is_valid_for_matching(avatar):
        raise ValueError(f"Avatar {source} is missing primary attributes")
    return avatar


def read_avatar(path: str | Path) -> AvatarConfig:
    """Read a viewer avatar from a JSON file.

    Args:
        path: Path to a JSON object with camelCase keys (skinColor, ...).

    Returns:
        The avatar.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the JSON is malformed or the avatar is invalid.
    """
    path = Path(path)
    try:
        data = json.loads(_read_text(path))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Malformed JSON in {path}: {exc}") from exc
    avatar = parse_avatar(data, str(path))
    log.info("Avatar read from %s", path)
    return avatar


def _parse_post(row: dict[str, str], source: str) -> Post:
    created_at = parse_date(row['created_at'])
    if created_at is None:
        raise ValueError(f"invalid created_at {row['created_at']!r}")

    sighting_date = None
    if row.get('sighting_date'):
        sighting_date = parse_date(row['sighting_date'])
        if sighting_date is None:
            raise ValueError(f"invalid sighting_date {row['sighting_date']!r}")

    granularity = row.get('time_granularity') or None
    if granularity is not None and granularity not in TIME_GRANULARITIES:
        raise ValueError(f"invalid time_granularity {granularity!r}")

    target_avatar = None
    if row.get('target_avatar'):
        target_avatar = parse_avatar(json.loads(row['target_avatar']), source)

    return Post(
        id=row['id'],
        created_at=created_at,
        target_avatar=target_avatar,
        sighting_date=sighting_date,
        time_granularity=granularity,
        location_id=row.get('location_id', ''),
        note=row.get('note', ''),
    )


def read_posts(path: str | Path) -> list[Post]:
    """Read posts from a CSV export of the posts table.

    Handles UTF-16LE (with BOM) and UTF-8 files, tab or comma delimited.
    The target_avatar column holds the avatar as JSON text. Rows that
    cannot be parsed are skipped with a warning.

    Args:
        path: Path to the CSV file.

    Returns:
        List of Post objects.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If required columns are missing.
    """
    path = Path(path)
    content = _read_text(path)

    header = content.split('\n', 1)[0]
    delimiter = '\t' if '\t' in header else ','
    reader = csv.DictReader(io.StringIO(content), delimiter=delimiter)

    if reader.fieldnames is None:
        raise ValueError(f"File {path} is empty or has no header row")
    actual_cols = {normalize_whitespace(c) for c in reader.fieldnames}
    missing = REQUIRED_POST_COLUMNS - actual_cols
    if missing:
        raise ValueError(
            f"Missing columns in {path}: {', '.join(sorted(missing))}"
        )

    posts: list[Post] = []
    for row_num, row in enumerate(reader, start=2):
        cleaned = {normalize_whitespace(k): normalize_whitespace(v or '')
                   for k, v in row.items() if k is not None}
        try:
            posts.append(_parse_post(cleaned, f"{path}:{row_num}"))
        except (ValueError, KeyError) as exc:
            log.warning("Row %d in %s skipped: %s", row_num, path, exc)

    log.info("%d posts read from %s", len(posts), path)
    return posts
