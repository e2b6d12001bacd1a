"""Shared test fixtures."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from ledger.reader import read_avatar, read_posts


DATA_DIR = Path(__file__).resolve().parent.parent / 'data'


@pytest.fixture(scope='session')
def data_dir() -> Path:
    """Path to the data directory."""
    return DATA_DIR


@pytest.fixture(scope='session')
def viewer_avatar():
    """Viewer avatar from viewer_avatar.json."""
    return read_avatar(DATA_DIR / 'viewer_avatar.json')


@pytest.fixture(scope='session')
def sample_posts():
    """All valid posts from sample_posts.csv."""
    return read_posts(DATA_DIR / 'sample_posts.csv')


@pytest.fixture
def reference_date() -> datetime:
    """Fixed 'now' matching the sample data (a Friday)."""
    return datetime(2024, 12, 27, 15, 0, tzinfo=timezone.utc)
