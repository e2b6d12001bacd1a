"""Post ordering with 30-day deprioritization.

Posts whose sighting happened more than 30 days ago are pushed down the
list but never hidden. The priority mirrors the SQL ordering used by the
app's posts query::

    CASE
      WHEN sighting_date IS NULL THEN created_at
      WHEN sighting_date >= now() - interval '30 days' THEN sighting_date
      ELSE created_at - interval '60 days'
    END
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from ledger import Post, TimeFilterOption
from ledger.sighting_time import (
    DEPRIORITIZE_AFTER_DAYS,
    format_sighting_time,
    get_filter_cutoff_date,
    is_older_than_30_days,
    resolve_reference_date,
)

STALE_SIGHTING_PENALTY = timedelta(days=60)


def _to_ms(value: datetime) -> int:
    return round(value.timestamp() * 1000)


def _to_ms_delta(delta: timedelta) -> int:
    return int(delta.total_seconds() * 1000)


def get_post_sort_priority(post: Post, reference_date: Optional[datetime] = None) -> int:
    """Calculate the sort key of a post (ms timestamp, higher = shown earlier).

    Args:
        post: Post with created_at and an optional sighting_date.
        reference_date: Current time (defaults to now).

    Returns:
        created_at without a sighting date, the sighting date when it is
        within 30 days, otherwise created_at minus a 60-day penalty.
    """
    created_at = _to_ms(post.created_at)
    if post.sighting_date is None:
        return created_at

    reference_date = resolve_reference_date(reference_date)
    window_start = _to_ms(reference_date) - _to_ms_delta(timedelta(days=DEPRIORITIZE_AFTER_DAYS))
    sighting = _to_ms(post.sighting_date)

    if sighting >= window_start:
        return sighting
    return created_at - _to_ms_delta(STALE_SIGHTING_PENALTY)


def sort_posts_with_deprioritization(
    posts: Iterable[Post],
    ascending: bool = False,
    reference_date: Optional[datetime] = None,
) -> list[Post]:
    """Return a new list of posts ordered by sort priority.

    The input is not modified. Posts with equal priority keep their
    relative order.

    Args:
        posts: Posts to order.
        ascending: Oldest first instead of newest first.
        reference_date: Current time (defaults to now).

    Returns:
        Sorted copy of posts.
    """
    reference_date = resolve_reference_date(reference_date)
    return sorted(
        posts,
        key=lambda post: get_post_sort_priority(post, reference_date),
        reverse=not ascending,
    )


def is_post_deprioritized(post: Post, reference_date: Optional[datetime] = None) -> bool:
    """True for posts whose sighting is more than 30 days old.

    Posts without a sighting date are never deprioritized.
    """
    if post.sighting_date is None:
        return False
    return is_older_than_30_days(post.sighting_date, reference_date)


def has_displayable_sighting_time(post: Post) -> bool:
    """A sighting time is shown only when both date and granularity are set."""
    return post.sighting_date is not None and post.time_granularity is not None


def format_post_sighting_time(post: Post, reference_date: Optional[datetime] = None) -> Optional[str]:
    """Display label of the post's sighting time, or None when it is not displayable."""
    if not has_displayable_sighting_time(post):
        return None
    return format_sighting_time(post.sighting_date, post.time_granularity, reference_date)


def filter_posts_by_time(
    posts: Iterable[Post],
    filter_option: TimeFilterOption,
    reference_date: Optional[datetime] = None,
) -> list[Post]:
    """Keep posts seen (or, without a sighting date, created) after the cutoff.

    'any_time' keeps every post, including those without a sighting date.
    """
    cutoff = get_filter_cutoff_date(filter_option, reference_date)
    if cutoff is None:
        return list(posts)
    return [
        post for post in posts
        if _to_ms(post.sighting_date or post.created_at) >= _to_ms(cutoff)
    ]
