"""Sighting time formatting, validation and filter cutoffs.

Sighting times come with a granularity: either an exact clock time
('specific') or an approximate period of the day:

- morning: 6:00 - 11:59
- afternoon: 12:00 - 17:59
- evening: 18:00 - 23:59 (hours 0-5 also count as the previous evening)

Every function that depends on "now" takes a ``reference_date``; it only
falls back to the wall clock (in the local timezone) when that is
omitted. Day differences are computed on calendar dates in the
reference's timezone. Naive datetimes are read as local time.
"""

from datetime import date as date_type, datetime, timedelta, timezone
from typing import Any, Optional

from ledger import DateValidationResult, TimeFilterOption, TimeGranularity, TimeRange

DEPRIORITIZE_AFTER_DAYS = 30

# Up to this many days back a weekday name is shown instead of a date
WEEKDAY_THRESHOLD = 7

# Allowed clock skew for sighting dates slightly in the future
FUTURE_TOLERANCE = timedelta(minutes=1)

DAY_NAMES = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')

MONTH_NAMES_SHORT = (
    'Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
    'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec',
)

TIME_GRANULARITY_RANGES: dict[str, TimeRange] = {
    'morning': TimeRange(start_hour=6, end_hour=12, label='morning'),
    'afternoon': TimeRange(start_hour=12, end_hour=18, label='afternoon'),
    'evening': TimeRange(start_hour=18, end_hour=24, label='evening'),
}

DATE_TIME_ERRORS: dict[str, str] = {
    'FUTURE_DATE': 'Sighting date cannot be in the future.',
    'INVALID_DATE': 'Invalid date provided.',
}

TIME_FILTER_OPTIONS: tuple[TimeFilterOption, ...] = ('last_24h', 'last_week', 'last_month', 'any_time')

TIME_FILTER_LABELS: dict[str, str] = {
    'last_24h': 'Last 24h',
    'last_week': 'Last Week',
    'last_month': 'Last Month',
    'any_time': 'Any Time',
}

_FILTER_WINDOWS: dict[str, timedelta] = {
    'last_24h': timedelta(hours=24),
    'last_week': timedelta(days=7),
    'last_month': timedelta(days=30),
}


def resolve_reference_date(reference_date: Optional[datetime]) -> datetime:
    """Return reference_date, or the current time in the local timezone when it is None."""
    if reference_date is None:
        return datetime.now().astimezone()
    return reference_date


def _align(value: datetime, reference: datetime) -> datetime:
    """Give value the timezone of reference; naive values are taken as local time."""
    if value.tzinfo is None and reference.tzinfo is None:
        return value
    return value.astimezone(reference.tzinfo)


def _local_date(value: datetime, reference: datetime) -> date_type:
    return _align(value, reference).date()


def get_days_difference(value: datetime, reference_date: datetime) -> int:
    """Whole calendar days from value to reference_date (positive = past)."""
    return (reference_date.date() - _local_date(value, reference_date)).days


def format_time_of_day(value: datetime, use_12_hour_format: bool = True) -> str:
    """Format as "3:05 PM" or, in 24-hour mode, "15:05"."""
    if use_12_hour_format:
        period = 'PM' if value.hour >= 12 else 'AM'
        hour = value.hour % 12 or 12
        return f'{hour}:{value.minute:02d} {period}'
    return f'{value.hour:02d}:{value.minute:02d}'


def format_short_date(value: datetime) -> str:
    """Format as "Dec 24"."""
    return f'{MONTH_NAMES_SHORT[value.month - 1]} {value.day}'


def format_compact_date(value: datetime) -> str:
    """Format as "Dec 24, 2024"."""
    return f'{format_short_date(value)}, {value.year}'


def format_relative_day(
    value: datetime,
    reference_date: Optional[datetime] = None,
    include_day_of_week: bool = True,
) -> str:
    """Describe the day of value relative to the reference date.

    Args:
        value: The date to describe.
        reference_date: Current time (defaults to now).
        include_day_of_week: Use weekday names for 2-6 days ago; when
            False those days are shown as dates too.

    Returns:
        "Today", "Yesterday", a weekday name ("Tuesday") within the past
        week, or a short date ("Dec 24") for older and future dates.
    """
    reference_date = resolve_reference_date(reference_date)
    value = _align(value, reference_date)
    days = get_days_difference(value, reference_date)

    if days == 0:
        return 'Today'
    if days == 1:
        return 'Yesterday'
    if include_day_of_week and 1 < days < WEEKDAY_THRESHOLD:
        return DAY_NAMES[value.weekday()]
    return format_short_date(value)


def format_sighting_time(
    value: datetime,
    granularity: Optional[TimeGranularity],
    reference_date: Optional[datetime] = None,
    include_day_of_week: bool = True,
    use_12_hour_format: bool = True,
) -> str:
    """Format a sighting time for display.

    Examples: "Yesterday at 3:15 PM" (specific), "Tuesday evening"
    (approximate). Without a granularity only the day is shown.

    Args:
        value: The sighting date/time.
        granularity: 'specific', 'morning', 'afternoon', 'evening' or None.
        reference_date: Current time (defaults to now).
        include_day_of_week: See format_relative_day.
        use_12_hour_format: 12-hour clock with AM/PM instead of 24-hour.

    Returns:
        Display string.
    """
    reference_date = resolve_reference_date(reference_date)
    value = _align(value, reference_date)
    day_label = format_relative_day(value, reference_date, include_day_of_week)

    if granularity is None:
        return day_label
    if granularity == 'specific':
        return f'{day_label} at {format_time_of_day(value, use_12_hour_format)}'
    return f'{day_label} {granularity}'


def get_granularity_for_hour(hour: int) -> str:
    """Map an hour (0-23) to morning, afternoon or evening.

    Late night (0-5) belongs to the previous evening.
    """
    if 6 <= hour < 12:
        return 'morning'
    if 12 <= hour < 18:
        return 'afternoon'
    return 'evening'


def get_time_range_for_granularity(granularity: str) -> TimeRange:
    """Hour range of an approximate granularity.

    Raises:
        KeyError: For 'specific' or an unknown granularity.
    """
    return TIME_GRANULARITY_RANGES[granularity]


def create_date_with_granularity(value: datetime, granularity: str) -> datetime:
    """Set the time of value to the middle of the period (9:00, 15:00 or 21:00)."""
    time_range = get_time_range_for_granularity(granularity)
    mid_hour = (time_range.start_hour + time_range.end_hour) // 2
    return value.replace(hour=mid_hour, minute=0, second=0, microsecond=0)


def parse_date(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 string, epoch milliseconds or datetime.

    Returns:
        A datetime, or None for empty or unparseable input.
    """
    if value is None or value == '' or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def validate_sighting_date(
    value: Any,
    reference_date: Optional[datetime] = None,
) -> DateValidationResult:
    """Check that a sighting date is a real date and not in the future.

    A tolerance of one minute allows for clock differences.

    Args:
        value: The date to check (anything other than a datetime is invalid).
        reference_date: Current time (defaults to now).

    Returns:
        DateValidationResult with error INVALID_DATE or FUTURE_DATE.
    """
    if not isinstance(value, datetime):
        return DateValidationResult(valid=False, error='INVALID_DATE')

    reference_date = resolve_reference_date(reference_date)
    if reference_date.tzinfo is None and value.tzinfo is not None:
        reference_date = reference_date.astimezone()

    if _align(value, reference_date) > reference_date + FUTURE_TOLERANCE:
        return DateValidationResult(valid=False, error='FUTURE_DATE')
    return DateValidationResult(valid=True)


def is_older_than_30_days(value: datetime, reference_date: Optional[datetime] = None) -> bool:
    """True if value lies more than 30 whole days before the reference day."""
    reference_date = resolve_reference_date(reference_date)
    return get_days_difference(value, reference_date) > DEPRIORITIZE_AFTER_DAYS


def is_today(value: datetime, reference_date: Optional[datetime] = None) -> bool:
    """True if value falls on the reference day."""
    return get_days_difference(value, resolve_reference_date(reference_date)) == 0


def is_yesterday(value: datetime, reference_date: Optional[datetime] = None) -> bool:
    """True if value falls on the day before the reference day."""
    return get_days_difference(value, resolve_reference_date(reference_date)) == 1


def is_within_past_week(value: datetime, reference_date: Optional[datetime] = None) -> bool:
    """True for the reference day and the six days before it."""
    days = get_days_difference(value, resolve_reference_date(reference_date))
    return 0 <= days < WEEKDAY_THRESHOLD


def get_relative_date(days_ago: int, reference_date: Optional[datetime] = None) -> datetime:
    """Midnight of the day days_ago days before the reference day."""
    reference_date = resolve_reference_date(reference_date)
    start_of_day = reference_date.replace(hour=0, minute=0, second=0, microsecond=0)
    return start_of_day - timedelta(days=days_ago)


def get_filter_cutoff_date(
    filter_option: TimeFilterOption,
    reference_date: Optional[datetime] = None,
) -> Optional[datetime]:
    """Earliest time included by a time filter; None for 'any_time'.

    Raises:
        ValueError: If filter_option is not a known filter.
    """
    if filter_option == 'any_time':
        return None
    window = _FILTER_WINDOWS.get(filter_option)
    if window is None:
        raise ValueError(f"Unknown time filter: {filter_option!r}")
    return resolve_reference_date(reference_date) - window
