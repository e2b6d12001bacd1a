"""Tests for ledger.sighting_time module."""

import time
from datetime import datetime, timedelta, timezone

import pytest

from ledger.sighting_time import (
    TIME_FILTER_LABELS,
    TIME_FILTER_OPTIONS,
    create_date_with_granularity,
    format_compact_date,
    format_relative_day,
    format_sighting_time,
    format_time_of_day,
    get_days_difference,
    get_filter_cutoff_date,
    get_granularity_for_hour,
    get_relative_date,
    get_time_range_for_granularity,
    is_older_than_30_days,
    is_today,
    is_within_past_week,
    is_yesterday,
    parse_date,
    validate_sighting_date,
)

UTC = timezone.utc
# Friday
NOW = datetime(2024, 12, 27, 15, 0, tzinfo=UTC)


def _days_ago(days: int, hour: int = 12, minute: int = 0) -> datetime:
    return (NOW - timedelta(days=days)).replace(hour=hour, minute=minute)


class TestFormatTimeOfDay:
    """Tests for clock formatting."""

    @pytest.mark.parametrize('hour, minute, expected', [
        (0, 0, '12:00 AM'),
        (9, 5, '9:05 AM'),
        (12, 0, '12:00 PM'),
        (15, 15, '3:15 PM'),
        (23, 59, '11:59 PM'),
    ])
    def test_12_hour(self, hour, minute, expected):
        assert format_time_of_day(NOW.replace(hour=hour, minute=minute)) == expected

    def test_24_hour(self):
        assert format_time_of_day(NOW.replace(hour=9, minute=5), use_12_hour_format=False) == '09:05'

    def test_compact_date(self):
        assert format_compact_date(NOW) == 'Dec 27, 2024'


class TestFormatRelativeDay:
    """Tests for day labels."""

    def test_today(self):
        assert format_relative_day(_days_ago(0, hour=1), NOW) == 'Today'

    def test_yesterday(self):
        assert format_relative_day(_days_ago(1, hour=23), NOW) == 'Yesterday'

    def test_weekday_names(self):
        assert format_relative_day(_days_ago(2), NOW) == 'Wednesday'
        assert format_relative_day(_days_ago(3), NOW) == 'Tuesday'
        assert format_relative_day(_days_ago(6), NOW) == 'Saturday'

    def test_older_than_a_week(self):
        assert format_relative_day(_days_ago(7), NOW) == 'Dec 20'
        assert format_relative_day(datetime(2024, 11, 12, 21, tzinfo=UTC), NOW) == 'Nov 12'

    def test_future_date(self):
        assert format_relative_day(NOW + timedelta(days=2), NOW) == 'Dec 29'

    def test_without_day_of_week(self):
        assert format_relative_day(_days_ago(3), NOW, include_day_of_week=False) == 'Dec 24'
        assert format_relative_day(_days_ago(1), NOW, include_day_of_week=False) == 'Yesterday'

    def test_calendar_day_not_24h(self):
        # 23:59 the day before is "Yesterday" even a few minutes later
        reference = datetime(2024, 12, 27, 0, 5, tzinfo=UTC)
        assert format_relative_day(datetime(2024, 12, 26, 23, 59, tzinfo=UTC), reference) == 'Yesterday'

    def test_timezone_of_reference_used(self):
        berlin = timezone(timedelta(hours=1))
        reference = datetime(2024, 12, 27, 0, 30, tzinfo=berlin)
        # 23:45 UTC on the 26th is already the 27th in UTC+1
        assert format_relative_day(datetime(2024, 12, 26, 23, 45, tzinfo=UTC), reference) == 'Today'


class TestFormatSightingTime:
    """Tests for full sighting labels."""

    def test_specific_yesterday(self):
        value = _days_ago(1, hour=15, minute=15)
        assert format_sighting_time(value, 'specific', NOW) == 'Yesterday at 3:15 PM'

    def test_specific_today_24_hour(self):
        value = _days_ago(0, hour=9, minute=30)
        assert format_sighting_time(value, 'specific', NOW, use_12_hour_format=False) == 'Today at 09:30'

    def test_approximate(self):
        assert format_sighting_time(_days_ago(3), 'evening', NOW) == 'Tuesday evening'
        assert format_sighting_time(_days_ago(0), 'morning', NOW) == 'Today morning'

    def test_old_approximate(self):
        assert format_sighting_time(_days_ago(14), 'afternoon', NOW) == 'Dec 13 afternoon'

    def test_no_granularity(self):
        assert format_sighting_time(_days_ago(1), None, NOW) == 'Yesterday'

    def test_clock_time_in_reference_timezone(self):
        berlin = timezone(timedelta(hours=1))
        reference = datetime(2024, 12, 27, 18, 0, tzinfo=berlin)
        value = datetime(2024, 12, 27, 14, 0, tzinfo=UTC)
        assert format_sighting_time(value, 'specific', reference) == 'Today at 3:00 PM'


class TestGranularity:
    """Tests for time-of-day periods."""

    @pytest.mark.parametrize('hour, expected', [
        (0, 'evening'),
        (5, 'evening'),
        (6, 'morning'),
        (11, 'morning'),
        (12, 'afternoon'),
        (17, 'afternoon'),
        (18, 'evening'),
        (23, 'evening'),
    ])
    def test_get_granularity_for_hour(self, hour, expected):
        assert get_granularity_for_hour(hour) == expected

    def test_time_ranges(self):
        evening = get_time_range_for_granularity('evening')
        assert (evening.start_hour, evening.end_hour, evening.label) == (18, 24, 'evening')

    @pytest.mark.parametrize('granularity, hour', [
        ('morning', 9),
        ('afternoon', 15),
        ('evening', 21),
    ])
    def test_create_date_with_granularity(self, granularity, hour):
        value = create_date_with_granularity(NOW.replace(minute=42, second=7), granularity)
        assert value == NOW.replace(hour=hour, minute=0)

    def test_create_date_with_specific_raises(self):
        with pytest.raises(KeyError):
            create_date_with_granularity(NOW, 'specific')


class TestParseDate:
    """Tests for lenient date parsing."""

    def test_iso_with_z(self):
        assert parse_date('2024-12-25T15:00:00Z') == datetime(2024, 12, 25, 15, tzinfo=UTC)

    def test_iso_with_offset(self):
        value = parse_date('2024-12-25T16:00:00+01:00')
        assert value == datetime(2024, 12, 25, 15, tzinfo=UTC)

    def test_epoch_milliseconds(self):
        assert parse_date(1735138800000) == datetime(2024, 12, 25, 15, tzinfo=UTC)

    def test_datetime_passthrough(self):
        assert parse_date(NOW) is NOW

    @pytest.mark.parametrize('value', [None, '', 'not-a-date', True, [2024]])
    def test_invalid(self, value):
        assert parse_date(value) is None


class TestValidateSightingDate:
    """Tests for sighting date validation."""

    def test_past_is_valid(self):
        result = validate_sighting_date(_days_ago(3), NOW)
        assert result.valid is True
        assert result.error is None

    def test_within_tolerance(self):
        assert validate_sighting_date(NOW + timedelta(seconds=30), NOW).valid is True

    def test_future(self):
        result = validate_sighting_date(NOW + timedelta(minutes=5), NOW)
        assert result.valid is False
        assert result.error == 'FUTURE_DATE'

    @pytest.mark.parametrize('value', [None, '2024-12-25', 1735138800000])
    def test_not_a_datetime(self, value):
        assert validate_sighting_date(value, NOW).error == 'INVALID_DATE'

    def test_naive_read_as_local_time(self):
        assert validate_sighting_date(datetime(2024, 12, 25), NOW).valid is True
        assert validate_sighting_date(datetime(2024, 12, 30), NOW).error == 'FUTURE_DATE'


class TestDayPredicates:
    """Tests for day-based helpers."""

    def test_days_difference(self):
        assert get_days_difference(_days_ago(3), NOW) == 3
        assert get_days_difference(NOW + timedelta(days=1), NOW) == -1

    def test_older_than_30_days_boundary(self):
        assert is_older_than_30_days(_days_ago(30), NOW) is False
        assert is_older_than_30_days(_days_ago(31), NOW) is True

    def test_today_and_yesterday(self):
        assert is_today(_days_ago(0, hour=0), NOW) is True
        assert is_yesterday(_days_ago(1), NOW) is True
        assert is_yesterday(_days_ago(2), NOW) is False

    def test_within_past_week(self):
        assert is_within_past_week(_days_ago(6), NOW) is True
        assert is_within_past_week(_days_ago(7), NOW) is False
        assert is_within_past_week(NOW + timedelta(days=1), NOW) is False

    def test_get_relative_date(self):
        assert get_relative_date(3, NOW) == datetime(2024, 12, 24, tzinfo=UTC)


class TestFilterCutoff:
    """Tests for time filter cutoffs."""

    def test_any_time(self):
        assert get_filter_cutoff_date('any_time', NOW) is None

    @pytest.mark.parametrize('option, delta', [
        ('last_24h', timedelta(hours=24)),
        ('last_week', timedelta(days=7)),
        ('last_month', timedelta(days=30)),
    ])
    def test_windows(self, option, delta):
        assert get_filter_cutoff_date(option, NOW) == NOW - delta

    def test_unknown_option(self):
        with pytest.raises(ValueError, match='Unknown time filter'):
            get_filter_cutoff_date('last_year', NOW)

    def test_every_option_has_label(self):
        assert set(TIME_FILTER_LABELS) == set(TIME_FILTER_OPTIONS)
        assert TIME_FILTER_LABELS['last_24h'] == 'Last 24h'


@pytest.fixture
def los_angeles(monkeypatch):
    """Run with the process timezone set to America/Los_Angeles."""
    if not hasattr(time, 'tzset'):
        pytest.skip('time.tzset is not available on this platform')
    monkeypatch.setenv('TZ', 'America/Los_Angeles')
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


class TestWithoutReferenceDate:
    """Omitted reference dates fall back to the local wall clock."""

    def test_aware_past_date_is_valid(self):
        result = validate_sighting_date(datetime.now(UTC) - timedelta(days=1))
        assert result.valid is True

    def test_aware_future_date(self):
        result = validate_sighting_date(datetime.now(UTC) + timedelta(hours=1))
        assert result.error == 'FUTURE_DATE'

    def test_naive_past_date_is_valid(self):
        assert validate_sighting_date(datetime.now() - timedelta(hours=1)).valid is True

    def test_today(self):
        assert format_relative_day(datetime.now(UTC)) == 'Today'
        assert is_today(datetime.now(UTC)) is True

    def test_older_than_30_days(self):
        assert is_older_than_30_days(datetime.now(UTC) - timedelta(days=31, hours=1)) is True
        assert is_older_than_30_days(datetime.now(UTC) - timedelta(days=29)) is False

    def test_today_in_local_timezone(self, los_angeles):
        # UTC and Los Angeles are on different calendar days for 8 hours each day
        value = datetime.now(UTC) - timedelta(minutes=1)
        local_now = datetime.now().astimezone()
        if value.astimezone(local_now.tzinfo).date() != local_now.date():
            pytest.skip('run across local midnight')
        assert format_relative_day(value) == 'Today'
        assert format_sighting_time(value, 'morning') == 'Today morning'
