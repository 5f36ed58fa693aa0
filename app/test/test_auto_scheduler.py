"""
Tests for collection date computation
"""

from datetime import date, datetime, timedelta

import pytest

from app.buisness.collections.errors import UnknownFrequencyError
from app.buisness.collections.scheduler import (
    COLLECTION_WEEKDAYS,
    WEEKDAYS,
    _string_hash,
    compute_schedule,
    frequency_date,
    locality_weekday,
    next_organic_date,
)


class TestNextOrganicDate:

    def test_wednesday_request_for_monday_locality(self):
        assert next_organic_date('MONDAY', date(2024, 1, 10)) == datetime(2024, 1, 15, 8, 0)

    def test_same_weekday_rolls_to_next_week(self):
        """A request on the collection day itself is collected a week later"""
        assert next_organic_date('WEDNESDAY', date(2024, 1, 10)) == datetime(2024, 1, 17, 8, 0)

    def test_accepts_datetime_and_lowercase(self):
        assert next_organic_date('friday', datetime(2024, 1, 10, 23, 59)) == datetime(2024, 1, 12, 8, 0)

    def test_custom_hour(self):
        assert next_organic_date('MONDAY', date(2024, 1, 10), hour=6) == datetime(2024, 1, 15, 6, 0)

    @pytest.mark.parametrize('weekday', WEEKDAYS)
    def test_always_after_today_and_on_weekday(self, weekday):
        start = date(2024, 2, 26)
        for offset in range(14):
            today = start + timedelta(days=offset)
            result = next_organic_date(weekday, today)
            assert result.date() >= today + timedelta(days=1)
            assert result.date() <= today + timedelta(days=7)
            assert WEEKDAYS[result.weekday()] == weekday
            assert (result.hour, result.minute) == (8, 0)


class TestFrequencyDate:

    def test_inorganic_one_time_lands_within_three_to_five_days(self):
        result = frequency_date('INORGANIC', 'UNICA', datetime(2024, 1, 10, 10, 0))
        assert datetime(2024, 1, 13) <= result <= datetime(2024, 1, 15, 23, 59)

    def test_inorganic_offsets(self):
        requested = datetime(2024, 1, 10, 10, 0)
        assert frequency_date('INORGANIC', 'UNICA', requested) == datetime(2024, 1, 13, 10, 0)
        assert frequency_date('INORGANIC', 'SEMANAL_1', requested) == datetime(2024, 1, 17, 10, 0)
        assert frequency_date('INORGANIC', 'SEMANAL_2', requested) == datetime(2024, 1, 13, 10, 0)

    def test_hazardous_skips_weekend(self):
        # Tuesday + 5 days is a Sunday
        assert frequency_date('HAZARDOUS', 'UNICA', datetime(2024, 1, 9, 10, 0)) == datetime(2024, 1, 15, 10, 0)
        # Monday + 5 days is a Saturday
        assert frequency_date('HAZARDOUS', 'UNICA', datetime(2024, 1, 8, 10, 0)) == datetime(2024, 1, 15, 10, 0)

    def test_hazardous_weekday_result_unchanged(self):
        assert frequency_date('HAZARDOUS', 'UNICA', datetime(2024, 1, 10, 10, 0)) == datetime(2024, 1, 15, 10, 0)
        assert frequency_date('HAZARDOUS', 'MENSUAL', datetime(2024, 1, 10, 10, 0)) == datetime(2024, 1, 17, 10, 0)

    def test_unknown_frequency_raises(self):
        with pytest.raises(UnknownFrequencyError):
            frequency_date('HAZARDOUS', 'SEMANAL_1', datetime(2024, 1, 10))


class TestComputeSchedule:

    def test_organic_without_locality_schedule_has_no_date(self):
        assert compute_schedule('ORGANIC', datetime(2024, 1, 12, 10), date(2024, 1, 10)) is None

    def test_organic_uses_today_not_requested_date(self):
        result = compute_schedule('ORGANIC', datetime(2024, 1, 20, 10), date(2024, 1, 10), locality_weekday_name='MONDAY')
        assert result == datetime(2024, 1, 15, 8, 0)

    def test_inorganic_uses_frequency(self):
        result = compute_schedule('INORGANIC', datetime(2024, 1, 10, 10), date(2024, 1, 8), frequency='SEMANAL_1')
        assert result == datetime(2024, 1, 17, 10, 0)


class TestLocalityWeekday:

    def test_matches_known_hashes(self):
        assert _string_hash('a') == 97
        assert _string_hash('ab') == 3105
        assert _string_hash('Centro') == 2014820869
        # Wraps around to the smallest signed 32-bit value
        assert _string_hash('polygenelubricants') == -2147483648

    def test_weekday_assignment(self):
        assert locality_weekday('a') == 'WEDNESDAY'
        assert locality_weekday('ab') == 'MONDAY'
        assert locality_weekday('Centro') == 'FRIDAY'
        assert locality_weekday('Occidente') == 'WEDNESDAY'
        assert locality_weekday('polygenelubricants') == 'THURSDAY'

    def test_always_a_collection_weekday(self):
        for name in ('Norte', 'Sur', 'Oriente', 'Suba', 'Usaquén', 'Ciudad Bolívar', ''):
            assert locality_weekday(name) in COLLECTION_WEEKDAYS
