"""
AutoScheduler - collection date computation

Pure functions: no I/O, no clock. Callers pass "today" and the locality
weekday in, and get a datetime (or None) back.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from app.buisness.collections.errors import UnknownFrequencyError


# Indexed like date.weekday(): Monday is 0
WEEKDAYS = ('MONDAY', 'TUESDAY', 'WEDNESDAY', 'THURSDAY', 'FRIDAY', 'SATURDAY', 'SUNDAY')

# Weekdays a locality can be assigned by the hash
COLLECTION_WEEKDAYS = WEEKDAYS[:5]

ORGANIC = 'ORGANIC'
INORGANIC = 'INORGANIC'
HAZARDOUS = 'HAZARDOUS'
CATEGORIES = (ORGANIC, INORGANIC, HAZARDOUS)

# Days added to the requested date, per category and frequency code
FREQUENCY_OFFSETS = {
    INORGANIC: {
        'UNICA': 3,      # one-time pickup
        'SEMANAL_1': 7,  # weekly, once
        'SEMANAL_2': 3,  # weekly, twice
    },
    HAZARDOUS: {
        'UNICA': 5,
        'MENSUAL': 7,
    },
}

DEFAULT_ORGANIC_HOUR = 8


def _string_hash(value: str) -> int:
    """
    31-based rolling hash over UTF-16 code units with signed 32-bit wraparound.

    Must stay bit-compatible: existing locality assignments were produced by it.
    """
    h = 0
    encoded = value.encode('utf-16-le')
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        h = (31 * h + code_unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def locality_weekday(locality: str) -> str:
    """Default organic weekday for a locality (MONDAY..FRIDAY)"""
    return COLLECTION_WEEKDAYS[abs(_string_hash(locality)) % len(COLLECTION_WEEKDAYS)]


def next_organic_date(weekday: str, today: Union[date, datetime], hour: int = DEFAULT_ORGANIC_HOUR) -> datetime:
    """
    Next occurrence of ``weekday`` strictly after ``today``, at ``hour``:00.

    A request made on the collection weekday itself rolls to the following week.
    """
    if isinstance(today, datetime):
        today = today.date()
    target = WEEKDAYS.index(weekday.upper())
    days_ahead = (target - today.weekday() + 7) % 7
    if days_ahead == 0:
        days_ahead = 7
    return datetime.combine(today + timedelta(days=days_ahead), time(hour=hour))


def skip_weekend(value: datetime) -> datetime:
    """Advance a Saturday or Sunday to the following Monday"""
    while value.weekday() >= 5:
        value += timedelta(days=1)
    return value


def frequency_date(category: str, frequency: str, requested_date: datetime) -> datetime:
    """
    Proposed collection date for a non-organic request.

    Raises:
        UnknownFrequencyError: frequency has no offset for this category
    """
    offsets = FREQUENCY_OFFSETS.get(category, {})
    if frequency not in offsets:
        raise UnknownFrequencyError(f"Unknown frequency {frequency!r} for category {category}")
    scheduled = requested_date + timedelta(days=offsets[frequency])
    if category == HAZARDOUS:
        scheduled = skip_weekend(scheduled)
    return scheduled


def compute_schedule(
    category: str,
    requested_date: datetime,
    today: Union[date, datetime],
    locality_weekday_name: Optional[str] = None,
    frequency: Optional[str] = None,
    organic_hour: int = DEFAULT_ORGANIC_HOUR,
) -> Optional[datetime]:
    """
    Dispatch on category.

    ORGANIC uses the locality weekday relative to ``today``; without a locality
    schedule there is no date. INORGANIC and HAZARDOUS offset the requested date
    by their frequency code.
    """
    if category == ORGANIC:
        if not locality_weekday_name:
            return None
        return next_organic_date(locality_weekday_name, today, hour=organic_hour)
    return frequency_date(category, frequency, requested_date)
