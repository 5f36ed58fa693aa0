"""
Immutable snapshot of the collection rules read from app.config
"""

from dataclasses import dataclass
from datetime import time
from typing import FrozenSet, Mapping

from app.buisness.collections.scheduler import WEEKDAYS, DEFAULT_ORGANIC_HOUR


def _parse_time(value) -> time:
    if isinstance(value, time):
        return value
    hour, _, minute = str(value).partition(':')
    return time(hour=int(hour), minute=int(minute or 0))


def _parse_days(value) -> FrozenSet[str]:
    if isinstance(value, str):
        value = value.split(',')
    days = frozenset(day.strip().upper() for day in value if day and day.strip())
    unknown = days - set(WEEKDAYS)
    if unknown:
        raise ValueError(f"Unknown business days: {sorted(unknown)}")
    return days


@dataclass(frozen=True)
class CollectionSettings:
    window_start: time = time(6, 0)
    window_end: time = time(18, 0)
    business_days: FrozenSet[str] = frozenset(WEEKDAYS[:5])
    min_lead_hours: int = 24
    daily_limit: int = 3
    organic_hour: int = DEFAULT_ORGANIC_HOUR
    notify_async: bool = True
    notify_max_retries: int = 3
    notify_base_delay: float = 1.0
    notify_max_delay: float = 30.0
    notify_dedupe_minutes: int = 5

    @classmethod
    def from_config(cls, config: Mapping) -> 'CollectionSettings':
        """Build from a Flask config mapping; missing keys keep their defaults"""
        defaults = cls()
        return cls(
            window_start=_parse_time(config.get('COLLECTION_WINDOW_START', defaults.window_start)),
            window_end=_parse_time(config.get('COLLECTION_WINDOW_END', defaults.window_end)),
            business_days=_parse_days(config.get('COLLECTION_BUSINESS_DAYS', defaults.business_days)),
            min_lead_hours=int(config.get('COLLECTION_MIN_LEAD_HOURS', defaults.min_lead_hours)),
            daily_limit=int(config.get('COLLECTION_DAILY_LIMIT', defaults.daily_limit)),
            organic_hour=int(config.get('COLLECTION_ORGANIC_HOUR', defaults.organic_hour)),
            notify_async=bool(config.get('NOTIFY_ASYNC', defaults.notify_async)),
            notify_max_retries=int(config.get('NOTIFY_MAX_RETRIES', defaults.notify_max_retries)),
            notify_base_delay=float(config.get('NOTIFY_BASE_DELAY', defaults.notify_base_delay)),
            notify_max_delay=float(config.get('NOTIFY_MAX_DELAY', defaults.notify_max_delay)),
            notify_dedupe_minutes=int(config.get('NOTIFY_DEDUPE_MINUTES', defaults.notify_dedupe_minutes)),
        )
