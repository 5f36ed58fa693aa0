"""
Stage factories for the validation chain.

Each factory returns a pure stage function ``(ctx) -> [ValidationError]``.
Stages read raw input from ``ctx.data`` only during presence and coercion;
every later stage works on ``ctx.cleaned``.
"""

import math
import re
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from app.buisness.collections.scheduler import CATEGORIES, FREQUENCY_OFFSETS, ORGANIC, WEEKDAYS
from app.buisness.collections.validation.chain import ValidationContext, ValidationError

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_PATTERN = re.compile(r'^\+?[\d\s\-()]+$')

TRUE_VALUES = ('true', '1', 'yes', 'on')
FALSE_VALUES = ('false', '0', 'no', 'off')


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# ---------------------------------------------------------------------------
# Stage 1: presence
# ---------------------------------------------------------------------------

def required(*fields: str):
    def required_fields(ctx: ValidationContext) -> List[ValidationError]:
        return [
            ValidationError(name, f"{name} is required", 'FIELD_REQUIRED')
            for name in fields
            if _is_blank(ctx.data.get(name))
        ]
    return required_fields


# ---------------------------------------------------------------------------
# Stage 2: type coercion
# ---------------------------------------------------------------------------

class CoercionError(ValueError):
    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(message)


def as_string(value: Any) -> str:
    if not isinstance(value, str):
        raise CoercionError('INVALID_TYPE', 'must be a string')
    return value.strip()


def as_lower(value: Any) -> str:
    return as_string(value).lower()


def as_upper(value: Any) -> str:
    return as_string(value).upper()


def as_float(value: Any) -> float:
    if isinstance(value, bool):
        raise CoercionError('INVALID_TYPE', 'must be a number')
    number = None
    if isinstance(value, (int, float, str)):
        try:
            number = float(value.strip() if isinstance(value, str) else value)
        except (ValueError, OverflowError):
            pass
    if number is None:
        raise CoercionError('INVALID_TYPE', 'must be a number')
    # nan and inf slip past every range comparison
    if not math.isfinite(number):
        raise CoercionError('INVALID_TYPE', 'must be a finite number')
    return number


def as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise CoercionError('INVALID_TYPE', 'must be an integer')
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value.strip())
    raise CoercionError('INVALID_TYPE', 'must be an integer')


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
    raise CoercionError('INVALID_TYPE', 'must be a boolean')


def as_datetime(value: Any) -> datetime:
    """Naive local datetime from a datetime or an ISO-8601 string"""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise CoercionError('INVALID_DATE', 'must be an ISO-8601 date')
    else:
        raise CoercionError('INVALID_DATE', 'must be an ISO-8601 date')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def as_email(value: Any) -> str:
    text = as_string(value).lower()
    if not EMAIL_PATTERN.match(text):
        raise CoercionError('INVALID_EMAIL', 'must be a valid email address')
    return text


def coerce(schema: Dict[str, Callable[[Any], Any]]):
    """Coerce every present field; absent fields are left for the presence stage"""
    def coerce_types(ctx: ValidationContext) -> List[ValidationError]:
        errors = []
        for name, converter in schema.items():
            raw = ctx.data.get(name)
            if _is_blank(raw) or name in ctx.failed:
                continue
            try:
                ctx.cleaned[name] = converter(raw)
            except CoercionError as e:
                errors.append(ValidationError(name, f"{name} {e}", e.code, raw))
        return errors
    return coerce_types


# ---------------------------------------------------------------------------
# Stage 3: ranges and lengths
# ---------------------------------------------------------------------------

def length(name: str, min_length: Optional[int] = None, max_length: Optional[int] = None):
    def check_length(ctx: ValidationContext) -> List[ValidationError]:
        if not ctx.has(name):
            return []
        value = ctx.value(name)
        if min_length is not None and len(value) < min_length:
            return [ValidationError(name, f"{name} must be at least {min_length} characters", 'STRING_TOO_SHORT', value)]
        if max_length is not None and len(value) > max_length:
            return [ValidationError(name, f"{name} must be at most {max_length} characters", 'STRING_TOO_LONG', value)]
        return []
    check_length.__name__ = f"length_{name}"
    return check_length


def value_range(name: str, minimum: Optional[float] = None, maximum: Optional[float] = None,
                exclusive_minimum: bool = False):
    def check_range(ctx: ValidationContext) -> List[ValidationError]:
        if not ctx.has(name):
            return []
        value = ctx.value(name)
        if minimum is not None and (value <= minimum if exclusive_minimum else value < minimum):
            bound = f"greater than {minimum}" if exclusive_minimum else f"at least {minimum}"
            return [ValidationError(name, f"{name} must be {bound}", 'VALUE_TOO_LOW', value)]
        if maximum is not None and value > maximum:
            return [ValidationError(name, f"{name} must be at most {maximum}", 'VALUE_TOO_HIGH', value)]
        return []
    check_range.__name__ = f"range_{name}"
    return check_range


def combine(*stages):
    """Run several checks as one ordered stage"""
    def combined(ctx: ValidationContext) -> List[ValidationError]:
        errors = []
        for stage in stages:
            stage_errors = stage(ctx)
            for error in stage_errors:
                ctx.failed.add(error.field)
            errors.extend(stage_errors)
        return errors
    combined.__name__ = '+'.join(getattr(s, '__name__', 'stage') for s in stages)
    return combined


# ---------------------------------------------------------------------------
# Stage 4: dates
# ---------------------------------------------------------------------------

def future_date(name: str):
    """Strictly in the future and at least the configured lead time away"""
    def check_future(ctx: ValidationContext) -> List[ValidationError]:
        if not ctx.has(name):
            return []
        value = ctx.value(name)
        if value <= ctx.now:
            return [ValidationError(name, f"{name} must be in the future", 'DATE_NOT_FUTURE', value)]
        earliest = ctx.now + timedelta(hours=ctx.settings.min_lead_hours)
        if value < earliest:
            return [ValidationError(
                name,
                f"{name} must be at least {ctx.settings.min_lead_hours} hours ahead",
                'DATE_TOO_EARLY',
                value,
            )]
        return []
    return check_future


# ---------------------------------------------------------------------------
# Stage 5: uniqueness
# ---------------------------------------------------------------------------

def unique_email(name: str = 'email'):
    def check_unique(ctx: ValidationContext) -> List[ValidationError]:
        if not ctx.has(name):
            return []
        if ctx.lookups.email_taken(ctx.value(name)):
            return [ValidationError(name, f"{name} is already registered", 'VALUE_NOT_UNIQUE', ctx.value(name))]
        return []
    return check_unique


# ---------------------------------------------------------------------------
# Stage 6: business rules
# ---------------------------------------------------------------------------

def user_exists(name: str = 'user_id'):
    def check_user(ctx: ValidationContext) -> List[ValidationError]:
        if ctx.has(name) and not ctx.lookups.user_exists(ctx.value(name)):
            return [ValidationError(name, 'User not found', 'USER_NOT_FOUND', ctx.value(name))]
        return []
    return check_user


def company_exists(name: str = 'company_id'):
    def check_company(ctx: ValidationContext) -> List[ValidationError]:
        if ctx.has(name) and not ctx.lookups.company_exists(ctx.value(name)):
            return [ValidationError(name, 'Collection company not found', 'COMPANY_NOT_FOUND', ctx.value(name))]
        return []
    return check_company


def category_allowed(name: str = 'category'):
    def check_category(ctx: ValidationContext) -> List[ValidationError]:
        if ctx.has(name) and ctx.value(name) not in CATEGORIES:
            return [ValidationError(
                name, f"category must be one of: {', '.join(CATEGORIES)}", 'INVALID_CATEGORY', ctx.value(name)
            )]
        return []
    return check_category


def frequency_matches_category(category: str = 'category', name: str = 'frequency'):
    """ORGANIC takes no frequency; the other categories need a known one"""
    def check_frequency(ctx: ValidationContext) -> List[ValidationError]:
        if not ctx.has(category) or name in ctx.failed:
            return []
        value = ctx.value(category)
        frequency = ctx.value(name)
        if value == ORGANIC:
            if frequency:
                return [ValidationError(name, 'Organic collections follow the locality schedule', 'FREQUENCY_NOT_ALLOWED', frequency)]
            return []
        allowed = FREQUENCY_OFFSETS[value]
        if not frequency:
            return [ValidationError(name, f"frequency is required for {value}", 'FREQUENCY_REQUIRED')]
        if frequency not in allowed:
            return [ValidationError(
                name, f"frequency must be one of: {', '.join(allowed)}", 'INVALID_FREQUENCY', frequency
            )]
        return []
    return check_frequency


def within_collection_window(name: str):
    def check_window(ctx: ValidationContext) -> List[ValidationError]:
        if not ctx.has(name):
            return []
        value = ctx.value(name)
        # Minute precision, both ends inclusive
        slot = value.time().replace(second=0, microsecond=0)
        start, end = ctx.settings.window_start, ctx.settings.window_end
        if not start <= slot <= end:
            return [ValidationError(
                name,
                f"Collection must be scheduled between {start:%H:%M} and {end:%H:%M}",
                'INVALID_TIME_SLOT',
                value,
            )]
        return []
    return check_window


def on_business_day(name: str):
    def check_business_day(ctx: ValidationContext) -> List[ValidationError]:
        if not ctx.has(name):
            return []
        value = ctx.value(name)
        if WEEKDAYS[value.weekday()] not in ctx.settings.business_days:
            return [ValidationError(name, 'Collection can only be scheduled on business days', 'INVALID_WEEKDAY', value)]
        return []
    return check_business_day


def daily_limit(date_field: str, user_field: str = 'user_id'):
    def check_daily_limit(ctx: ValidationContext) -> List[ValidationError]:
        if not ctx.has(date_field) or not ctx.has(user_field):
            return []
        day = ctx.value(date_field).date()
        existing = ctx.lookups.count_requests_on_day(ctx.value(user_field), day)
        if existing >= ctx.settings.daily_limit:
            return [ValidationError(
                date_field,
                f"Daily limit of {ctx.settings.daily_limit} requests reached",
                'DAILY_LIMIT_EXCEEDED',
                day.isoformat(),
            )]
        return []
    return check_daily_limit


def valid_weekday(name: str = 'weekday'):
    def check_weekday(ctx: ValidationContext) -> List[ValidationError]:
        if ctx.has(name) and ctx.value(name) not in WEEKDAYS:
            return [ValidationError(name, f"weekday must be one of: {', '.join(WEEKDAYS)}", 'INVALID_WEEKDAY', ctx.value(name))]
        return []
    return check_weekday


def phone_format(name: str = 'phone'):
    def check_phone(ctx: ValidationContext) -> List[ValidationError]:
        if ctx.has(name) and not PHONE_PATTERN.match(ctx.value(name)):
            return [ValidationError(name, 'phone may only contain digits, spaces and + - ( )', 'INVALID_PHONE', ctx.value(name))]
        return []
    return check_phone


def warn_missing(name: str, message: str):
    """Non-blocking: records a warning when an optional field is absent"""
    def check_optional(ctx: ValidationContext) -> List[ValidationError]:
        if _is_blank(ctx.data.get(name)):
            ctx.warnings.append(ValidationError(name, message, 'FIELD_RECOMMENDED'))
        return []
    return check_optional
