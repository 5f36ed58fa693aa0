"""
Stage lists for every operation kind that mutates collection data.

Order matters: presence, coercion, ranges, dates, uniqueness, business rules.
"""

from app.buisness.collections.validation import rules
from app.buisness.collections.validation.chain import ValidationChain

COLLECTION_REQUEST = 'collection_request'
COLLECTION_COMPLETION = 'collection_completion'
USER_REGISTRATION = 'user_registration'
LOCALITY_SCHEDULE = 'locality_schedule'
POINTS_CONFIGURATION = 'points_configuration'
POINTS_PREVIEW = 'points_preview'

NOTE_MAX_LENGTH = 500
WEIGHT_MAX_KG = 1000
POINTS_PARAMETER_MAX = 10000
PREVIEW_QUANTITY_MAX = 1000


def collection_request_stages():
    return [
        rules.required('user_id', 'category', 'requested_date'),
        rules.coerce({
            'user_id': rules.as_int,
            'category': rules.as_upper,
            'requested_date': rules.as_datetime,
            'frequency': rules.as_upper,
            'notes': rules.as_string,
        }),
        rules.length('notes', max_length=NOTE_MAX_LENGTH),
        rules.future_date('requested_date'),
        rules.combine(
            rules.user_exists('user_id'),
            rules.category_allowed('category'),
            rules.frequency_matches_category('category', 'frequency'),
            rules.within_collection_window('requested_date'),
            rules.on_business_day('requested_date'),
            rules.daily_limit('requested_date', 'user_id'),
        ),
    ]


def collection_completion_stages():
    return [
        rules.required('weight_kg'),
        rules.coerce({
            'weight_kg': rules.as_float,
            'separated': rules.as_bool,
            'company_id': rules.as_int,
        }),
        rules.value_range('weight_kg', minimum=0, maximum=WEIGHT_MAX_KG, exclusive_minimum=True),
        rules.company_exists('company_id'),
    ]


def user_registration_stages():
    return [
        rules.required('email', 'name', 'locality'),
        rules.coerce({
            'email': rules.as_email,
            'name': rules.as_string,
            'locality': rules.as_string,
            'address': rules.as_string,
            'phone': rules.as_string,
        }),
        rules.combine(
            rules.length('name', min_length=2, max_length=50),
            rules.length('locality', min_length=2, max_length=50),
            rules.length('address', max_length=200),
            rules.length('phone', min_length=8, max_length=20),
        ),
        rules.unique_email('email'),
        rules.combine(
            rules.phone_format('phone'),
            rules.warn_missing('address', 'An address helps collectors find the pickup'),
        ),
    ]


def locality_schedule_stages():
    return [
        rules.required('locality', 'weekday'),
        rules.coerce({
            'locality': rules.as_string,
            'weekday': rules.as_upper,
        }),
        rules.length('locality', min_length=2, max_length=50),
        rules.valid_weekday('weekday'),
    ]


def points_configuration_stages():
    return [
        rules.required('base_points', 'weight_factor', 'separation_factor'),
        rules.coerce({
            'base_points': rules.as_float,
            'weight_factor': rules.as_float,
            'separation_factor': rules.as_float,
            'description': rules.as_string,
        }),
        rules.combine(
            rules.value_range('base_points', minimum=0, maximum=POINTS_PARAMETER_MAX),
            rules.value_range('weight_factor', minimum=0, maximum=POINTS_PARAMETER_MAX),
            rules.value_range('separation_factor', minimum=0, maximum=POINTS_PARAMETER_MAX),
            rules.length('description', max_length=200),
        ),
    ]


def points_preview_stages():
    return [
        rules.required('material', 'quantity'),
        rules.coerce({
            'material': rules.as_string,
            'quantity': rules.as_float,
            'quality': rules.as_lower,
            'collected_at': rules.as_datetime,
        }),
        rules.combine(
            rules.length('material', min_length=2, max_length=50),
            rules.value_range('quantity', minimum=0, maximum=PREVIEW_QUANTITY_MAX, exclusive_minimum=True),
            rules.length('quality', max_length=20),
        ),
    ]


def build_validation_chain(lookups, settings=None, clock=None) -> ValidationChain:
    """Chain with every operation kind registered"""
    kwargs = {'clock': clock} if clock is not None else {}
    chain = ValidationChain(lookups, settings, **kwargs)
    chain.register(COLLECTION_REQUEST, collection_request_stages())
    chain.register(COLLECTION_COMPLETION, collection_completion_stages())
    chain.register(USER_REGISTRATION, user_registration_stages())
    chain.register(LOCALITY_SCHEDULE, locality_schedule_stages())
    chain.register(POINTS_CONFIGURATION, points_configuration_stages())
    chain.register(POINTS_PREVIEW, points_preview_stages())
    return chain
