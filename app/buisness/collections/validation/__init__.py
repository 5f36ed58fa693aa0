"""
Validation package

ValidationChain runs ordered stage functions per operation kind; the stage
lists live in operations.py and the reusable stage factories in rules.py.
"""

from app.buisness.collections.validation.chain import (
    ValidationChain,
    ValidationContext,
    ValidationError,
    ValidationResult,
)
from app.buisness.collections.validation.operations import (
    COLLECTION_COMPLETION,
    COLLECTION_REQUEST,
    LOCALITY_SCHEDULE,
    POINTS_CONFIGURATION,
    POINTS_PREVIEW,
    USER_REGISTRATION,
    build_validation_chain,
)

__all__ = [
    'ValidationChain',
    'ValidationContext',
    'ValidationError',
    'ValidationResult',
    'COLLECTION_COMPLETION',
    'COLLECTION_REQUEST',
    'LOCALITY_SCHEDULE',
    'POINTS_CONFIGURATION',
    'POINTS_PREVIEW',
    'USER_REGISTRATION',
    'build_validation_chain',
]
