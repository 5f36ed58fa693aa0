"""
ValidationChain - ordered validation stages per operation kind

Each operation kind maps to an ordered list of stage functions. A stage takes
the ValidationContext and returns a list of ValidationError. All stages run and
their errors are concatenated, so the caller sees every problem at once.

Rule violations never raise. A stage that faults (bug, lookup failure) raises
ValidationInfrastructureError instead, since the answer is unknown rather than
negative.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set

from app.buisness.collections.context import CallerContext
from app.buisness.collections.errors import ValidationFailed, ValidationInfrastructureError
from app.buisness.collections.settings import CollectionSettings
from app.utils.logger import get_logger

logger = get_logger("waste_collection.validation")


@dataclass(frozen=True)
class ValidationError:
    field: str
    message: str
    code: str
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        result = {'field': self.field, 'message': self.message, 'code': self.code}
        if self.value is not None:
            result['value'] = self.value if isinstance(self.value, (str, int, float, bool)) else str(self.value)
        return result


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationError] = field(default_factory=list)
    cleaned: Dict[str, Any] = field(default_factory=dict)

    def raise_for_errors(self) -> None:
        if not self.is_valid:
            raise ValidationFailed(self.errors, self.warnings)


@dataclass
class ValidationContext:
    """
    State shared by the stages of one validate() call.

    ``cleaned`` holds coerced values. Fields listed in ``failed`` already have
    an error and later stages leave them alone.
    """
    data: Dict[str, Any]
    caller: CallerContext
    now: datetime
    settings: CollectionSettings
    lookups: Any
    cleaned: Dict[str, Any] = field(default_factory=dict)
    failed: Set[str] = field(default_factory=set)
    warnings: List[ValidationError] = field(default_factory=list)

    def has(self, name: str) -> bool:
        """Field coerced successfully and has no earlier error"""
        return name in self.cleaned and name not in self.failed

    def value(self, name: str, default=None):
        return self.cleaned.get(name, default)


Stage = Callable[[ValidationContext], List[ValidationError]]


class ValidationChain:
    """
    Registry of operation kind -> ordered stages.

    Args:
        lookups: object answering existence/count questions (user_exists,
            email_taken, count_requests_on_day, company_exists)
        settings: collection rules snapshot
        clock: returns the submission instant
    """

    def __init__(self, lookups, settings: Optional[CollectionSettings] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.lookups = lookups
        self.settings = settings or CollectionSettings()
        self.clock = clock
        self._chains: Dict[str, List[Stage]] = {}

    def register(self, operation_kind: str, stages: List[Stage]) -> 'ValidationChain':
        self._chains[operation_kind] = list(stages)
        return self

    def operation_kinds(self) -> List[str]:
        return sorted(self._chains)

    def stages(self, operation_kind: str) -> List[Stage]:
        if operation_kind not in self._chains:
            raise KeyError(f"No validation chain registered for {operation_kind!r}")
        return list(self._chains[operation_kind])

    def validate(self, operation_kind: str, data: Dict[str, Any],
                 caller: Optional[CallerContext] = None) -> ValidationResult:
        caller = caller or CallerContext()
        ctx = ValidationContext(
            data=dict(data or {}),
            caller=caller,
            now=self.clock(),
            settings=self.settings,
            lookups=self.lookups,
        )

        errors: List[ValidationError] = []
        for stage in self.stages(operation_kind):
            stage_name = getattr(stage, '__name__', repr(stage))
            caller.check_deadline(stage_name)
            try:
                stage_errors = stage(ctx)
            except ValidationInfrastructureError:
                raise
            except Exception as e:
                logger.error(f"Validation stage {stage_name} faulted for {operation_kind}: {e}", exc_info=True)
                raise ValidationInfrastructureError(
                    f"Validation stage {stage_name} failed for {operation_kind}"
                ) from e
            for error in stage_errors:
                ctx.failed.add(error.field)
            errors.extend(stage_errors)

        if errors:
            logger.info(
                f"Validation rejected {operation_kind}",
                extra={"context": {"codes": [f"{e.field}:{e.code}" for e in errors]}},
            )

        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=list(ctx.warnings),
            cleaned=dict(ctx.cleaned),
        )

    def require_valid(self, operation_kind: str, data: Dict[str, Any],
                      caller: Optional[CallerContext] = None) -> Dict[str, Any]:
        """Validate and return cleaned values, raising ValidationFailed on errors"""
        result = self.validate(operation_kind, data, caller)
        result.raise_for_errors()
        return result.cleaned
