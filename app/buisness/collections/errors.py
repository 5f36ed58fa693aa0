"""
Domain exceptions for collection request business logic

These exceptions represent business rule violations and domain-specific errors.
They are raised by the business layer and translated to HTTP responses by the
presentation layer.
"""


class CollectionDomainError(Exception):
    """Base exception for all collection domain errors"""
    pass


class ValidationFailed(CollectionDomainError):
    """Raised when a command fails validation; carries the structured errors"""

    def __init__(self, errors, warnings=None):
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        codes = ", ".join(f"{e.field}:{e.code}" for e in self.errors)
        super().__init__(f"Validation failed ({codes})")


class StateTransitionError(CollectionDomainError):
    """Raised when a lifecycle transition is not allowed from the current state"""

    def __init__(self, message, request_id=None, from_state=None, to_state=None):
        self.request_id = request_id
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(message)


class NotFoundError(CollectionDomainError):
    """Raised when a referenced entity does not exist"""

    def __init__(self, entity, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ConfigurationConflictError(CollectionDomainError):
    """Raised when a concurrent points-configuration activation wins the race"""
    pass


class ValidationInfrastructureError(CollectionDomainError):
    """Raised when a validation stage or lookup faults; distinct from rule violations"""
    pass


class DeadlineExceededError(ValidationInfrastructureError):
    """Raised when the caller's deadline passes before the operation finishes"""
    pass


class UnknownFrequencyError(CollectionDomainError):
    """Raised by the scheduler for a frequency code it has no offset for"""
    pass


class ConfigurationInUseError(CollectionDomainError):
    """Raised when deleting the points configuration that is currently active"""
    pass
