class DomainError(Exception):
    """Base exception class for all domain-specific exceptions."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ResourceNotFoundError(DomainError):
    """Exception raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: object) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type} with ID {resource_id} not found"
        super().__init__(message)


class ForbiddenError(DomainError):
    """Exception raised when the caller does not own the requested resource."""

    def __init__(self, message: str = "You do not have access to this resource") -> None:
        super().__init__(message)


class InvalidStateError(DomainError):
    """Exception raised when an operation is not allowed in the current state."""


class InvalidStepError(InvalidStateError):
    """Exception raised when a step is submitted out of order."""

    def __init__(self, submitted: str, expected: str | None) -> None:
        self.submitted = submitted
        self.expected = expected
        super().__init__(f"Invalid step type: expected {expected or 'none'}, got {submitted}")
