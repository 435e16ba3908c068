"""Domain errors raised by repositories and mapped to HTTP responses."""


class DomainError(Exception):
    """Base class for business rule failures."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """Input is missing or out of range."""
    status_code = 400


class InsufficientBalanceError(ValidationError):
    """Payment exceeds the remaining balance of a deal."""


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """Record already exists."""
    status_code = 409


class InvalidStateError(DomainError):
    """Operation not allowed in the record's current state."""
    status_code = 409


class PermissionDeniedError(DomainError):
    status_code = 403


class CorruptCollectionError(DomainError):
    """Stored collection payload can't be decoded."""
    status_code = 500
