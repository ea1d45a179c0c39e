class DomainError(Exception):
    """Base exception for business rule violations.

    ``code`` is the stable identifier reported to callers.
    """

    code = "DomainError"

    def __init__(self, message: str = "", *, code: str | None = None):
        super().__init__(message or self.code)
        if code:
            self.code = code


class ValidationError(DomainError):
    """Raised when input data is invalid; nothing was written."""

    code = "ValidationError"


class ConflictError(DomainError):
    """Raised when the operation is refused because of existing state."""

    code = "Conflict"


class StateError(DomainError):
    """Raised when the requested transition is impossible in the current state."""

    code = "StateError"


class NotFoundError(DomainError):
    """Raised when the addressed entity does not exist."""

    code = "NotFound"


class CaptureError(DomainError):
    """Raised when the capture device cannot be opened or stops producing frames."""

    code = "CaptureError"


class ConflictOpenQueue(ConflictError):
    code = "ConflictOpenQueue"


class DuplicateForToday(ConflictError):
    code = "DuplicateForToday"


class AlreadyExists(ConflictError):
    code = "AlreadyExists"


class UnrecognizedFormat(ValidationError):
    code = "UnrecognizedFormat"


class MissingParentId(ValidationError):
    code = "MissingParentId"


class NoStudentsForParent(ValidationError):
    code = "NoStudentsForParent"


class InvalidTransition(StateError):
    code = "InvalidTransition"


class NotOpen(StateError):
    code = "NotOpen"


class NoOpenQueue(StateError):
    code = "NoOpenQueue"


class QueueNotFound(NotFoundError):
    code = "NotFound"


class RecordNotFound(NotFoundError):
    code = "RecordNotFound"


class QrNotFound(ValidationError):
    code = "QrNotFound"
