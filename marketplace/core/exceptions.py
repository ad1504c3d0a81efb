"""
Errors raised by the penalty system.

Each error carries the HTTP status the API layer answers with; the handler
registered in ``marketplace.main`` turns them into ``{"detail": ...}`` bodies.
"""


class PenaltyError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PenaltyError, ValueError):
    """Missing or malformed input. No state was changed."""
    status_code = 400


class ViolationCategoryMismatch(ValidationError):
    """A customer violation was recorded against a provider, or the reverse."""


class NotFoundError(PenaltyError):
    status_code = 404


class ViolationTypeNotFound(NotFoundError):
    pass


class UnauthorizedError(PenaltyError):
    """The caller does not own the record it tried to act on."""
    status_code = 403


class InvalidStateError(PenaltyError):
    status_code = 409


class AlreadyReversedError(InvalidStateError):
    pass


class PersistenceError(PenaltyError):
    """The store could not complete the transaction."""
    status_code = 503
