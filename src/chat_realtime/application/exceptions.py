from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    code = "error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class AuthError(AppError):
    """Missing or invalid credentials; the connection is rejected."""

    code = "unauthenticated"


class AuthorizationError(AppError):
    code = "forbidden"


class NotFoundError(AppError):
    code = "not_found"


class ValidationError(AppError):
    code = "invalid_data"


class ConflictError(AppError):
    code = "conflict"


class InvalidStateError(ConflictError):
    """Transition attempted on a message in a terminal state."""

    code = "invalid_state"


class ConcurrencyConflict(ConflictError):
    """The entity changed between read and conditional write. Retryable."""

    code = "concurrency_conflict"
