"""Application error taxonomy.

Services and repositories raise these; a single handler registered in
``app.main`` maps each kind to a status code and a sanitized message.
"""


class AppError(Exception):
    """Base class for all application errors."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationError(AppError):
    """Bad or missing credentials. The message stays generic."""

    status_code = 401
    default_message = "Invalid email or password"


class PermissionDeniedError(AppError):
    status_code = 403
    default_message = "Access denied"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    """Entity with the same unique key already exists."""

    status_code = 409
    default_message = "Resource already exists"


class TokenError(AppError):
    """Session token could not be trusted."""

    status_code = 401
    default_message = "Invalid session token"


class TokenExpiredError(TokenError):
    default_message = "Session token has expired"


class TokenInvalidError(TokenError):
    pass


class StorageError(AppError):
    """Persistence layer failure (connectivity, constraints)."""


class UniqueViolationError(StorageError):
    """A unique constraint rejected the write."""


class HashingError(AppError):
    """Password hashing backend failed or the stored hash is malformed."""
