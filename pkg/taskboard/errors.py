"""
Error taxonomy for the task board engine.

Every public operation raises one of these synchronously; nothing is retried
internally. The API layer maps them onto HTTP status codes.
"""


class BoardError(Exception):
    """Base class for all task board errors."""
    pass


class NotFoundError(BoardError):
    """
    Raised when a board, group, task or column id does not resolve.

    Also raised when the id resolves to another tenant, or to a board the
    actor may not see, so callers cannot probe for existence.
    """
    pass


class ValidationError(BoardError):
    """Raised when input fails validation (value shape, option id, blank name)."""
    pass


class AuthorizationError(BoardError):
    """Raised when an actor without edit rights calls a mutating operation."""
    pass


class ConflictError(BoardError):
    """Raised when a field write carries a stale expected_version."""
    pass
