"""Domain exceptions.

Core and repository code raise these; the web layer maps them to HTTP
status codes and the CLI prints them and exits non-zero.
"""


class LMSError(Exception):
    """Base class for LMS errors."""

    pass


class NotFoundError(LMSError):
    """Raised when a referenced record does not exist."""

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")


class ConflictError(LMSError):
    """Raised when an operation conflicts with the record's current state."""

    pass


class ValidationError(LMSError):
    """Raised when input violates a business rule."""

    pass


class AuthenticationError(LMSError):
    """Raised when credentials or a session token are not valid."""

    pass


class PermissionDeniedError(LMSError):
    """Raised when the caller's role does not allow the operation."""

    pass
