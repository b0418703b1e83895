# This project was developed with assistance from AI tools.
"""Domain error taxonomy raised by the service layer.

Services raise these; ``src.main`` maps them to RFC 7807 responses.
"""


class DomainError(Exception):
    """Base class for workflow errors surfaced to callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """Malformed or missing input. Carries field-level detail."""

    status_code = 422

    def __init__(self, message: str, *, field: str | None = None, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = list(errors or [])
        if field is not None:
            self.errors.append({"field": field, "message": message})


class NotFoundError(DomainError):
    """Referenced entity does not exist (or is not visible)."""

    status_code = 404


class ConflictError(DomainError):
    """Invariant violation, e.g. a duplicate pending registration."""

    status_code = 409


class AuthorizationError(DomainError):
    """Caller lacks permission for the requested action."""

    status_code = 403


class StorageError(DomainError):
    """Blob store or database failure. Detail is logged, never returned."""

    status_code = 502
