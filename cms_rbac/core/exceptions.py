"""
Domain errors raised by the RBAC services.

Each error carries the HTTP status the API layer answers with; the services
themselves never build HTTP responses.
"""

from typing import Tuple


class RBACError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RBACError):
    """Malformed input to a mutation. Not retried."""
    status_code = 400


class NotFoundError(RBACError):
    status_code = 404


class ForbiddenError(RBACError):
    """Mutation attempted against a protected (is_system) entity, or access denied."""
    status_code = 403


class ConflictError(RBACError):
    """Uniqueness violation surfaced to the caller."""
    status_code = 409

    def __init__(self, message: str, fields: Tuple[str, ...] = ()):
        super().__init__(message)
        self.fields = tuple(fields)


# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: Exception) -> bool:
    return getattr(error, "code", None) == UNIQUE_VIOLATION
