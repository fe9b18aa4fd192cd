"""Service-level error taxonomy.

Each error is an ``HTTPException`` with a fixed status code, so services raise
them directly and FastAPI renders them as ``{"detail": ...}`` without any extra
exception handlers.
"""

from fastapi import HTTPException, status


class ServiceError(HTTPException):
    """Base class for errors raised by the service layer."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)

    def __str__(self) -> str:
        return str(self.detail)


class ConflictError(ServiceError):
    """A uniqueness or state invariant would be violated."""

    status_code = status.HTTP_409_CONFLICT


class NotFoundError(ServiceError):
    """The referenced record is missing or not in the expected state."""

    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(ServiceError):
    """Malformed input that passed schema validation."""

    status_code = status.HTTP_400_BAD_REQUEST


class ForbiddenError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class TokenCollisionError(ServiceError):
    """A freshly generated invitation token already exists.

    Never retried: at 256 bits of entropy this indicates a broken random
    source or a replayed insert.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
