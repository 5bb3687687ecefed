"""Translate domain errors into HTTP responses."""

from fastapi import HTTPException, status

from cinematch.core.errors import (
    CineMatchError,
    MembershipError,
    NotFoundError,
    StorageUnavailable,
    ValidationError,
)
from cinematch.core.logging import get_logger

logger = get_logger(__name__)


def to_http_exception(error: CineMatchError) -> HTTPException:
    """Map a domain error to the status code clients rely on."""
    if isinstance(error, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, MembershipError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, StorageUnavailable):
        logger.error(f"Storage unavailable: {error}")
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service temporarily unavailable",
        )

    logger.error(f"Unhandled domain error: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )
