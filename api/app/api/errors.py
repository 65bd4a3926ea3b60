from fastapi import HTTPException, status

from app.core.tokens import TokenConfigurationError
from app.services.errors import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from app.services.repository import RepositoryUnavailableError

_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidStateError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (RepositoryUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (TokenConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_exception(exc: Exception) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal error")


def page_count(total: int, page_size: int) -> int:
    return (total + page_size - 1) // page_size if page_size > 0 else 0
