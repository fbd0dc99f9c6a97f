"""Translation of service exceptions to HTTP errors."""

from fastapi import HTTPException

from squad_builder.schemas.common import ErrorResponse
from squad_builder.services.errors import (
    AccessDeniedError,
    InvalidRequestError,
    ResourceNotFoundError,
    ServiceError,
    StateConflictError,
)
from squad_builder.services.suggestion_persistence import InvalidSuggestionPayloadError, SuggestionPersistenceError

_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (InvalidRequestError, 400),
    (InvalidSuggestionPayloadError, 400),
    (AccessDeniedError, 403),
    (ResourceNotFoundError, 404),
    (StateConflictError, 409),
)

ERROR_RESPONSES: dict[int | str, dict] = {
    status_code: {"model": ErrorResponse} for status_code in (400, 401, 403, 404, 409, 500)
}


def to_http_exception(exc: ServiceError | SuggestionPersistenceError) -> HTTPException:
    """Map a service failure to the status code clients should see."""

    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    if isinstance(exc, SuggestionPersistenceError):
        return HTTPException(status_code=500, detail=f"Failed to persist suggestion: {exc}")
    return HTTPException(status_code=500, detail=str(exc))
