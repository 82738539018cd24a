from fastapi import Request, status
from fastapi.responses import JSONResponse

from ...services.errors import (
    ServiceError, NotFoundError, ForbiddenError, ConflictError, InvalidStateError,
    InvalidInputError, InternalServiceError
)

# Most specific first; the first matching base class decides the status code.
STATUS_BY_ERROR = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidStateError, status.HTTP_400_BAD_REQUEST),
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (InternalServiceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(exc: ServiceError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Turns service-layer errors into `{"detail", "code"}` JSON responses."""
    status_code = status_for(exc)
    detail = str(exc)
    if status_code >= 500:
        # The cause was already logged where it happened; keep internals out of the body.
        detail = InternalServiceError.__doc__
    return JSONResponse(status_code=status_code, content={"detail": detail, "code": exc.code})
