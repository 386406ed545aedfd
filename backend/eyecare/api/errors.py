from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from eyecare.core.exceptions import (
    ConstraintViolation,
    EyeCareError,
    InvalidTransition,
    NotFound,
    ParseError,
    RecordLocked,
    StorageUnavailable,
    ValidationError,
)
from eyecare.core.logging_setup import logger

_STATUS_BY_ERROR: list[tuple[type[EyeCareError], int]] = [
    (NotFound, status.HTTP_404_NOT_FOUND),
    (ConstraintViolation, status.HTTP_409_CONFLICT),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (RecordLocked, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ParseError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (StorageUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: EyeCareError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(EyeCareError)
    async def eyecare_exception_handler(request: Request, exc: EyeCareError):
        code = status_for(exc)
        if code >= 500:
            logger.error("%s %s falhou: %s", request.method, request.url.path, exc)
        else:
            logger.info("%s %s recusado: %s", request.method, request.url.path, exc)
        content: dict[str, object] = {"detail": str(exc)}
        if isinstance(exc, ValidationError) and exc.violations:
            content["violations"] = [item.as_dict() for item in exc.violations]
        return JSONResponse(status_code=code, content=content)
