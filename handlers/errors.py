"""
handlers/errors.py
------------------
Maps domain errors to HTTP responses.

    ValidationError        400
    AccessDeniedError      403
    NotFoundError          404
    ConflictError          409  (InvalidStateError included)
    ProviderDeliveryError  502
    GenerationRaceError    503
    HTTPException          its own status, same {"error": ...} body
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from exceptions import (
    AccessDeniedError,
    BillTrackerError,
    ConflictError,
    GenerationRaceError,
    NotFoundError,
    ProviderDeliveryError,
    ValidationError,
)
from utils.logger import get_logger

logger = get_logger(__name__)

_STATUS = (
    (ValidationError, 400),
    (AccessDeniedError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (ProviderDeliveryError, 502),
    (GenerationRaceError, 503),
)


def status_for(error: BillTrackerError) -> int:
    for error_type, status in _STATUS:
        if isinstance(error, error_type):
            return status
    return 500


async def _domain_error(request: Request, exc: BillTrackerError) -> JSONResponse:
    status = status_for(exc)
    body = {"error": exc.message}
    if isinstance(exc, ProviderDeliveryError):
        body["failures"] = exc.failures
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} -> {status}: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {status}: {exc}")
    return JSONResponse(status_code=status, content=body)


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Auth, rate limit and routing errors use the same body as domain errors.
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BillTrackerError, _domain_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
