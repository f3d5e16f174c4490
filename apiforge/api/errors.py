import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from apiforge.core.errors import (
    ApiForgeError,
    ConflictError,
    EmptyBundleError,
    InvalidSpecError,
    InvalidTransitionError,
    LedgerIntegrityError,
    NoOutputError,
    NotFoundError,
    StoreUnavailableError,
    TemplateError,
    ValidationError,
)

log = logging.getLogger(__name__)

_STATUS_CODES = [
    (NotFoundError, 404),
    (ValidationError, 422),
    (InvalidSpecError, 422),
    (TemplateError, 422),
    (NoOutputError, 409),
    (EmptyBundleError, 409),
    (InvalidTransitionError, 409),
    (ConflictError, 409),
    (LedgerIntegrityError, 409),
    (StoreUnavailableError, 503),
]


def status_code_for(exc: ApiForgeError) -> int:
    for exc_type, code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return 500


async def handle_domain_error(request: Request, exc: ApiForgeError) -> JSONResponse:
    code = status_code_for(exc)
    body = {"detail": str(exc), "error": exc.__class__.__name__}
    if isinstance(exc, ValidationError):
        body["violations"] = exc.violations
    if code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc, extra={"operation": "http"})
    return JSONResponse(status_code=code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiForgeError, handle_domain_error)
