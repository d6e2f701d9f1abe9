"""Error Handlers: map exceptions raised outside contracts to JSON responses.

Invariants:
    - SafeCallError -> its http_status with SafeCallError.to_response()
    - Starlette HTTPException (404 unknown route, 405 wrong method) -> {"message": detail}
    - RequestValidationError (bad query parameters) -> 400 with per-field details
    - Any other Exception -> 500 with a fixed body, never the exception text

Design Decisions:
    - Contract failures are values, not exceptions: routes turn CallResult into
      responses, so these handlers only see faults around a contract (session
      setup, routing, parameter parsing)
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from safecall.core.errors import ErrorCategory, ErrorSeverity, SafeCallError

logger = logging.getLogger(__name__)

INVALID_PARAMETERS_MESSAGE = "Invalid request parameters"

_INTERNAL_ERROR_BODY = {
    "error": {
        "code": "INTERNAL_ERROR",
        "message": "An unexpected error occurred",
        "category": ErrorCategory.INTERNAL.value,
        "severity": ErrorSeverity.CRITICAL.value,
    },
}


async def safecall_error_handler(request: Request, exc: SafeCallError):
    debug = f" {exc.context.debug_info}" if exc.context.debug_info else ""
    logger.error(
        f"{type(exc).__name__}: {exc.message}{debug}",
        extra={
            "contract": exc.context.contract,
            "call_state": exc.context.call_state,
            "error_code": exc.code,
            "path": request.url.path,
            "status_code": exc.http_status,
        },
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Starlette's {"detail"} becomes the API's {"message"}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.info(
        f"Rejected parameters: {', '.join(d['field'] for d in details)}",
        extra={"path": request.url.path, "status_code": 400},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": INVALID_PARAMETERS_MESSAGE, "details": details},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        exc_info=True,
        extra={"path": request.url.path, "status_code": 500},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_INTERNAL_ERROR_BODY,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Most specific first; Exception last."""
    app.add_exception_handler(SafeCallError, safecall_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
