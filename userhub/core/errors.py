"""
Exception handlers producing the {message, code, details} error envelope.
"""
import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from userhub.config import settings
from userhub.core.exceptions import UserHubException, ValidationError

logger = logging.getLogger(__name__)

_STATUS_TO_CODE = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "PAYLOAD_TOO_LARGE",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
}


def error_body(message: str, code: str, details: Optional[Dict[str, Any]] = None) -> dict:
    body = {"message": message, "code": code}
    if details:
        body["details"] = details
    return body


def _validation_details(exc: RequestValidationError) -> Dict[str, list]:
    """Group pydantic errors by field name: {"email": ["..."], ...}"""
    details: Dict[str, list] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = loc[-1] if loc else "body"
        message = err.get("msg", "Invalid value")
        # pydantic prefixes custom validator messages
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.setdefault(field, []).append(message)
    return details


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for domain, validation, HTTP and unexpected errors."""

    @app.exception_handler(UserHubException)
    async def handle_userhub_exception(request: Request, exc: UserHubException):
        log_fn = logger.error if exc.status_code >= 500 else logger.warning
        log_fn(f"[{request.method} {request.url.path}] {exc.code}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.code, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        error = ValidationError(_validation_details(exc))
        logger.info(f"[{request.method} {request.url.path}] validation failed: {error.details}")
        return JSONResponse(
            status_code=error.status_code,
            content=error_body(error.message, error.code, error.details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        code = _STATUS_TO_CODE.get(exc.status_code, "HTTP_ERROR")
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(message, code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception(f"[{request.method} {request.url.path} - IP: {_client_ip(request)}] unhandled error")
        body = error_body("Internal server error", "INTERNAL_SERVER_ERROR")
        if not settings.is_production:
            body["stack"] = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"
