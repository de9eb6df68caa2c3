# storefront/api/errors.py
"""Exception handlers that render every failure as the standard error envelope."""
from datetime import datetime, timezone
from typing import Any, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.domain.errors import AppError, FieldError
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

SENSITIVE_WORDS = ("password", "token", "secret", "key", "auth", "credential")
GENERIC_MESSAGE = "An error occurred while processing your request"

_HTTP_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "RESOURCE_EXISTS",
    422: "BUSINESS_RULE_VIOLATION",
}


def sanitize(message: str) -> str:
    if settings.is_production() and any(w in message.lower() for w in SENSITIVE_WORDS):
        return GENERIC_MESSAGE
    return message


def error_body(request: Request, code: str, message: str, details: Any = None) -> dict:
    error = {
        "code": code,
        "message": sanitize(message),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": request.url.path,
    }
    if details:
        error["details"] = details
    return {"success": False, "error": error}


def _field_name(loc) -> str:
    # drop the "body" / "query" / "path" prefix
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


def validation_details(errors: List[dict]) -> List[FieldError]:
    details = []
    for err in errors:
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.append(FieldError(_field_name(err.get("loc", ())), message))
    return details


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

    details = None
    if isinstance(exc.details, list) and exc.details and not settings.VALIDATION_FIRST_ERROR_ONLY:
        details = [d.to_dict() if isinstance(d, FieldError) else d for d in exc.details]

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.code, exc.message, details),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = validation_details(exc.errors())
    if not fields:
        message = "Validation failed"
    elif fields[0].field:
        message = f"{fields[0].field}: {fields[0].message}"
    else:
        message = fields[0].message

    details = None
    if len(fields) > 1 and not settings.VALIDATION_FIRST_ERROR_ONLY:
        details = [f.to_dict() for f in fields]

    logger.info(f"Request validation failed on {request.method} {request.url.path}: {message}")
    return JSONResponse(status_code=400, content=error_body(request, "VALIDATION_ERROR", message, details))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_CODES.get(exc.status_code, "INTERNAL_SERVER_ERROR" if exc.status_code >= 500 else "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=error_body(request, "INTERNAL_SERVER_ERROR", "Internal server error"),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
