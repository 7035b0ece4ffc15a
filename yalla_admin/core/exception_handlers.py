"""Global exception handlers producing the JSON error envelope"""

from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from yalla_admin.core.config import logger, settings
from yalla_admin.core.errors import ERROR_MESSAGES, AppException, ErrorCode, ErrorType

HTTP_STATUS_ERRORS = {
    400: (ErrorCode.VALIDATION_ERROR, ErrorType.VALIDATION),
    401: (ErrorCode.AUTH_UNAUTHORIZED, ErrorType.UNAUTHORIZED),
    403: (ErrorCode.FORBIDDEN, ErrorType.FORBIDDEN),
    404: (ErrorCode.NOT_FOUND, ErrorType.NOT_FOUND),
    405: (ErrorCode.VALIDATION_ERROR, ErrorType.VALIDATION),
    409: (ErrorCode.CONFLICT, ErrorType.CONFLICT),
    429: (ErrorCode.RATE_LIMIT_EXCEEDED, ErrorType.RATE_LIMIT),
}


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    error_type: str,
    action: str | None = None,
    details: dict | None = None,
) -> JSONResponse:
    """Build the error envelope"""
    error = {"code": code, "message": message, "type": error_type, "action": action}
    if details:
        error["details"] = details

    headers = {}
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id:
        headers["X-Correlation-ID"] = correlation_id

    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error,
            "path": request.url.path,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        headers=headers,
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"{exc.code}: {exc.message}",
        extra={"error_code": exc.code, "path": request.url.path, "status_code": exc.status_code},
    )
    return error_response(
        request,
        exc.status_code,
        exc.code,
        exc.message,
        exc.error_type,
        action=exc.action,
        details=exc.details,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "code": error.get("type", "invalid"),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return error_response(
        request,
        400,
        ErrorCode.VALIDATION_ERROR,
        ERROR_MESSAGES[ErrorCode.VALIDATION_ERROR],
        ErrorType.VALIDATION,
        details={"errors": errors},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code, error_type = HTTP_STATUS_ERRORS.get(exc.status_code, (ErrorCode.INTERNAL_ERROR, ErrorType.INTERNAL))
    message = exc.detail if isinstance(exc.detail, str) else ERROR_MESSAGES[code]
    return error_response(request, exc.status_code, code, message, error_type)


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return error_response(request, 400, ErrorCode.VALIDATION_ERROR, str(exc), ErrorType.VALIDATION)


async def lookup_error_handler(request: Request, exc: LookupError) -> JSONResponse:
    message = str(exc).strip("'\"") or ERROR_MESSAGES[ErrorCode.NOT_FOUND]
    return error_response(request, 404, ErrorCode.NOT_FOUND, message, ErrorType.NOT_FOUND)


async def permission_error_handler(request: Request, exc: PermissionError) -> JSONResponse:
    message = str(exc) or ERROR_MESSAGES[ErrorCode.AUTH_UNAUTHORIZED]
    return error_response(
        request,
        401,
        ErrorCode.AUTH_UNAUTHORIZED,
        message,
        ErrorType.UNAUTHORIZED,
        action="Войдите в систему",
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        exc_info=exc,
        extra={"correlation_id": getattr(request.state, "correlation_id", None)},
    )
    message = str(exc) if settings.is_development else ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR]
    return error_response(request, 500, ErrorCode.INTERNAL_ERROR, message, ErrorType.INTERNAL)


def register_exception_handlers(app: FastAPI) -> None:
    """Register every handler on the application"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(LookupError, lookup_error_handler)
    app.add_exception_handler(PermissionError, permission_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
