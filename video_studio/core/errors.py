import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

REDACTED_MESSAGE = "Internal server error"


class ApiError(Exception):
    """Error that maps onto the `{error: {code, message}}` response envelope."""

    code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    expose_message = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ApiError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class AssetNotFoundError(ApiError):
    code = "ASSET_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class UnsupportedOperationError(ApiError):
    code = "UNSUPPORTED_OPERATION"
    status_code = status.HTTP_400_BAD_REQUEST


class JobNotCompleteError(ApiError):
    code = "JOB_NOT_COMPLETE"
    status_code = status.HTTP_400_BAD_REQUEST


class MissingProviderJobError(ApiError):
    code = "MISSING_PROVIDER_JOB"
    status_code = status.HTTP_400_BAD_REQUEST


class NotImplementedOperationError(ApiError):
    code = "NOT_IMPLEMENTED"
    status_code = status.HTTP_501_NOT_IMPLEMENTED
    expose_message = True


class ProviderError(ApiError):
    """Upstream provider failure, surfaced as a generic internal error.

    The provider's message only reaches the logs.
    """

    def __init__(self, message: str, provider_status: int | None = None) -> None:
        super().__init__(message)
        self.provider_status = provider_status


def error_body(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


def _format_validation_errors(exc: RequestValidationError) -> str:
    issues = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
        message = str(err.get("msg", "Invalid value"))
        issues.append(f"{location}: {message}" if location else message)
    return ", ".join(issues) or "Invalid request"


async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    message = exc.message
    if exc.status_code >= 500 and not exc.expose_message:
        logger.error(
            "api_error",
            extra={"path": request.url.path, "code": exc.code, "error": exc.message, "error_type": type(exc).__name__},
        )
        message = REDACTED_MESSAGE
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, message))


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("VALIDATION_ERROR", _format_validation_errors(exc)),
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        code, message = "NOT_FOUND", "Route not found"
    elif exc.status_code >= 500:
        code, message = "INTERNAL_ERROR", REDACTED_MESSAGE
    elif exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        code, message = "METHOD_NOT_ALLOWED", str(exc.detail)
    else:
        code, message = "HTTP_ERROR", str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=error_body(code, message), headers=exc.headers)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", extra={"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("INTERNAL_ERROR", REDACTED_MESSAGE),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, handle_api_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)
