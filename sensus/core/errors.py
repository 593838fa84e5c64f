"""Error taxonomy and the handlers that render it as the JSON envelope."""
import logging
import math

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("sensus.errors")


class APIError(HTTPException):
    """Base for every error the API returns on purpose."""

    status_code = 500
    error = "internal_error"
    message = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        error: str | None = None,
        details: list | dict | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message or self.message
        self.error = error or self.error
        self.details = details
        super().__init__(status_code=self.status_code, detail=self.message, headers=headers)

    def body(self) -> dict:
        payload = {"success": False, "error": self.error, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(APIError):
    status_code = 400
    error = "validation_error"
    message = "Invalid request"


class SuspiciousPayloadError(APIError):
    status_code = 400
    error = "suspicious_content"
    message = "Request contains disallowed content"


class AuthError(APIError):
    status_code = 401
    error = "invalid_credentials"
    message = "Invalid credentials"


class AuthorizationError(APIError):
    status_code = 403
    error = "insufficient_permissions"
    message = "Insufficient permissions"


class NotFoundError(APIError):
    status_code = 404
    error = "not_found"
    message = "Resource not found"


class ConflictError(APIError):
    status_code = 409
    error = "conflict"
    message = "Resource already exists"


class RateLimitError(APIError):
    status_code = 429
    error = "rate_limited"
    message = "Too many requests, try again later"

    def __init__(self, retry_after: float, message: str | None = None, *, error: str | None = None):
        self.retry_after = max(1, math.ceil(retry_after))
        super().__init__(message, error=error, headers={"Retry-After": str(self.retry_after)})

    def body(self) -> dict:
        payload = super().body()
        payload["retryAfter"] = self.retry_after
        return payload


def missing_fields(exc: RequestValidationError) -> list[str]:
    """Dotted field names the request failed to supply."""
    fields = []
    for err in exc.errors():
        if err.get("type") != "missing":
            continue
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        if loc:
            fields.append(".".join(loc))
    return fields


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.body(), headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    missing = missing_fields(exc)
    if missing:
        message = "Missing required fields: " + ", ".join(missing)
    else:
        message = "Invalid request data"
    violations = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        violations.append({"field": loc, "message": err.get("msg", "")})
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "validation_error",
            "message": message,
            "details": violations,
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error = {404: "not_found", 405: "method_not_allowed"}.get(exc.status_code, "http_error")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": error, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "internal_error", "message": "Internal server error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
