"""User Management Service - accounts, authentication and password lifecycle."""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.errors import ServiceError, Unauthorized
from app.routers import auth_router, users_router

settings = get_settings()

# Logging
logger = logging.getLogger("user_management")
logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

for warning in settings.validate():
    logger.warning(warning)

app = FastAPI(title="User Management Service", version="1.0.0")


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cross-Origin-Resource-Policy"] = "same-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        return response


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PREFIXES = ("/api/v1/auth/", "/api/v1/users")

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        # Path only: reset secrets travel in the URL, so only the route prefix is logged for them.
        path = request.url.path
        if path.startswith("/api/v1/auth/reset-password/"):
            path = "/api/v1/auth/reset-password/<secret>"
        method = request.method
        if method in ("POST", "PATCH", "DELETE") and path.startswith(self.AUDIT_PREFIXES):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                method,
                path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(AuditLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.CLIENT_URL] if settings.CLIENT_URL != "*" else ["*"],
    allow_credentials=settings.CLIENT_URL != "*",
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# API routers
app.include_router(auth_router)
app.include_router(users_router)


def error_response(status_code: int, message: str, code: str, details: dict | list | None = None) -> JSONResponse:
    """Uniform error envelope."""
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "message": message,
            "error": {"code": code, "details": details},
        },
    )


# --- Domain errors ---
@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Map service errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.error("%s %s -> %d %s: %s", request.method, request.url.path, exc.status_code, exc.error_code, exc)
    elif isinstance(exc, Unauthorized):
        logger.warning("%s %s -> 401 (%s)", request.method, request.url.path, exc.reason)
    else:
        logger.warning("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.error_code)
    return error_response(exc.status_code, exc.message, exc.error_code, exc.detail)


# --- Request validation: 422 with field-level messages ---
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Flatten pydantic errors into field/message pairs."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc) or None, "message": err.get("msg", "Invalid value")})
    return error_response(422, "Validation failed", "validation_error", errors)


# --- Framework HTTP errors (unknown route, wrong method) ---
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework HTTP errors in the same envelope."""
    codes = {404: "not_found", 405: "method_not_allowed"}
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return error_response(exc.status_code, message, codes.get(exc.status_code, "http_error"))


# --- Anything else ---
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Hide internals unless running in debug mode."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    details = {"type": type(exc).__name__, "message": str(exc)} if settings.DEBUG else None
    return error_response(500, "Internal Server Error", "internal_error", details)


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "user-management-service", "version": "1.0.0", "environment": settings.APP_ENV}
