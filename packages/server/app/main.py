"""
TaskHub API Server

Entry point for the FastAPI application.
"""

from contextlib import asynccontextmanager
from http import HTTPStatus

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.auth import UserLookupError
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from app.core.oidc import close_oidc_client
from app.core.redis import close_redis
from app.api import router as api_router
from app.api.auth import router as auth_router
from taskhub_shared.schemas.common import ErrorDetail, ErrorResponse

settings = get_settings()
log = structlog.get_logger()


def _error(
    status: int,
    code: str,
    message: str,
    details: list | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(code=code, message=message, status=status, details=details)
    )
    return JSONResponse(
        status_code=status,
        content=jsonable_encoder(body.model_dump(exclude_none=True)),
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Wrap HTTPException details in the error envelope."""
    try:
        code = HTTPStatus(exc.status_code).name
    except ValueError:
        code = "ERROR"
    return _error(exc.status_code, code, str(exc.detail), headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report request-body validation failures as 400 Bad Request."""
    log.info("http.validation_failed", errors=len(exc.errors()))
    return _error(400, "VALIDATION_FAILED", "Request validation failed.", list(exc.errors()))


async def user_lookup_exception_handler(request: Request, exc: UserLookupError):
    log.error("auth.user_lookup_failed", email=exc.email)
    return _error(500, "USER_LOOKUP_FAILED", "Authenticated user could not be loaded.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("TaskHub starting", frontend_url=settings.frontend_url)
    yield
    log.info("TaskHub shutting down")
    await close_oidc_client()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="TaskHub",
        description="Projects and tasks for signed-in users.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware (last added runs outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=[
            "Authorization",
            "Cache-Control",
            "Content-Type",
            "X-Requested-With",
            "Accept",
            "Origin",
            "Cookie",
        ],
        max_age=3600,
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(UserLookupError, user_lookup_exception_handler)

    # OAuth2 login routes (root level)
    app.include_router(auth_router, tags=["Authentication"])

    # API routes
    app.include_router(api_router, prefix="/api")

    @app.get("/", response_class=PlainTextResponse, tags=["System"])
    async def home():
        """Liveness string."""
        return "Backend is running!"

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    uvicorn.run("app.main:app", host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    run()
