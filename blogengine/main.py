"""BlogEngine comments API application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from blogengine.accounts.service import (
    AccountDirectory,
    CassandraAccountDirectory,
    InMemoryAccountDirectory,
)
from blogengine.auth.permissions import PermissionDeniedError, SecurityGate
from blogengine.comments.router import router as comments_router
from blogengine.comments.service import CommentService
from blogengine.config import get_settings
from blogengine.core.context import get_request_id
from blogengine.core.database import init_cassandra, shutdown_cassandra
from blogengine.core.logging import configure_structlog, get_logger
from blogengine.core.middleware import RequestContextMiddleware
from blogengine.health import router as health_router
from blogengine.posts.store import CassandraPostStore, InMemoryPostStore, PostStore


settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)

GENERIC_FAILURE = "An unexpected error occurred. Please try again later."


def build_stores() -> tuple[PostStore, AccountDirectory]:
    """Create the post store and account directory for the configured backend.

    Falls back to empty in-memory stores when Cassandra cannot be reached.
    """
    settings = get_settings()
    if not settings.uses_cassandra:
        return InMemoryPostStore(), InMemoryAccountDirectory()

    try:
        session = init_cassandra(settings)
        store = CassandraPostStore(session, settings.cassandra_keyspace)
        loaded = store.load()
    except Exception as e:
        logger.warning("database_init_skipped", error=str(e), fallback="memory")
        return InMemoryPostStore(), InMemoryAccountDirectory()

    logger.info("post_store_loaded", backend="cassandra", posts=loaded)
    return store, CassandraAccountDirectory(session, settings.cassandra_keyspace)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    store, accounts = build_stores()
    app.state.comment_service = CommentService(store, accounts, SecurityGate())
    logger.info("comment_service_initialized", storage=type(store).__name__)

    try:
        yield
    finally:
        logger.info("shutting_down_application")
        shutdown_cassandra()


def error_response(
    request: Request, status_code: int, message: str, **extra: Any
) -> ORJSONResponse:
    """Build the error body every handler answers with."""
    request_id = getattr(request.state, "request_id", None) or get_request_id()
    return ORJSONResponse(
        status_code=status_code,
        content={
            "error": True,
            "message": message,
            "status_code": status_code,
            "request_id": request_id,
            **extra,
        },
    )


async def on_http_error(request: Request, exc: StarletteHTTPException) -> ORJSONResponse:
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=str(exc.detail),
        path=request.url.path,
    )
    # Server-side details stay in the log
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return error_response(request, exc.status_code, "Internal server error")
    return error_response(request, exc.status_code, str(exc.detail))


async def on_permission_denied(
    request: Request, exc: PermissionDeniedError
) -> ORJSONResponse:
    logger.warning("permission_denied", right=exc.right.value, path=request.url.path)
    return error_response(request, status.HTTP_403_FORBIDDEN, exc.message)


async def on_invalid_request(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    problems = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    logger.info("request_rejected", path=request.url.path, problems=problems)
    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        details=problems,
    )


async def on_unhandled(request: Request, exc: Exception) -> ORJSONResponse:
    logger.exception(
        "unhandled_exception",
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )
    return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_FAILURE)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, on_http_error)
    app.add_exception_handler(PermissionDeniedError, on_permission_denied)
    app.add_exception_handler(RequestValidationError, on_invalid_request)
    app.add_exception_handler(Exception, on_unhandled)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    expose_docs = settings.is_development

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="BlogEngine comments API",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if expose_docs else None,
        redoc_url=None,
        openapi_url="/openapi.json" if expose_docs else None,
    )

    # Added last so it wraps CORS and sees every request
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(comments_router)

    @app.get("/", include_in_schema=False)
    def root() -> dict[str, str | None]:
        return {
            "message": "BlogEngine API",
            "version": settings.app_version,
            "docs": app.docs_url,
        }

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn using the configured bind settings."""
    settings = get_settings()
    uvicorn.run(
        "blogengine.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        workers=None if settings.api_reload else settings.api_workers,
        log_config=None,
    )
