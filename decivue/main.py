"""Main application entry point for Decivue."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from decivue import __version__
from decivue.api.middleware import APIKeyMiddleware, RateLimitMiddleware
from decivue.logging import configure_logging
from decivue.utils.config import Settings, get_settings
from decivue.utils.exceptions import (
    DecisionLockedError,
    DecivueError,
    DuplicateError,
    GovernanceError,
    ImmutableConstraintError,
    InvalidOperationError,
    NotFoundError,
)

_logger = logging.getLogger("decivue.main")

# Most specific first; the first match wins.
_ERROR_STATUS: list[tuple[type[DecivueError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (DecisionLockedError, status.HTTP_409_CONFLICT),
    (DuplicateError, status.HTTP_409_CONFLICT),
    (ImmutableConstraintError, status.HTTP_409_CONFLICT),
    (GovernanceError, status.HTTP_403_FORBIDDEN),
    (InvalidOperationError, status.HTTP_400_BAD_REQUEST),
]


def _validate_production_env(settings: Settings) -> None:
    """Fail fast if required settings are missing in production."""
    if not settings.is_production():
        return

    missing = []
    if not settings.security.api_key:
        missing.append("DECIVUE_API_KEY")
    if not settings.database.url or "sqlite" in settings.database.url:
        missing.append("DATABASE_URL (must be PostgreSQL in production)")

    if missing:
        msg = "Production startup blocked, missing: " + ", ".join(missing)
        _logger.critical(msg)
        raise SystemExit(msg)


async def decivue_error_handler(request: Request, exc: DecivueError) -> JSONResponse:
    for error_type, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            break
    else:
        code = status.HTTP_400_BAD_REQUEST
    if code >= 500:
        _logger.error("Unhandled domain error on %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=code, content={"detail": str(exc)})


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    _logger.warning("Integrity error on %s: %s", request.url.path, exc.orig)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Request conflicts with existing data"},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    is_production = settings.is_production()
    configure_logging(settings.logging.level, settings.logging.json_output)

    app = FastAPI(
        title="Decivue API",
        description="Decision health tracking: assumptions, constraints and conflicts",
        version=__version__,
        debug=False if is_production else settings.debug,
        docs_url=None if is_production else "/api/docs",
        redoc_url=None if is_production else "/api/redoc",
    )

    app.add_middleware(
        RateLimitMiddleware,
        default_limit=settings.security.rate_limit_default,
        strict_limit=settings.security.rate_limit_strict,
    )
    app.add_middleware(APIKeyMiddleware, api_key=settings.security.api_key)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-API-Key"],
    )

    app.add_exception_handler(DecivueError, decivue_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)

    from decivue.api.v1 import router as api_router

    app.include_router(api_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": "Decivue API", "version": __version__}

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.on_event("startup")
    async def startup_event():
        """Create tables on startup."""
        _validate_production_env(settings)
        from decivue.core.database import init_database

        await init_database()

    @app.on_event("shutdown")
    async def shutdown_event():
        from decivue.core.database import close_database

        await close_database()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "decivue.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.reload,
    )
