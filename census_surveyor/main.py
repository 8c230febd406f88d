"""
FastAPI application entry point.

For local development (no MongoDB or AWS needed):
    MONGODB_MOCK_MODE=true S3_MOCK_MODE=true uvicorn census_surveyor.main:app --reload

For production:
    gunicorn census_surveyor.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError

from . import __version__
from .api.dependencies import close_clients, get_household_repository
from .api.routes import health, households
from .config.settings import get_settings
from .core.errors import CensusError

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup checks configuration and creates the collection indexes;
    shutdown closes the shared MongoDB client.
    """
    settings = get_settings()

    logger.info(
        "Census Surveyor API starting",
        extra={
            "version": settings.api_version,
            "environment": settings.environment.value,
            "mock_mode": {
                "mongodb": settings.mongodb_mock_mode,
                "s3": settings.s3_mock_mode,
            }
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    try:
        get_household_repository(settings).ensure_indexes()
    except PyMongoError as e:
        # Readiness reports the database as down until it is reachable.
        logger.error("Could not create indexes", extra={"error": str(e)})

    yield

    logger.info("Census Surveyor API shutting down")
    close_clients()


def _field_path(loc: tuple) -> str:
    # Drop the "body"/"query"/"path" prefix FastAPI adds.
    parts = [str(part) for part in loc]
    if parts and parts[0] in ("body", "query", "path", "header"):
        parts = parts[1:]
    return ".".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as {"success": false, "error": ..., "errors"?: [...]}."""

    @app.exception_handler(CensusError)
    async def census_error_handler(request: Request, exc: CensusError):
        content = {"success": False, "error": exc.message}
        errors = getattr(exc, "errors", None)
        if errors:
            content["errors"] = errors

        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "error": exc.message,
                },
            )
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"path": _field_path(error.get("loc", ())), "message": error.get("msg", "")}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "; ".join(e["message"] for e in errors) or "Invalid request",
                "errors": errors,
            },
        )

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
        logger.warning(
            "Duplicate key",
            extra={"path": request.url.path, "error": str(exc)},
        )
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Duplicate field value entered"},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Logs the full error server-side and returns a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Server Error"},
        )


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Household census intake and survey API.

        ## Workflow

        1. **Register**: `POST /api/v1/households` with family name, address
           and focal point email. The survey starts out pending.
        2. **Fill in**: `PUT /api/v1/households/{id}` with partial updates.
        3. **Photo**: `PUT /api/v1/households/{id}/focal-point-photo` with a
           multipart `file`.
        4. **Complete**: `POST /api/v1/households/{id}/complete-survey`.

        Administrators can change the focal point email through
        `PUT /api/v1/households/{id}/admin-update`.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        households.router,
        prefix="/api/v1/households",
        tags=["Households"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "Census Surveyor API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    register_exception_handlers(app)

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "census_surveyor.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
