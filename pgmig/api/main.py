"""FastAPI application factory for the migration service."""
import logging
from typing import Optional, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pgmig.api.routers import database, migration
from pgmig.config.connection import ConnectionConfigError, ConnectionRegistry
from pgmig.core.errors import (
    DatabaseConnectionError,
    MigrationError,
    TableNotFoundError,
    ValidationError,
)
from pgmig.database import Connector, open_connection

logger = logging.getLogger(__name__)

VALUE_ERROR_PREFIX = "Value error, "


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        msg = str(error.get("msg", "Invalid request"))
        if msg.startswith(VALUE_ERROR_PREFIX):
            msg = msg[len(VALUE_ERROR_PREFIX):]
        loc = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(messages) or "Invalid request"


def _register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(ConnectionConfigError)
    async def config_handler(request: Request, exc: ConnectionConfigError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(DatabaseConnectionError)
    async def connection_handler(request: Request, exc: DatabaseConnectionError):
        logger.warning("%s: %s", exc.label, exc.details)
        return JSONResponse(
            status_code=400,
            content={"error": exc.label, "details": exc.details}
        )

    @app.exception_handler(TableNotFoundError)
    async def not_found_handler(request: Request, exc: TableNotFoundError):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(MigrationError)
    async def migration_handler(request: Request, exc: MigrationError):
        logger.error("Request failed: %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc)})


def create_app(
    registry: Optional[ConnectionRegistry] = None,
    connector: Connector = open_connection,
    cors_origins: Sequence[str] = ("*",)
) -> FastAPI:
    """Build the HTTP application.

    Args:
        registry: Preconfigured connections for the quick-mode and database
            manager routes (default: empty)
        connector: Connection factory; tests pass an in-memory one
        cors_origins: Origins allowed by the CORS middleware

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="pgmig",
        description="PostgreSQL table migration service",
        version="1.0.0"
    )
    app.state.registry = registry if registry is not None else ConnectionRegistry()
    app.state.connector = connector

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)

    app.include_router(migration.router, prefix="/api", tags=["migration"])
    app.include_router(database.router, prefix="/api", tags=["database"])

    @app.get("/health")
    async def health():
        return {"status": "ok", "quickMode": app.state.registry.quick_mode}

    return app
