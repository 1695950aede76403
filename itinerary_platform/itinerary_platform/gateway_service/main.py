"""
Itinerary Gateway - sign-up/sign-in, itinerary pass-through and health checks
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth import CredentialService
from .config import Settings, get_settings
from .db import ConnectionManager, DatabaseConfig, init_db
from .errors import ConfigError, ConnectError, CredentialError
from .routes import credentials, health, itinerary
from .store import SqlCredentialStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    - Validate database configuration and connect (fatal on failure)
    - Create the users table
    - Wire the credential service and the itinerary client

    Shutdown:
    - Close the itinerary client, the pool and the Cloud SQL connector
    """
    settings: Settings = app.state.settings
    configure_logging(settings.LOG_LEVEL)

    try:
        manager = ConnectionManager.establish(DatabaseConfig.from_settings(settings))
    except (ConfigError, ConnectError) as e:
        logger.critical("Startup aborted: %s", e)
        raise

    try:
        if settings.DB_CREATE_SCHEMA:
            init_db(manager.engine)
    except Exception:
        manager.close()
        raise

    app.state.db = manager
    app.state.credential_service = CredentialService(SqlCredentialStore(manager.engine))
    app.state.itinerary_client = httpx.AsyncClient(
        timeout=settings.ITINERARY_TIMEOUT,
        transport=app.state.itinerary_transport,
    )
    logger.info("Gateway ready")

    try:
        yield
    finally:
        await app.state.itinerary_client.aclose()
        manager.close()
        logger.info("Database connections closed")


async def credential_error_handler(request: Request, exc: CredentialError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "invalid request body"})


def create_app(
    settings: Optional[Settings] = None,
    itinerary_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Itinerary Gateway",
        description="User sign-up/sign-in and itinerary planner pass-through",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.itinerary_transport = itinerary_transport

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(CredentialError, credential_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(health.router)
    app.include_router(credentials.router)
    app.include_router(itinerary.router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
