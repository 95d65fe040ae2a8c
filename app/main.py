# app/main.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import (
    ConflictError, ExternalServiceError, Forbidden, InvalidTransition, NotFound,
    PreserverError, RepositoryError, ValidationError,
)
from app.routers.v1 import assignments, earnings, health, preservers

from sqlalchemy.ext.asyncio import create_async_engine
from app.database.postgres_assignment import PostgresAssignmentRepository
from app.database.postgres_profile import PostgresProfileRepository
from app.services.location_service import MapboxClient

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidTransition: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
    Forbidden: status.HTTP_403_FORBIDDEN,
    RepositoryError: status.HTTP_503_SERVICE_UNAVAILABLE,
    ExternalServiceError: status.HTTP_502_BAD_GATEWAY,
}

async def preserver_error_handler(request: Request, exc: PreserverError) -> JSONResponse:
    code = next(
        (c for cls, c in ERROR_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if code >= 500:
        logger.error("Request failed", extra={"path": request.url.path, "error": str(exc)})
    return JSONResponse(status_code=code, content={"detail": str(exc), "error": type(exc).__name__})


def create_app() -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_async_engine(settings.postgres_url, echo=settings.env == "dev", pool_pre_ping=True)
        assignment_repository = PostgresAssignmentRepository(engine)
        profile_repository = PostgresProfileRepository(engine)

        await assignment_repository.ensure_schema()

        app.state.assignment_repo = assignment_repository
        app.state.profile_repo = profile_repository
        app.state.geocoder = MapboxClient(
            settings.mapbox_access_token,
            base_url=settings.mapbox_base_url,
            timeout=settings.http_timeout_seconds,
        )

        try:
            yield
        finally:
            try:
                app.state.geocoder.close()
            finally:
                # Chiudi connessione DB
                await engine.dispose()

    app = FastAPI(
        title="Preserver Service",
        description="Servizio per assignments, matching e guadagni dei preserver",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"], allow_credentials=True,
        allow_methods=["*"], allow_headers=["*"],
    )
    app.add_exception_handler(PreserverError, preserver_error_handler)

    app.include_router(health.router, prefix="/api/v1", tags=["health"])
    app.include_router(assignments.router, prefix="/api/v1", tags=["assignments"])
    app.include_router(earnings.router, prefix="/api/v1", tags=["earnings"])
    app.include_router(preservers.router, prefix="/api/v1", tags=["preservers"])
    return app


app = create_app()
