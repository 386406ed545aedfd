from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eyecare.api.errors import register_exception_handlers
from eyecare.api.routes import backup, health, records
from eyecare.core.config import settings
from eyecare.core.logging_setup import logger
from eyecare.db.session import Database


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
    database: Database = application.state.database
    database.open()
    try:
        yield
    finally:
        database.close()


def _normalize_origin(value: str | None) -> str | None:
    if not value:
        return None
    cleaned = value.strip().rstrip("/")
    return cleaned or None


def create_app(database: Database | None = None) -> FastAPI:
    application = FastAPI(
        title=settings.project_name,
        debug=settings.debug,
        lifespan=lifespan,
    )
    application.state.database = database or Database(settings.database_url, echo=settings.debug)

    origins: list[str] = []
    for item in settings.allowed_origins:
        normalized = _normalize_origin(item)
        if normalized and normalized not in origins:
            origins.append(normalized)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    register_exception_handlers(application)

    application.include_router(health.router, prefix="/health")
    application.include_router(records.router, prefix=settings.api_v1_str)
    application.include_router(backup.router, prefix=settings.api_v1_str)

    @application.get("/")
    def root():
        return {"service": settings.project_name}

    logger.info("EyeCare API inicializada (%s)", settings.database_url)
    return application


app = create_app()


def run() -> None:
    uvicorn.run("eyecare.main:app", host=settings.host, port=settings.port, reload=settings.debug)
