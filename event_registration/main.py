from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from event_registration.core.config import Settings, get_settings
from event_registration.core.exception_handlers import register_exception_handlers
from event_registration.core.logging import setup_logging
from event_registration.database.db import Database
from event_registration.routes import events, health, registrations, users


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)
    database = database or Database.from_url(
        settings.database_url,
        echo=settings.database_echo,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Create all tables (in production, use migrations such as Alembic)
        if settings.create_tables_on_startup:
            database.create_all()
        logger.info("{} started ({} backend)", settings.app_name, database.dialect)
        yield
        database.dispose()

    app = FastAPI(title="Event Registration API", version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # Include the routers
    app.include_router(events.router)
    app.include_router(registrations.router)
    app.include_router(users.router)
    app.include_router(health.router)
    return app


app = create_app()
