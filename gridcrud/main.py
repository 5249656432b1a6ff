import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from gridcrud.api import system
from gridcrud.api.resource import build_resource_router
from gridcrud.core.config import settings
from gridcrud.core.deps import get_users_service
from gridcrud.core.errors import install_error_handlers
from gridcrud.core.http_hardening import install_http_hardening
from gridcrud.core.logging import setup_logging
from gridcrud.db.session import Database

logger = logging.getLogger(__name__)


def create_app(database: Database | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or Database.from_settings(settings)
        if settings.DB_CHECK_ON_STARTUP:
            try:
                db.ping()
            except SQLAlchemyError:
                logger.critical("Database is unreachable at startup: %s", db.engine.url.render_as_string())
                db.dispose()
                raise
        if settings.DB_CREATE_SCHEMA:
            db.create_schema()
        app.state.database = db
        logger.info(
            "Starting %s env=%s pagination_mode=%s resource_path=%s",
            settings.APP_NAME,
            settings.APP_ENV,
            settings.PAGINATION_MODE,
            settings.RESOURCE_PATH,
        )
        try:
            yield
        finally:
            logger.info("Shutting down %s", settings.APP_NAME)
            db.dispose()

    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    app = FastAPI(title=settings.APP_NAME, version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_http_hardening(app)
    install_error_handlers(app)
    app.include_router(system.router, tags=["System"])
    app.include_router(build_resource_router(get_users_service), prefix=settings.RESOURCE_PATH, tags=["Users"])

    @app.get("/", include_in_schema=False)
    def landing():
        return JSONResponse({"service": settings.APP_NAME, "status": "ok"})

    return app


app = create_app()
