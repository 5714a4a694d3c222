from contextlib import asynccontextmanager

from fastapi import FastAPI

from auth import router as auth_router
from core.db import Database
from core.errors import register_exception_handlers
from core.logging import configure_logging
from core.middleware import RequestLoggingMiddleware
from core.settings import Settings
from ingestion import router as ingestion_router
from tenants import router as tenants_router


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level, json_output=settings.log_json)

    if database is None:
        database = Database(
            settings.database_url or None,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout_s,
        )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        # One pool per process, shared by every request.
        await database.connect()
        try:
            if settings.db_apply_schema:
                await database.ensure_schema()
            yield
        finally:
            await database.close()

    app = FastAPI(title="Test Run Ingestion API", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database

    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(tenants_router.router, tags=["tenants"])
    app.include_router(auth_router.router, tags=["tokens"])
    app.include_router(ingestion_router.router, tags=["ingestion"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
