from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from video_studio.core.config import get_settings
from video_studio.core.errors import register_exception_handlers
from video_studio.core.logging import configure_logging
from video_studio.db.base import Base
from video_studio.db.session import engine
from video_studio.providers.registry import get_registry
from video_studio.routers import jobs, providers


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.auto_create_tables:
            import video_studio.models  # noqa: F401

            Base.metadata.create_all(bind=engine)
        get_registry()
        yield

    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(jobs.router)
    app.include_router(providers.router)

    @app.get("/healthz")
    @app.get("/api/healthz")
    def health() -> dict:
        return {"ok": True}

    return app


app = create_app()
