from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from exam_portal.core.config import Settings
from exam_portal.core.db import Database
from exam_portal.core.errors import register_error_handlers
from exam_portal.core.logging_config import configure_logging
from exam_portal.services.media_store import BlobStore, LocalBlobStore
from exam_portal.api.auth import router as auth_router
from exam_portal.api.catalog import router as catalog_router
from exam_portal.api.submissions import router as submissions_router
from exam_portal.api.exam import router as exam_router
from exam_portal.api.students import router as students_router
from exam_portal.api.media import router as media_router


def create_app(settings: Settings | None = None, blob_store: BlobStore | None = None) -> FastAPI:
    """Build the API; configuration and storage are injected, never global."""
    settings = settings or Settings()
    logger = configure_logging(settings.log_level)

    db = Database(settings.database_url)
    media_dir = Path(settings.media_dir)
    media_dir.mkdir(parents=True, exist_ok=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Create tables on startup
        db.create_all()
        logger.info("Exam portal ready (media at %s)", media_dir.resolve())
        yield
        db.engine.dispose()

    app = FastAPI(title="Exam Portal API", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.blob_store = blob_store or LocalBlobStore(settings.media_dir, settings.public_base_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(catalog_router)
    app.include_router(submissions_router)
    app.include_router(exam_router)
    app.include_router(students_router)
    app.include_router(media_router)
    app.mount("/media", StaticFiles(directory=str(media_dir)), name="media")

    @app.get("/health")
    def health():
        return {"ok": True}

    return app

