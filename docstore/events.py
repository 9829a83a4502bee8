import logging
from pathlib import Path

from fastapi import FastAPI

from docstore.core.settings import settings
from docstore.db.session import engine

logger = logging.getLogger(__name__)


def register_event_handlers(app: FastAPI) -> None:
    @app.on_event("startup")
    async def on_startup() -> None:
        Path(settings.local_upload_dir).mkdir(parents=True, exist_ok=True)
        logger.info(
            "Application startup",
            extra={"fields": {"environment": settings.environment, "local_root": settings.local_upload_dir}},
        )

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("Application shutdown")
        await engine.dispose()
