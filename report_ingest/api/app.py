from __future__ import annotations

from fastapi import FastAPI

from ..logging.init import setup_logging
from .routes import router


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    setup_logging()
    application = FastAPI(title="report-ingest", version="0.1.0")
    application.include_router(router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application
