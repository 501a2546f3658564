"""
Main FastAPI Application for the POC tracker.
Serves the /api/v1 REST endpoints over a CompletionEngine.

Run with:
    uvicorn poc_tracker.main:app
"""
import logging
from typing import Optional

from fastapi import FastAPI

from poc_tracker import __version__
from poc_tracker.api.v1 import api_router as v1_router
from poc_tracker.config import configure_logging, get_config
from poc_tracker.engine import CompletionEngine
from poc_tracker.infrastructure.storage import StoragePort

logger = logging.getLogger(__name__)


def create_app(engine: Optional[CompletionEngine] = None) -> FastAPI:
    """
    Build the application.

    Args:
        engine: Engine to serve; when omitted one is created on startup
            from the configured database and closed on shutdown
    """
    app = FastAPI(
        title="POC Tracker",
        description="Completion dates and percentage-of-completion per project phase",
        version=__version__,
    )
    app.include_router(v1_router)
    app.state.engine = engine

    @app.on_event("startup")
    async def startup_event():
        if app.state.engine is None:
            config = get_config()
            configure_logging(config)
            storage = StoragePort(config=config).open()
            app.state.engine = CompletionEngine(storage, config=config)
            logger.info("POC tracker API started")

    @app.on_event("shutdown")
    async def shutdown_event():
        if engine is None and app.state.engine is not None:
            app.state.engine.storage.close()

    return app


app = create_app()
