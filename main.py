import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.config import settings
from eventhub.database import dispose_engine, get_db, init_models
from eventhub.router import build_command_router
from eventhub.routes import websocket
from eventhub.utils.metrics import set_app_info
from eventhub.utils.structured_logging import setup_structured_logging

logger = logging.getLogger("eventhub")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Tasks to run at application startup and shutdown."""
    logger.info("Starting up eventhub...")
    if settings.debug or settings.database_url.startswith("sqlite"):
        await init_models()
        logger.info("Database tables created (if not existing).")
    set_app_info(settings.app_version, settings.environment)

    yield

    logger.info("Shutting down eventhub...")
    await dispose_engine()


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    setup_structured_logging(settings.log_level, json_format=settings.json_logs, log_file=settings.log_file)

    app = FastAPI(
        title=settings.app_name,
        description="Websocket command server with a deduplicating browse ledger",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.command_router = build_command_router(settings)

    app.include_router(websocket.router, prefix="/ws")

    if settings.debug:
        logger.info(f"Running in {settings.environment} mode")
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app


app = create_app()


@app.get("/health", tags=["Monitoring"])
async def health_check() -> dict:
    """Liveness probe."""
    return {"status": "healthy", "version": settings.app_version}


@app.get("/ready", tags=["Monitoring"])
async def readiness_check(db: AsyncSession = Depends(get_db)) -> dict:
    """Readiness probe: verifies database connectivity."""
    await db.execute(text("SELECT 1"))
    return {"status": "ready"}


@app.get("/metrics", tags=["Monitoring"])
async def prometheus_metrics() -> Response:
    """Prometheus metrics in text exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.host, port=settings.port)
