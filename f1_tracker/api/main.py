"""FastAPI application: read-only live standings API."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from f1_tracker.api.routes import standings
from f1_tracker.api.services import TrackerService
from f1_tracker.openf1_client import SessionDiscoveryError
from f1_tracker.utils.config import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events."""
    logger.info("Starting F1 Live Tracker API")

    service = TrackerService.get_instance()
    try:
        await service.start(settings["api"].get("session_key", "latest"))
    except SessionDiscoveryError as e:
        # API stays up and answers 503 until a session is available
        logger.error("Tracker not started: {}", e)

    yield

    await service.stop()
    logger.info("Shutting down F1 Live Tracker API")


app = FastAPI(
    title="F1 Live Tracker API",
    description="Live F1 standings reconciled from the OpenF1 feeds",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: frontends poll the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings["api"].get("cors_origins", []),
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Routes
app.include_router(standings.router, prefix="/api", tags=["standings"])


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "tracking": TrackerService.get_instance().is_running}


def cli() -> None:
    """CLI entry point for running the API via `f1-tracker-api`."""
    import uvicorn

    import f1_tracker.utils.logger  # noqa: F401

    host = settings.get("api", {}).get("host", "0.0.0.0")
    port = settings.get("api", {}).get("port", 8000)
    uvicorn.run("f1_tracker.api.main:app", host=host, port=port)
