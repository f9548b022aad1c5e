"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vingen import __version__
from vingen.api.v1 import health, sequences, vins
from vingen.config import settings
from vingen.logging import setup_logging
from vingen.services.sequences.selector import select_sequence_store

# Configure logging before anything else
setup_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown events."""
    logger.info("Starting VIN generator API", debug=settings.debug)

    # One store per process, chosen once
    store = select_sequence_store(settings)
    app.state.sequence_store = store
    logger.info("Sequence store initialized", backend=store.backend_name)

    yield

    logger.info("Shutting down VIN generator API")
    await store.close()


app = FastAPI(
    title="VIN Generator API",
    description="Issues unique VINs for customs batch documents",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(vins.router, prefix="/api/v1", tags=["vins"])
app.include_router(sequences.router, prefix="/api/v1", tags=["sequences"])
