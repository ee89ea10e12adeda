"""FastAPI application serving the database-health banner's data."""

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from newsdesk.api.models import StatusResponse
from newsdesk.connectivity import ConnectivityProber, ConnectivityStatus
from newsdesk.notices import connectivity_banner

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start the connectivity prober and stop it on shutdown."""
    logger.info("Starting connectivity prober...")
    prober = ConnectivityProber()
    app.state.prober = prober
    prober.start()

    yield

    logger.info("Stopping connectivity prober...")
    await prober.aclose()


app = FastAPI(
    title="Newsdesk Status API",
    description="Backend connectivity status for the news site front-end",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


def get_prober(request: Request) -> ConnectivityProber:
    """Return the prober created by the lifespan handler."""
    return request.app.state.prober


def build_status_response(status: ConnectivityStatus, probing: bool) -> StatusResponse:
    return StatusResponse(
        connectivity=status,
        banner=connectivity_banner(status),
        probing=probing,
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/status", response_model=StatusResponse)
async def get_status(request: Request) -> StatusResponse:
    """Return the last known connectivity status without probing."""
    prober = get_prober(request)
    return build_status_response(prober.current_status(), prober.is_running)


@app.post("/status/refresh", response_model=StatusResponse)
async def refresh_status(request: Request) -> StatusResponse:
    """Probe the backend now, as the banner's "Try Again" action does."""
    prober = get_prober(request)
    status = await prober.check_now()
    return build_status_response(status, prober.is_running)
