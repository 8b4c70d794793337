"""FastAPI application wiring for the account service."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .api.routes import router as v1_router
from .config import get_settings
from .domain.service import AccountService

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared account service (secret, store, hasher) for the app lifecycle."""
    app.state.account_service = AccountService.from_settings(settings)
    yield


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(v1_router)
