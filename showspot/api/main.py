"""
showspot.api.main — FastAPI application entry point
=====================================================

Run with::

    uvicorn showspot.api.main:app --reload --port 8000

or ``python -m showspot``.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from showspot import __version__  # noqa: E402
from showspot.api.deps import get_config, get_engine  # noqa: E402
from showspot.api.routes.backlines import router as backlines_router  # noqa: E402
from showspot.api.routes.shows import router as shows_router  # noqa: E402
from showspot.api.routes.tickets import router as tickets_router  # noqa: E402
from showspot.api.routes.votes import router as votes_router  # noqa: E402
from showspot.database.engine import init_db  # noqa: E402
from showspot.errors import DomainError  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine, verify tables."""
    engine = get_engine()
    init_db(engine)
    cfg = get_config()
    logger.info("%s API started — engine ready (%s)", cfg.app_name, engine.url.database)
    yield
    logger.info("%s API shutting down", cfg.app_name)


app = FastAPI(
    title="ShowSpot Booking API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map every domain error to ``{"error": code, "message": message}``."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Mount routers
app.include_router(shows_router, prefix="/api")
app.include_router(votes_router, prefix="/api")
app.include_router(tickets_router, prefix="/api")
app.include_router(backlines_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
