"""
memehustle.api.main — FastAPI application entry point
======================================================

Run with::

    uvicorn memehustle.api.main:app --reload --port 5001

or ``python -m memehustle``.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from memehustle.api.deps import build_service, get_service, shutdown_service  # noqa: E402
from memehustle.api.routes.memes import router as memes_router  # noqa: E402
from memehustle.api.routes.realtime import router as realtime_router  # noqa: E402
from memehustle.config import MemeHustleConfig, load_config  # noqa: E402
from memehustle.errors import NotFound, ValidationError  # noqa: E402
from memehustle.services.meme_service import MemeService  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
      3) ``*`` — the demo client may be served from anywhere
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return ["*"]


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
async def _not_found(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Meme not found"})


async def _invalid(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})


async def _malformed(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "detail": jsonable_encoder(exc.errors())},
    )


async def _internal(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------
def create_app(
    cfg: MemeHustleConfig | None = None,
    service: MemeService | None = None,
) -> FastAPI:
    """Build the API.

    Pass *service* to use pre-built components (tests); otherwise they are
    built from *cfg* in the lifespan and torn down on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle — build and tear down components."""
        owned = getattr(app.state, "service", None) is None
        if owned:
            app.state.service = build_service(cfg or load_config())
        svc: MemeService = app.state.service
        health = svc.health()
        logger.info(
            "MemeHustle API started — mode=%s store=%s enrichment=%s",
            health["mode"], health["store"], health["enrichment"],
        )
        yield
        logger.info("MemeHustle API shutting down")
        if owned:
            await shutdown_service(svc)
            app.state.service = None
        else:
            await svc.aclose()

    app = FastAPI(
        title=(cfg.app_name if cfg else "MemeHustle") + " API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.service = service

    origins = _cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(NotFound, _not_found)
    app.add_exception_handler(ValidationError, _invalid)
    app.add_exception_handler(RequestValidationError, _malformed)
    app.add_exception_handler(Exception, _internal)

    app.include_router(memes_router, prefix="/api")
    app.include_router(realtime_router)

    @app.get("/api/health")
    def health(request: Request):
        return get_service(request).health()

    return app


app = create_app()
