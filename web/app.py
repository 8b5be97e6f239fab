"""
FastAPI application exposing the deal flow pipeline.

Production deployment configuration via environment variables.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.deal_flow import DealFlowEngine
from utils.config import Config
from web.pipeline_routes import router as pipeline_router

logger = logging.getLogger(__name__)

# =============================================================================
# Environment Configuration
# =============================================================================

IS_PRODUCTION = os.getenv("PRODUCTION", "").lower() == "true"

ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else []
if not ALLOWED_ORIGINS and not IS_PRODUCTION:
    # Development fallback only
    ALLOWED_ORIGINS = ["http://localhost:8000", "http://127.0.0.1:8000"]


def build_engine(config: Config) -> DealFlowEngine:
    """Engine wired to the in-process collaborators."""
    return DealFlowEngine.with_defaults(
        currency=config.currency,
        max_workers=config.scheduler_workers,
        auto_advance_delay_seconds=config.auto_advance_delay_seconds,
    )


def create_app(
    engine: Optional[DealFlowEngine] = None,
    config: Optional[Config] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        engine: Pre-built engine (tests). Built from config when omitted.
        config: Application configuration. Loaded from environment when omitted.
    """
    config = config or Config.load()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        pipeline = engine or build_engine(config)
        app.state.engine = pipeline
        pipeline.start()
        logger.info("Deal flow pipeline started")
        try:
            yield
        finally:
            pipeline.shutdown()
            logger.info("Deal flow pipeline stopped")

    app = FastAPI(
        title="Deal Flow Engine",
        description="Stage-based deal flow pipeline for discovered properties",
        version="0.1.0",
        docs_url=None if IS_PRODUCTION else "/docs",
        redoc_url=None if IS_PRODUCTION else "/redoc",
        openapi_url=None if IS_PRODUCTION else "/openapi.json",
        debug=config.debug and not IS_PRODUCTION,
        lifespan=lifespan,
    )

    # Healthchecks: no dependencies, no IO
    @app.get("/", include_in_schema=False)
    def root():
        return {"status": "ok"}

    @app.get("/health", include_in_schema=False)
    def health():
        return {"status": "healthy"}

    if ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    app.include_router(pipeline_router)

    return app


# Create app instance for uvicorn
app = create_app()
