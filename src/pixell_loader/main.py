"""Target agent entry point: serve this process's runtime over HTTP."""

import signal
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from pixell_loader import __version__
from pixell_loader.api.health import health_check, router as health_router
from pixell_loader.api.middleware import (
    setup_error_handling,
    setup_logging_middleware,
    setup_metrics_middleware,
)
from pixell_loader.api.runtime import router as runtime_router
from pixell_loader.core.config import Settings
from pixell_loader.core.models import Target
from pixell_loader.runtime.local import LocalRuntime, get_local_runtime
from pixell_loader.utils.logging import bind_agent_context, setup_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = app.state.settings
    Path(settings.staging_dir).mkdir(parents=True, exist_ok=True)
    logger.info("Starting Pixell Loader agent", version=__version__, staging_dir=settings.staging_dir)
    yield
    logger.info("Shutting down Pixell Loader agent")


def create_app(settings: Optional[Settings] = None, runtime: Optional[LocalRuntime] = None) -> FastAPI:
    """Create the target agent application."""
    if settings is None:
        settings = Settings()

    setup_logging(settings.log_level, settings.log_format)
    bind_agent_context(Target.local().name)

    app = FastAPI(
        title="Pixell Loader Agent",
        version=__version__,
        description="Receives artifacts and activates code in this process",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.runtime = runtime if runtime is not None else get_local_runtime(settings)

    setup_error_handling(app)
    setup_logging_middleware(app)
    setup_metrics_middleware(app)

    app.include_router(health_router, prefix="/runtime", tags=["runtime"])
    app.include_router(runtime_router, prefix="/runtime", tags=["runtime"])

    @app.get("/health")
    async def top_level_health():
        return await health_check()

    if settings.metrics_enabled:
        app.mount("/metrics", make_asgi_app())

    return app


def run():
    """Run the target agent."""
    settings = Settings()

    def handle_sigterm(signum, frame):
        logger.info("Received SIGTERM, initiating graceful shutdown")
        sys.exit(0)

    signal.signal(signal.SIGTERM, handle_sigterm)

    config = uvicorn.Config(
        "pixell_loader.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,  # We handle logging ourselves
        access_log=False,  # Handled by middleware
    )

    server = uvicorn.Server(config)
    server.run()


if __name__ == "__main__":
    run()
