"""Huntengine HTTP entry point.

A thin FastAPI surface over the engine for an orchestration front end.
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from .api.router import api_router
from .database import close_engine, create_tables
from .dependencies import get_app_config
from .middleware.error_handler import register_error_handlers
from .middleware.request_id import RequestIDMiddleware
from .utils.logging import get_logger, setup_logging

logger = get_logger("huntengine.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: create tables on startup, dispose engine on shutdown."""
    config = get_app_config()
    logger.info("huntengine_starting", host=config.host, port=config.port)
    await create_tables(config)
    yield
    await close_engine()
    logger.info("huntengine_stopped")


def create_app() -> FastAPI:
    config = get_app_config()
    setup_logging(
        debug=config.debug,
        log_dir=config.log_dir,
        log_max_bytes=config.log_max_bytes,
        log_backup_count=config.log_backup_count,
    )

    app = FastAPI(title=config.app_name, lifespan=lifespan)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)
    app.include_router(api_router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "app": config.app_name}

    return app


app = create_app()


def run() -> None:
    """Console entry point."""
    config = get_app_config()
    uvicorn.run("huntengine.main:app", host=config.host, port=config.port)


if __name__ == "__main__":
    run()
