"""
FB Marketplace Poster API.

Control surface over one QueueLoop plus a WebSocket push channel.
"""
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from poster.config import Config as PosterConfig
from poster.core import build_orchestrator
from poster.errors import ControlError
from poster.images import ImagePipeline
from poster.notifier import Notifier
from poster.queue_loop import QueueLoop
from poster.sheets import SheetsGateway

from .config import config
from .routes import automation_router, events_router, sheets_router
from .routes.events import ConnectionManager

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(config.LOG_FILE)
    ]
)

logger = logging.getLogger(__name__)


def default_gateway() -> SheetsGateway:
    return SheetsGateway(
        credentials_file=PosterConfig.GOOGLE_CREDENTIALS_FILE,
        service_account_info=PosterConfig.google_service_account_info(),
    )


def default_queue(gateway: SheetsGateway, notifier: Notifier) -> QueueLoop:
    return QueueLoop(
        gateway=gateway,
        orchestrator_factory=build_orchestrator,
        credentials=PosterConfig.credentials(),
        notifier=notifier,
        delay_range=PosterConfig.delay_range_seconds(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    logger.info("Starting FB Marketplace Poster API...")
    missing = config.validate()
    if missing:
        logger.warning(f"Missing settings, automation will fail until set: {', '.join(missing)}")
    ImagePipeline(upload_dir=PosterConfig.UPLOAD_DIR).cleanup_processed()
    logger.info("API startup complete")
    try:
        yield
    finally:
        # Shutdown
        logger.info("Shutting down FB Marketplace Poster API...")
        await app.state.queue.shutdown()


def create_app(queue: Optional[QueueLoop] = None, gateway: Optional[SheetsGateway] = None) -> FastAPI:
    app = FastAPI(
        title=config.API_TITLE,
        version=config.API_VERSION,
        description=config.API_DESCRIPTION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    gateway = gateway or (queue.gateway if queue is not None else default_gateway())
    notifier = queue.notifier if queue is not None else Notifier()
    connections = ConnectionManager()
    notifier.subscribe(connections.broadcast)

    app.state.gateway = gateway
    app.state.queue = queue or default_queue(gateway, notifier)
    app.state.connections = connections

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=config.CORS_ALLOW_CREDENTIALS,
        allow_methods=config.CORS_ALLOW_METHODS,
        allow_headers=config.CORS_ALLOW_HEADERS,
    )

    @app.exception_handler(ControlError)
    async def control_error_handler(request, exc: ControlError):
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": str(exc), "state": exc.state}
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc: Exception):
        """Global exception handler for unhandled errors."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal server error"}
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": config.API_VERSION,
            "automation": app.state.queue.state.phase.value,
        }

    # Include routers
    app.include_router(automation_router)
    app.include_router(sheets_router)
    app.include_router(events_router)
    return app


app = create_app()


def main():
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
