"""
==============================================================================
ERP Barcode Service - Application Entry Point
==============================================================================

FastAPI application with:
- RESTful API endpoints (lookup, validation, stock taking)
- WebSocket live scanning
- JWT authentication
- Background scan log writer

Everything stateful is built here and hung on ``app.state``:

    app.state
    ├── settings         Settings
    ├── database         DatabaseManager
    ├── security         SecurityManager
    ├── validator        BarcodeValidator
    ├── scan_log         ScanLogQueue (worker runs during the lifespan)
    └── decoder_factory  () -> SymbolDecoder

Usage:
------
    # Development
    uvicorn erp_barcode.main:app --reload

    # Production
    uvicorn erp_barcode.main:app --host 0.0.0.0 --port 8000

    # Tests
    app = create_app(settings, database=DatabaseManager(engine=engine))

==============================================================================
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from erp_barcode.barcode import BarcodeValidator
from erp_barcode.config import Settings, get_settings
from erp_barcode.core.exceptions import register_exception_handlers
from erp_barcode.core.security import SecurityManager
from erp_barcode.db import DatabaseManager, init_db
from erp_barcode.api.router import api_router
from erp_barcode.scanner.decoder import PyzbarDecoder, SymbolDecoder
from erp_barcode.services.scan_log_service import ScanLogQueue, ScanLogWriter
from erp_barcode.websockets import scanner_router


logger = logging.getLogger(__name__)


# ============================================================================
# APPLICATION FACTORY
# ============================================================================

class Application:
    """
    FastAPI application factory and manager.

    Handles application lifecycle including:
    - Startup and shutdown events
    - Middleware configuration
    - Router registration
    - Exception handler setup
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        database: Optional[DatabaseManager] = None,
        decoder_factory: Optional[Callable[[], SymbolDecoder]] = None
    ):
        """
        Initialize the application.

        A database passed in is owned by the caller and is not disposed on
        shutdown.
        """
        self._settings = settings or get_settings()
        self._owns_database = database is None
        self._database = database or DatabaseManager(self._settings.database_url)
        self._security = SecurityManager(self._settings)
        self._validator = BarcodeValidator(
            strict_upce=self._settings.strict_upce_checksum,
            numeric_code128=self._settings.numeric_code128_fallback,
        )
        self._scan_log = ScanLogQueue(
            ScanLogWriter(self._database.session_factory),
            maxsize=self._settings.scan_log_queue_size,
            enabled=self._settings.scan_log_enabled,
        )
        self._decoder_factory = decoder_factory or PyzbarDecoder
        self._app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create and configure the FastAPI application."""
        app = FastAPI(
            title=self._settings.app_name,
            version="1.0.0",
            description="Camera barcode scanning, product lookup and stock taking",
            lifespan=self._lifespan,
            docs_url="/docs",
            redoc_url="/redoc",
        )

        app.state.settings = self._settings
        app.state.database = self._database
        app.state.security = self._security
        app.state.validator = self._validator
        app.state.scan_log = self._scan_log
        app.state.decoder_factory = self._decoder_factory

        # Configure middleware
        self._configure_middleware(app)

        # Register exception handlers
        register_exception_handlers(app)

        # Register routers
        self._register_routers(app)

        # Register root endpoint
        self._register_root(app)

        return app

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        """Application lifespan manager."""
        # Startup
        self._startup()
        yield
        # Shutdown
        await self._shutdown()

    def _startup(self) -> None:
        """Application startup tasks."""
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {self._settings.app_name}")
        logger.info("=" * 60)

        if self._owns_database:
            self._settings.ensure_directories()

        # Initialize database
        init_db(self._database, self._security, self._settings)

        # Start scan log writer
        if self._settings.scan_log_enabled:
            self._scan_log.start()

        logger.info("=" * 60)
        logger.info(f"✅ {self._settings.app_name} ready")
        logger.info(f"📍 Running on http://{self._settings.host}:{self._settings.port}")
        logger.info(f"📖 API Docs: http://{self._settings.host}:{self._settings.port}/docs")
        logger.info("=" * 60)

    async def _shutdown(self) -> None:
        """Application shutdown tasks."""
        logger.info("🛑 Shutting down...")
        await self._scan_log.stop()
        if self._owns_database:
            self._database.dispose()
        logger.info("✅ Shutdown complete")

    def _configure_middleware(self, app: FastAPI) -> None:
        """Configure application middleware."""
        app.add_middleware(
            CORSMiddleware,
            allow_origins=self._settings.cors_origins_list,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _register_routers(self, app: FastAPI) -> None:
        """Register API routers."""
        # REST API routes
        app.include_router(api_router)

        # WebSocket routes
        app.include_router(scanner_router)

    def _register_root(self, app: FastAPI) -> None:
        """Register root endpoint."""

        @app.get("/", include_in_schema=False)
        async def root():
            """Redirect to the interactive API docs."""
            return RedirectResponse(url="/docs")

    @property
    def app(self) -> FastAPI:
        """Get the FastAPI application instance."""
        return self._app


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[DatabaseManager] = None,
    decoder_factory: Optional[Callable[[], SymbolDecoder]] = None
) -> FastAPI:
    """Build a configured application."""
    return Application(settings, database, decoder_factory).app


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )


# ============================================================================
# APPLICATION INSTANCE
# ============================================================================

configure_logging(get_settings())
app = create_app()


# ============================================================================
# ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "erp_barcode.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
