"""
mediashelf - Main Application

FastAPI application that serves:
- Filtered, cached directory listings of the media root
- File streaming from the media root
- PLS playlist CRUD under the playlist root
- Health check endpoint

All roots and policies come from one :class:`Settings` value handed to
``create_app``; when omitted it is loaded from the environment.
"""

import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from mediashelf.config import Settings, load_settings
from mediashelf.errors import MediaLibraryError
from mediashelf.routes.api import router as api_router
from mediashelf.services.content_lister import ContentLister
from mediashelf.services.listing_cache import TTLCache
from mediashelf.services.path_sandbox import PathSandbox
from mediashelf.services.playlist_store import PlaylistStore


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
def setup_logging(settings: Settings) -> None:
    # Remove default loguru handler to avoid duplicate output
    logger.remove()

    logger.add(
        sys.stdout,
        level="DEBUG" if settings.debug else settings.log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        colorize=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    # --- Startup ---
    logger.info("🚀 Starting mediashelf v{}", settings.app_version)
    logger.info("📋 Environment: {} | Debug: {}", settings.app_env, settings.debug)
    logger.info("📁 Media root: {}", settings.media_root)
    logger.info("📁 Playlist root: {}", settings.playlist_root)
    if not settings.media_root.is_dir():
        logger.warning("⚠️ Media root does not exist: {}", settings.media_root)

    logger.success(
        "✅ Application ready — listening on {}:{}", settings.app_host, settings.app_port
    )

    yield

    # --- Shutdown ---
    logger.info("🛑 Shutting down mediashelf...")
    app.state.listing_cache.clear()


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
async def _library_error_handler(request: Request, exc: MediaLibraryError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _os_error_handler(request: Request, exc: OSError):
    logger.error("❌ {} {} — I/O failure: {}", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Internal I/O error"})


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or load_settings()

    app = FastAPI(
        title="mediashelf",
        description="Browse and stream a confined media folder and manage PLS playlists.",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # ------------------------------------------------------------------
    # Core services
    # ------------------------------------------------------------------
    media_sandbox = PathSandbox(settings.media_root)
    listing_cache = TTLCache(ttl=settings.cache_ttl)

    app.state.settings = settings
    app.state.media_sandbox = media_sandbox
    app.state.listing_cache = listing_cache
    app.state.content_lister = ContentLister(
        media_sandbox,
        listing_cache,
        base_url=settings.base_url,
        extensions=settings.audio_extensions,
    )
    app.state.playlist_store = PlaylistStore(
        settings.playlist_root, serialize_writes=settings.playlist_write_lock
    )

    # ------------------------------------------------------------------
    # Middleware
    # ------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every incoming HTTP request with timing information."""
        start = time.time()
        response = await call_next(request)
        duration = round(time.time() - start, 3)
        status = response.status_code

        # Use different log levels based on status code
        if status >= 500:
            level = "ERROR"
        elif status >= 400:
            level = "WARNING"
        else:
            level = "INFO"
        logger.log(
            level,
            "📤 {method} {path} — {status} [{duration}s]",
            method=request.method,
            path=request.url.path,
            status=status,
            duration=duration,
        )
        return response

    app.add_exception_handler(MediaLibraryError, _library_error_handler)
    app.add_exception_handler(OSError, _os_error_handler)

    # ------------------------------------------------------------------
    # Register routers
    # ------------------------------------------------------------------
    app.include_router(api_router)

    return app


# ---------------------------------------------------------------------------
# Create the app instance (used by Uvicorn)
# ---------------------------------------------------------------------------
_settings = load_settings()
setup_logging(_settings)
app = create_app(_settings)


# ---------------------------------------------------------------------------
# Direct execution (development)
# ---------------------------------------------------------------------------
def main() -> None:
    import uvicorn

    uvicorn.run(
        "mediashelf.main:app",
        host=_settings.app_host,
        port=_settings.app_port,
        reload=_settings.debug,
        log_level="debug" if _settings.debug else "info",
    )


if __name__ == "__main__":
    main()
