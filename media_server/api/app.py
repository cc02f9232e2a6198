import asyncio
import logging
import math
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from media_server.core.config.settings import Settings, settings as default_settings
from media_server.core.errors import FileTooLargeError, MediaServerError, RateLimitedError
from media_server.features.disk_guard.domain.interfaces import IDiskStats
from media_server.features.video_processing.domain.interfaces import ICommandRunner
from .container import MediaServices
from .routers.files import files_router
from .routers.health import health_router
from .routers.library import library_router
from .routers.upload import upload_router

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    # Media is embedded by frontends on other origins
    "Cross-Origin-Resource-Policy": "cross-origin",
}

UNLOGGED_PATHS = {"/health"}
UPLOAD_PATHS = {"/upload"}

# Room for multipart boundaries and part headers around the file itself
MULTIPART_OVERHEAD_BYTES = 64 * 1024


def create_app(
    settings: Optional[Settings] = None,
    disk_stats: Optional[IDiskStats] = None,
    command_runner: Optional[ICommandRunner] = None,
) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services: MediaServices = app.state.services
        await asyncio.to_thread(services.storage.fs.ensure_dirs)
        await asyncio.to_thread(services.index.load)

        removed = await asyncio.to_thread(
            services.storage.fs.cleanup_orphaned_temp_files,
            settings.TEMP_FILE_MAX_AGE_SECONDS,
        )
        if removed:
            logger.info(f"Removed {removed} orphaned temp files")

        await services.videos.check_tools()
        if not services.images.supports_heif:
            logger.warning("pillow-heif not installed: HEIC/HEIF uploads will be rejected as undecodable")

        logger.info(f"Media server ready. Public URL: {settings.PUBLIC_URL}")
        logger.info(f"Upload directory: {settings.UPLOAD_DIR.resolve()}")
        logger.info(f"API key required: {'yes' if settings.API_KEY else 'no'}")
        logger.info(f"Minimum free space: {settings.MIN_FREE_SPACE_MB}MB")
        try:
            yield
        finally:
            services.close()
            logger.info("Media server stopped")

    app = FastAPI(title="Media Server", version="1.0.0", lifespan=lifespan)

    # Storage must exist before the index database file is opened
    settings.ensure_dirs()
    app.state.services = MediaServices.build(
        settings,
        disk_stats=disk_stats,
        command_runner=command_runner,
    )

    # Innermost: the early 413 still gets CORS and security headers
    @app.middleware("http")
    async def reject_oversized_uploads(request: Request, call_next):
        if request.method == "POST" and request.url.path in UPLOAD_PATHS:
            declared = request.headers.get("content-length", "")
            if declared.isdigit() and int(declared) > settings.MAX_FILE_SIZE_BYTES + MULTIPART_OVERHEAD_BYTES:
                # Refused before the multipart body is read; read_limited is the backstop
                error = FileTooLargeError("File too large", {"maxFileSizeMB": settings.MAX_FILE_SIZE_MB})
                return JSONResponse(error.to_payload(), status_code=error.status_code)
        return await call_next(request)

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=".*",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        if request.url.path in UNLOGGED_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        client = request.client.host if request.client else "-"
        logger.info(
            f"{client} {request.method} {request.url.path} "
            f"{response.status_code} {elapsed_ms:.1f}ms"
        )
        return response

    @app.exception_handler(MediaServerError)
    async def media_server_error_handler(request: Request, exc: MediaServerError):
        headers = None
        if isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(max(1, math.ceil(exc.retry_after)))}
        return JSONResponse(exc.to_payload(), status_code=exc.status_code, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()]
        return JSONResponse(
            {"error": "Malformed request", "reason": "bad_request", "details": details},
            status_code=400,
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            {"error": "Internal server error", "reason": "internal_error"},
            status_code=500,
        )

    app.include_router(health_router)
    app.include_router(upload_router)
    app.include_router(library_router)
    app.include_router(files_router)

    return app
