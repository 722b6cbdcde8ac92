"""
FastAPI application entry point for the rice field monitoring API.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rice_monitor.config import DEFAULT_JWT_SECRET, configure_logging, get_settings
from rice_monitor.dependencies import get_db_client, get_sync_engine, get_sync_queue
from rice_monitor.errors import ServiceError, ValidationError, describe_validation_errors
from rice_monitor.routes import router
from rice_monitor.worker import SyncWorkerPool
from shared.types import utcnow

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code, "message": message})


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.code, exc.message)


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _error(400, ValidationError.code, describe_validation_errors(exc.errors()))


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "Internal server error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)
    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET is not set; using the development default")

    engine = get_sync_engine()
    try:
        written = engine.ensure_all_headers()
        logger.info("Sheet headers checked on %d spreadsheets", written)
    except Exception:
        logger.exception("Failed to check sheet headers on startup")

    pool = None
    if settings.run_sync_workers_in_app:
        pool = SyncWorkerPool(
            db=get_db_client(),
            queue=get_sync_queue(),
            engine=engine,
            workers=settings.sync_workers,
        )
        pool.start()
    try:
        yield
    finally:
        if pool is not None:
            pool.shutdown(timeout=settings.sync_shutdown_timeout_seconds)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Rice Monitor API", version=VERSION, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["Origin", "Content-Length", "Content-Type", "Authorization"],
    )
    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    @app.get("/health")
    def health():
        return {"status": "healthy", "timestamp": utcnow(), "version": VERSION}

    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()


def main() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("rice_monitor.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
