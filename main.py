#!/usr/bin/env python3

"""
Main application entry point for the WritersInn task marketplace backend.

Architecture: FastAPI application with an async SQL database, local upload
storage and a background notification dispatcher.
Key Features: Lifecycle management, database health checks, error handling, CORS configuration.
"""

import asyncio
import sys

# Add this block to switch asyncio event loop policy on Windows
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

import errno
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from app.api.admin import router as admin_router
from app.api.auth import router as auth_router
from app.api.http import router as http_router
from app.api.users import router as users_router
from app.config import settings
from app.db import check_db_connection, close_db, init_db
from app.exceptions import UpstreamFailure, WritersInnError
from app.services.assignment_service import AssignmentService
from app.services.notification_service import (
    NotificationDispatcher,
    create_mail_gateway,
)
from app.services.storage import TASK_FILES, UploadStorage
from app.utils.logger import setup_logger

logger = setup_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup...")
    try:
        logger.info("Initializing database...")
        await init_db()

        if await check_db_connection():
            logger.info("Database connectivity confirmed.")
        else:
            logger.critical("Database connectivity check failed.")
            raise SystemExit("Database connection failed.")

        await app.state.notifier.start()
    except Exception as e:
        logger.critical(f"Startup error: {e}")
        raise SystemExit(f"Startup failed: {e}") from e

    logger.info("WritersInn API startup successful.")

    yield

    logger.info("WritersInn API shutdown...")
    await app.state.notifier.stop()
    await close_db()
    logger.info("Shutdown complete.")


def create_app():
    app = FastAPI(title="WritersInn API", lifespan=lifespan)

    app.state.storage = UploadStorage(settings.upload_dir, settings.max_upload_bytes)
    app.state.notifier = NotificationDispatcher(
        create_mail_gateway(settings),
        max_attempts=settings.notification_max_attempts,
        retry_delay=settings.notification_retry_delay,
    )
    app.state.assignment_service = AssignmentService(settings)

    @app.exception_handler(WritersInnError)
    async def domain_exception_handler(request: Request, exc: WritersInnError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        # Driver messages stay in the log; clients get a generic error.
        logger.error(
            f"Database error on {request.method} {request.url.path}: {exc}",
            exc_info=exc,
        )
        error = UpstreamFailure()
        return JSONResponse(
            status_code=error.status_code,
            content={"detail": error.message, "code": error.code},
        )

    @app.exception_handler(OSError)
    async def oserror_exception_handler(request: Request, exc: OSError):
        logger.error(f"OSError caught: {exc}, errno: {exc.errno}")
        if exc.errno in [errno.ETIMEDOUT, errno.ECONNREFUSED]:
            logger.error(
                f"Returning 503 due to DB connection issue: {settings.db_unavailable_hint}"
            )
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"detail": settings.db_unavailable_hint, "code": "unavailable"},
            )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "An unexpected server error occurred", "code": "error"},
        )

    app.include_router(http_router)
    app.include_router(users_router)
    app.include_router(auth_router)
    app.include_router(admin_router)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.mount(
        "/files/tasks",
        StaticFiles(directory=app.state.storage.category_dir(TASK_FILES)),
        name="task-files",
    )

    return app


app = create_app()


def main():
    port = int(settings.server_port)
    host = settings.server_host

    logger.info(f"Starting WritersInn API server on {host}:{port}")

    try:
        uvicorn.run(app, host=host, port=port, workers=settings.server_workers)
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
