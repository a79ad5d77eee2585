"""
FastAPI application entry point for the travel site backend.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from travel_backend.auth import resolve_identity
from travel_backend.config import get_settings
from travel_backend.errors import ApiError, validation_message
from travel_backend.routes import router

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": message}
    )


def _is_admin_path(path: str, api_prefix: str) -> bool:
    for prefix in ("/admin", f"{api_prefix.rstrip('/')}/admin"):
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return _error(400, validation_message(exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error")


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="Travel Site Backend", version="0.1.0")

    @app.middleware("http")
    async def admin_route_guard(request: Request, call_next):
        if request.method != "OPTIONS" and _is_admin_path(
            request.url.path, settings.api_prefix
        ):
            identity = resolve_identity(request)
            if identity is None:
                return RedirectResponse(url="/login", status_code=307)
            if not identity.is_admin:
                return RedirectResponse(url="/", status_code=307)
        return await call_next(request)

    # Added last so it wraps the guard and answers preflights first.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/health")
    def health():
        return {"success": True, "status": "ok"}

    app.include_router(router, prefix=settings.api_prefix)

    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.upload_public_prefix,
        StaticFiles(directory=settings.upload_dir),
        name="uploads",
    )
    return app


app = create_app()
