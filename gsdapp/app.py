"""
FastAPI application entry point for the GSDapp backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gsdapp.ai_routes import router as ai_router
from gsdapp.analysis import AnalysisError
from gsdapp.config import get_settings
from gsdapp.db import NotFoundError
from gsdapp.routes import router
from gsdapp.subscriptions import TierLimitError
from gsdapp.webhooks import router as webhook_router

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"detail": message}, status_code=status_code)


def register_error_handlers(app: FastAPI) -> None:
    """Translate domain exceptions into HTTP responses."""

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return _error_response(404, str(exc) or "Not found")

    @app.exception_handler(ValueError)
    async def bad_request(request: Request, exc: ValueError):
        return _error_response(400, str(exc))

    @app.exception_handler(TierLimitError)
    async def tier_limit(request: Request, exc: TierLimitError):
        return _error_response(403, str(exc))

    @app.exception_handler(AnalysisError)
    async def analysis_failed(request: Request, exc: AnalysisError):
        logger.warning("Analysis failed on %s: %s", request.url.path, exc.message)
        return _error_response(exc.status_code, exc.message)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title="GSDapp Backend (FastAPI)", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(ai_router, prefix=settings.api_prefix)
    app.include_router(webhook_router, prefix=settings.api_prefix)
    register_error_handlers(app)
    return app


app = create_app()
