"""
FastAPI application for the Copilot Chat Web API.

Run with:
    uvicorn copilot_chat.api.main:create_app --factory
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from copilot_chat.core.errors import DuplicateEntityError
from copilot_chat.core.logging import configure_logging, correlation_id_var, user_id_var
from copilot_chat.core.settings import AppSettings, get_app_settings
from copilot_chat.schemas.common import ErrorInfo, ErrorResponse, MessageResponse
from copilot_chat.services.container import ChatServices, create_services

from copilot_chat.api.routes.chat_history import router as chat_history_router
from copilot_chat.api.routes.message_relay import router as message_relay_router

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

openapi_tags = [
    {"name": "Health", "description": "Liveness probe."},
    {"name": "Chat History", "description": "Chat sessions, messages and imported sources."},
]


def _error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=jsonable_encoder(details)),
        correlation_id=getattr(request.state, "correlation_id", None),
        user_id=user_id_var.get(),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def request_context_middleware(request: Request, call_next):
    """Bind a correlation id to the request and echo it in the response."""
    corr = request.headers.get(CORRELATION_HEADER) or request.headers.get("X-Request-ID") or str(uuid4())
    request.state.correlation_id = corr
    corr_token = correlation_id_var.set(corr)
    user_token = user_id_var.set(None)
    try:
        logger.info("%s %s", request.method, request.url.path)
        response = await call_next(request)
    finally:
        user_id_var.reset(user_token)
        correlation_id_var.reset(corr_token)
    response.headers[CORRELATION_HEADER] = corr
    return response


def register_exception_handlers(app: FastAPI) -> None:
    """Answer every failure with an ErrorResponse body."""

    @app.exception_handler(HTTPException)
    async def _http_error(request: Request, exc: HTTPException):
        if isinstance(exc.detail, str):
            message, details = exc.detail, None
        else:
            message, details = "HTTP Error", exc.detail
        response = _error_response(request, exc.status_code, "http_error", message, details)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return _error_response(request, 422, "validation_error", "Request validation failed", exc.errors())

    @app.exception_handler(DuplicateEntityError)
    async def _conflict(request: Request, exc: DuplicateEntityError):
        logger.warning("Duplicate entity id %s", exc.entity_id)
        return _error_response(request, 409, "conflict", str(exc))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error processing request")
        return _error_response(request, 500, "internal_error", "An unexpected error occurred")


system_router = APIRouter(tags=["Health"])


# PUBLIC_INTERFACE
@system_router.get("/healthz", response_model=MessageResponse, summary="Health Check")
def health_check() -> MessageResponse:
    """Liveness probe; does not touch the chat store."""
    return MessageResponse(message="Healthy")


# PUBLIC_INTERFACE
def create_app(settings: Optional[AppSettings] = None, services: Optional[ChatServices] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Services are constructed eagerly, so an incomplete configuration raises
    ConfigurationError here instead of on the first request. Pass `services`
    to run the app against pre-built storage or authentication.
    """
    settings = settings or get_app_settings()
    configure_logging(settings.LOG_LEVEL)
    services = services or create_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down; closing storage and service clients.")
        await services.close()

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.services = services

    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )
    else:
        logger.info("ALLOWED_ORIGINS is empty; CORS is disabled.")
    app.middleware("http")(request_context_middleware)
    register_exception_handlers(app)

    app.include_router(system_router)
    app.include_router(chat_history_router)
    app.include_router(message_relay_router)
    return app
