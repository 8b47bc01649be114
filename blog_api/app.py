"""
FastAPI application entry point for the postboard backend.

Run with ``postboard-server`` or ``uvicorn --factory blog_api.app:create_app``.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import Headers
from starlette.types import Receive, Scope, Send

from blog_api.config import Settings, get_settings
from blog_api.db import PostStore
from blog_api.dependencies import build_post_store
from blog_api.metrics import MetricsCounter
from blog_api.routes import FAILURE_MESSAGES, failure_response, ops_router, router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store: PostStore = app.state.post_store
    if store.ping():
        logger.info("Database connected successfully")
    else:
        logger.warning("Database is not reachable at startup")
    yield
    logger.info("Closing post store")
    store.close()


class AllowedOriginsCORSMiddleware(CORSMiddleware):
    """
    CORSMiddleware that stays silent for origins outside the allow list.

    Requests from those origins, preflights included, go straight to the
    app, so their responses carry no access-control headers at all.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            origin = Headers(scope=scope).get("origin")
            if origin is not None and not self.is_allowed_origin(origin=origin):
                await self.app(scope, receive, send)
                return
        await super().__call__(scope, receive, send)


async def _record_request(request: Request, call_next):
    metrics: MetricsCounter = request.app.state.metrics
    metrics.record_request(request.method)
    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        metrics.record_response(status_code, duration_ms)
        logger.info(
            "%s %s %d %.1fms", request.method, request.url.path, status_code, duration_ms
        )


async def _invalid_body(request: Request, exc: RequestValidationError):
    message = FAILURE_MESSAGES.get(request.method, "Invalid request")
    error = "; ".join(str(err.get("msg", err)) for err in exc.errors())
    logger.warning("%s: %s", message, error)
    return failure_response(request.app.state.metrics, message, error)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[PostStore] = None,
    metrics: Optional[MetricsCounter] = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Postboard Backend (FastAPI)", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.post_store = store if store is not None else build_post_store(settings)
    app.state.metrics = metrics or MetricsCounter()
    app.state.started_at = time.monotonic()

    app.middleware("http")(_record_request)
    app.add_middleware(
        AllowedOriginsCORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept"],
    )
    app.add_exception_handler(RequestValidationError, _invalid_body)

    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(ops_router)
    return app
