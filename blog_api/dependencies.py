"""
Dependency wiring for the FastAPI app.

The store, metrics and settings live on ``app.state`` so every
application instance owns its own collaborators; handlers receive them
through ``Depends``.
"""

from __future__ import annotations

import logging

from fastapi import Request

from blog_api.config import Settings
from blog_api.db import InMemoryPostStore, PostStore, SqlPostStore
from blog_api.errors import ConfigurationError
from blog_api.metrics import MetricsCounter

logger = logging.getLogger(__name__)


def build_post_store(settings: Settings) -> PostStore:
    """
    Create the store selected by settings. A missing connection string is
    fatal unless in-memory backends were requested.
    """
    if settings.use_in_memory_backends:
        logger.info("Using in-memory post store")
        return InMemoryPostStore()
    if not settings.database_url:
        raise ConfigurationError("DATABASE_URL is not defined in environment variables")
    return SqlPostStore(settings.database_url)


def get_post_store(request: Request) -> PostStore:
    return request.app.state.post_store


def get_metrics(request: Request) -> MetricsCounter:
    return request.app.state.metrics


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
