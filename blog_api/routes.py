"""
HTTP routes for the postboard API.
"""

from __future__ import annotations

import logging
import sys
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from blog_api.config import Settings
from blog_api.db import PostRecord, PostStore
from blog_api.dependencies import get_app_settings, get_metrics, get_post_store
from blog_api.errors import NotFoundError, PostError
from blog_api.metrics import Counter, MetricsCounter
from blog_api.schemas import (
    DeletePostResponse,
    ErrorResponse,
    HealthChecks,
    HealthResponse,
    ListPostsResponse,
    MemoryCheck,
    PostBody,
    PostPayload,
    PostResponse,
)

try:
    import resource
except ImportError:  # not available on Windows
    resource = None

logger = logging.getLogger(__name__)

router = APIRouter()
ops_router = APIRouter()

NOT_FOUND_MESSAGE = "Post not found"
CREATE_FAILED = "Failed to create post"
FETCH_FAILED = "Failed to fetch posts"
FETCH_ONE_FAILED = "Failed to fetch post"
UPDATE_FAILED = "Failed to update post"
DELETE_FAILED = "Failed to delete post"

# Failure message per method for request bodies rejected before a handler runs.
FAILURE_MESSAGES = {
    "POST": CREATE_FAILED,
    "PUT": UPDATE_FAILED,
}

_ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _to_body(record: PostRecord) -> PostBody:
    return PostBody(
        id=record.id,
        title=record.title,
        content=record.content,
        createdAt=record.created_at,
        updatedAt=record.updated_at,
    )


def failure_response(metrics: MetricsCounter, message: str, error: str) -> JSONResponse:
    metrics.increment(Counter.ERRORS_TOTAL)
    body = ErrorResponse(message=message, error=error)
    return JSONResponse(status_code=500, content=body.model_dump())


def _failure(metrics: MetricsCounter, message: str, exc: Exception) -> JSONResponse:
    if isinstance(exc, PostError):
        logger.warning("%s: %s", message, exc)
    else:
        logger.exception("%s: unexpected error", message)
    return failure_response(metrics, message, str(exc))


def _require(record: Optional[PostRecord], post_id: str) -> PostRecord:
    if record is None:
        raise NotFoundError(post_id)
    return record


def _not_found(exc: NotFoundError) -> JSONResponse:
    logger.info("%s", exc)
    return JSONResponse(status_code=404, content={"message": NOT_FOUND_MESSAGE})


@router.post(
    "/posts", response_model=PostResponse, status_code=201, responses=_ERROR_RESPONSES
)
def create_post(
    payload: PostPayload,
    store: PostStore = Depends(get_post_store),
    metrics: MetricsCounter = Depends(get_metrics),
):
    try:
        record = store.create(payload.title, payload.content)
    except Exception as exc:
        return _failure(metrics, CREATE_FAILED, exc)
    metrics.increment(Counter.POSTS_CREATED)
    logger.info("Created post %s", record.id)
    return PostResponse(message="Post added successfully", post=_to_body(record))


@router.get("/posts", response_model=ListPostsResponse, responses=_ERROR_RESPONSES)
def list_posts(
    store: PostStore = Depends(get_post_store),
    metrics: MetricsCounter = Depends(get_metrics),
):
    try:
        records = store.list_posts()
    except Exception as exc:
        return _failure(metrics, FETCH_FAILED, exc)
    return ListPostsResponse(
        message="Posts fetched successfully!",
        posts=[_to_body(record) for record in records],
    )


@router.get("/posts/{post_id}", response_model=PostResponse, responses=_ERROR_RESPONSES)
def get_post(
    post_id: str,
    store: PostStore = Depends(get_post_store),
    metrics: MetricsCounter = Depends(get_metrics),
):
    try:
        record = _require(store.get(post_id), post_id)
    except NotFoundError as exc:
        return _not_found(exc)
    except Exception as exc:
        return _failure(metrics, FETCH_ONE_FAILED, exc)
    return PostResponse(message="Post fetched successfully", post=_to_body(record))


@router.put("/posts/{post_id}", response_model=PostResponse, responses=_ERROR_RESPONSES)
def update_post(
    post_id: str,
    payload: PostPayload,
    store: PostStore = Depends(get_post_store),
    metrics: MetricsCounter = Depends(get_metrics),
):
    try:
        record = _require(store.update(post_id, payload.title, payload.content), post_id)
    except NotFoundError as exc:
        return _not_found(exc)
    except Exception as exc:
        return _failure(metrics, UPDATE_FAILED, exc)
    metrics.increment(Counter.POSTS_UPDATED)
    logger.info("Updated post %s", record.id)
    return PostResponse(message="Post updated successfully", post=_to_body(record))


@router.delete(
    "/posts/{post_id}", response_model=DeletePostResponse, responses=_ERROR_RESPONSES
)
def delete_post(
    post_id: str,
    store: PostStore = Depends(get_post_store),
    metrics: MetricsCounter = Depends(get_metrics),
):
    try:
        _require(store.delete(post_id), post_id)
    except NotFoundError as exc:
        return _not_found(exc)
    except Exception as exc:
        return _failure(metrics, DELETE_FAILED, exc)
    metrics.increment(Counter.POSTS_DELETED)
    logger.info("Deleted post %s", post_id)
    return DeletePostResponse(message="Post deleted successfully", postId=post_id)


def _memory_check() -> MemoryCheck:
    if resource is None:
        return MemoryCheck(status="unavailable")
    max_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS and kilobytes elsewhere.
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return MemoryCheck(status="ok", maxRssMb=round(max_rss / divisor, 1))


@ops_router.get("/health", response_model=HealthResponse, responses={503: {"model": HealthResponse}})
def health(
    request: Request,
    store: PostStore = Depends(get_post_store),
    settings: Settings = Depends(get_app_settings),
):
    database_ok = store.ping()
    payload = HealthResponse(
        status="healthy" if database_ok else "unhealthy",
        timestamp=datetime.now(timezone.utc),
        uptime=round(time.monotonic() - request.app.state.started_at, 3),
        environment=settings.environment,
        checks=HealthChecks(
            database="connected" if database_ok else "disconnected",
            memory=_memory_check(),
        ),
    )
    if not database_ok:
        logger.warning("Health check failed: database disconnected")
        return JSONResponse(status_code=503, content=payload.model_dump(mode="json"))
    return payload


@ops_router.get("/metrics")
def metrics_snapshot(metrics: MetricsCounter = Depends(get_metrics)) -> dict:
    return metrics.snapshot()
