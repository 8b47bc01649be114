"""
Pydantic schemas for the postboard API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel


class PostPayload(BaseModel):
    # Presence and length are checked by the store so that bad input
    # fails the same way as any other write error.
    title: Optional[str] = None
    content: Optional[str] = None


class PostBody(BaseModel):
    id: str
    title: str
    content: str
    createdAt: datetime
    updatedAt: datetime


class PostResponse(BaseModel):
    message: str
    post: PostBody


class ListPostsResponse(BaseModel):
    message: str
    posts: list[PostBody]


class DeletePostResponse(BaseModel):
    message: str
    postId: str


class ErrorResponse(BaseModel):
    message: str
    error: Optional[str] = None


class MemoryCheck(BaseModel):
    status: Literal["ok", "unavailable"]
    maxRssMb: Optional[float] = None


class HealthChecks(BaseModel):
    database: Literal["connected", "disconnected"]
    memory: MemoryCheck


class HealthResponse(BaseModel):
    status: Literal["healthy", "unhealthy"]
    timestamp: datetime
    uptime: float
    environment: str
    checks: HealthChecks
