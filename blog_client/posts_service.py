"""
HTTP data service for posts.

Calls the postboard API, keeps the returned posts in a local cache and
broadcasts the whole cache through a PostsChannel after every successful
round trip.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import requests
from dacite import Config, from_dict

from blog_client.channel import PostsChannel, Subscriber

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3000/api/posts"
REQUEST_TIMEOUT = 10


@dataclass
class Post:
    id: str
    title: str
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PostsApiError(Exception):
    """The API call failed or returned a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error: Optional[str] = None,
    ):
        super().__init__(message if not error else f"{message}: {error}")
        self.message = message
        self.status_code = status_code
        self.error = error

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


def _parse_post(data: dict) -> Post:
    return from_dict(
        data_class=Post,
        data={
            "id": data["id"],
            "title": data["title"],
            "content": data["content"],
            "created_at": data.get("createdAt"),
            "updated_at": data.get("updatedAt"),
        },
        config=Config(type_hooks={datetime: datetime.fromisoformat}),
    )


class PostsService:
    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        session: Optional[requests.Session] = None,
        channel: Optional[PostsChannel] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.api_url = api_url.rstrip("/")
        self.session = session or requests.Session()
        self.channel = channel or PostsChannel()
        self.timeout = timeout
        self.posts: list[Post] = []

    def subscribe(self, callback: Subscriber):
        """Listen for post collection updates; returns an unsubscribe function."""
        return self.channel.subscribe(callback)

    def _request(self, method: str, url: str, json: Any = None) -> dict:
        try:
            response = self.session.request(method, url, json=json, timeout=self.timeout)
        except requests.RequestException as exc:
            raise PostsApiError(f"{method} {url} failed", error=str(exc)) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if not response.ok:
            raise PostsApiError(
                payload.get("message") or response.reason or "Request failed",
                status_code=response.status_code,
                error=payload.get("error"),
            )
        message = payload.get("message")
        if message:
            logger.info(message)
        return payload

    def _broadcast(self) -> None:
        self.channel.publish(list(self.posts))

    def get_posts(self) -> list[Post]:
        payload = self._request("GET", self.api_url)
        self.posts = [_parse_post(item) for item in payload.get("posts", [])]
        self._broadcast()
        return list(self.posts)

    def get_post(self, post_id: str) -> Optional[Post]:
        return next((post for post in self.posts if post.id == post_id), None)

    def add_post(self, title: str, content: str) -> Post:
        payload = self._request("POST", self.api_url, json={"title": title, "content": content})
        post = _parse_post(payload["post"])
        self.posts.append(post)
        self._broadcast()
        return post

    def update_post(self, post_id: str, title: str, content: str) -> Post:
        payload = self._request(
            "PUT",
            f"{self.api_url}/{post_id}",
            json={"id": post_id, "title": title, "content": content},
        )
        post = _parse_post(payload["post"])
        updated = list(self.posts)
        for index, existing in enumerate(updated):
            if existing.id == post_id:
                updated[index] = post
                break
        else:
            # The server confirmed the post exists, so the cache was stale.
            updated.append(post)
        self.posts = updated
        self._broadcast()
        return post

    def delete_post(self, post_id: str) -> str:
        payload = self._request("DELETE", f"{self.api_url}/{post_id}")
        self.posts = [post for post in self.posts if post.id != post_id]
        self._broadcast()
        return payload.get("postId", post_id)
