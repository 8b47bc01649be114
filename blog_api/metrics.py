"""
In-process request metrics.

Counters reset when the process restarts. One MetricsCounter is owned by
each application instance and handed to request handlers through
dependencies.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Optional

RESPONSE_TIME_WINDOW = 100


@dataclass
class RequestCounts:
    total: int = 0
    get: int = 0
    post: int = 0
    put: int = 0
    delete: int = 0


@dataclass
class ResponseCounts:
    total: int = 0
    status_2xx: int = 0
    status_4xx: int = 0
    status_5xx: int = 0


@dataclass
class PostCounts:
    created: int = 0
    updated: int = 0
    deleted: int = 0


@dataclass
class ErrorCounts:
    total: int = 0


class Counter(Enum):
    """Every counter the service keeps, as (group, field) pairs."""

    REQUESTS_TOTAL = ("requests", "total")
    REQUESTS_GET = ("requests", "get")
    REQUESTS_POST = ("requests", "post")
    REQUESTS_PUT = ("requests", "put")
    REQUESTS_DELETE = ("requests", "delete")
    RESPONSES_TOTAL = ("responses", "total")
    RESPONSES_2XX = ("responses", "status_2xx")
    RESPONSES_4XX = ("responses", "status_4xx")
    RESPONSES_5XX = ("responses", "status_5xx")
    POSTS_CREATED = ("posts", "created")
    POSTS_UPDATED = ("posts", "updated")
    POSTS_DELETED = ("posts", "deleted")
    ERRORS_TOTAL = ("errors", "total")


_METHOD_COUNTERS = {
    "GET": Counter.REQUESTS_GET,
    "POST": Counter.REQUESTS_POST,
    "PUT": Counter.REQUESTS_PUT,
    "DELETE": Counter.REQUESTS_DELETE,
}

_STATUS_COUNTERS = {
    2: Counter.RESPONSES_2XX,
    4: Counter.RESPONSES_4XX,
    5: Counter.RESPONSES_5XX,
}


def method_counter(method: str) -> Optional[Counter]:
    return _METHOD_COUNTERS.get(method.upper())


def status_counter(status_code: int) -> Optional[Counter]:
    return _STATUS_COUNTERS.get(status_code // 100)


@dataclass
class MetricsCounter:
    """
    Thread-safe counters plus a rolling window of response times.

    Route handlers run on a thread pool, so every read and write goes
    through the lock.
    """

    window_size: int = RESPONSE_TIME_WINDOW
    requests: RequestCounts = field(default_factory=RequestCounts)
    responses: ResponseCounts = field(default_factory=ResponseCounts)
    posts: PostCounts = field(default_factory=PostCounts)
    errors: ErrorCounts = field(default_factory=ErrorCounts)

    def __post_init__(self):
        if self.window_size < 1:
            raise ValueError("window_size must be at least 1")
        self.response_times: Deque[float] = deque(maxlen=self.window_size)
        self._lock = threading.Lock()

    def increment(self, counter: Counter, value: int = 1) -> None:
        group_name, field_name = counter.value
        with self._lock:
            group = getattr(self, group_name)
            setattr(group, field_name, getattr(group, field_name) + value)

    def get(self, counter: Counter) -> int:
        group_name, field_name = counter.value
        with self._lock:
            return getattr(getattr(self, group_name), field_name)

    def record_request(self, method: str) -> None:
        self.increment(Counter.REQUESTS_TOTAL)
        counter = method_counter(method)
        if counter:
            self.increment(counter)

    def record_response(self, status_code: int, duration_ms: float) -> None:
        self.increment(Counter.RESPONSES_TOTAL)
        counter = status_counter(status_code)
        if counter:
            self.increment(counter)
        self.record_response_time(duration_ms)

    def record_response_time(self, duration_ms: float) -> None:
        # deque(maxlen=...) drops the oldest sample once full
        with self._lock:
            self.response_times.append(duration_ms)

    def average_response_time(self) -> float:
        with self._lock:
            if not self.response_times:
                return 0.0
            return sum(self.response_times) / len(self.response_times)

    def snapshot(self) -> dict:
        """Return the counters in the JSON shape served by /metrics."""
        average = self.average_response_time()
        with self._lock:
            return {
                "requests": {
                    "total": self.requests.total,
                    "byMethod": {
                        "GET": self.requests.get,
                        "POST": self.requests.post,
                        "PUT": self.requests.put,
                        "DELETE": self.requests.delete,
                    },
                },
                "responses": {
                    "total": self.responses.total,
                    "byStatus": {
                        "2xx": self.responses.status_2xx,
                        "4xx": self.responses.status_4xx,
                        "5xx": self.responses.status_5xx,
                    },
                },
                "posts": {
                    "created": self.posts.created,
                    "updated": self.posts.updated,
                    "deleted": self.posts.deleted,
                },
                "errors": {"total": self.errors.total},
                "responseTimes": {
                    "samples": len(self.response_times),
                    "windowSize": self.window_size,
                },
                "averageResponseTime": round(average),
            }
