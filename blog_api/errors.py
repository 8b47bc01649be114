"""
Error taxonomy for post operations.
"""

from __future__ import annotations


class PostError(Exception):
    """Base class for failures raised by post operations."""


class ValidationError(PostError):
    """A title or content value failed the post rules."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Post validation failed: " + ", ".join(self.errors))


class NotFoundError(PostError):
    """A well-formed identifier matched no stored post."""

    def __init__(self, post_id: str):
        self.post_id = post_id
        super().__init__(f"Post {post_id} not found")


class OperationFailedError(PostError):
    """
    Anything else: malformed identifiers, store connectivity failures,
    unexpected exceptions.
    """


class ConfigurationError(Exception):
    """Startup configuration is unusable."""
