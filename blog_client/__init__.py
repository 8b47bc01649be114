"""
Client-side data service for the postboard API.

Keeps a local copy of the post collection and republishes it to
subscribers after every successful call.
"""

from blog_client.channel import PostsChannel
from blog_client.posts_service import Post, PostsApiError, PostsService

__all__ = ["Post", "PostsApiError", "PostsChannel", "PostsService"]
