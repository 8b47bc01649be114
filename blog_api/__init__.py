"""
Backend package for the postboard API.

This package provides a FastAPI application that exposes create/list/
update/delete operations on blog posts, with storage abstractions for a
SQL database and an in-memory implementation for development and tests.
"""
