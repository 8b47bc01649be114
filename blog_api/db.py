"""
Post storage: validation rules, a SQLAlchemy-backed store and an
in-memory implementation for development and tests.
"""

from __future__ import annotations

import re
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional, Protocol

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, select, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from blog_api.errors import OperationFailedError, ValidationError

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 100
CONTENT_MAX_LENGTH = 5000

POST_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def new_post_id() -> str:
    return uuid.uuid4().hex


def is_valid_post_id(post_id: str) -> bool:
    return bool(POST_ID_PATTERN.match(post_id or ""))


def check_post_id(post_id: str) -> None:
    if not is_valid_post_id(post_id):
        raise OperationFailedError(f'Cast to id failed for value "{post_id}"')


def validate_post(title: object, content: object) -> tuple[str, str]:
    """
    Check a candidate post and return its trimmed title and content.

    Raises ValidationError listing every rule the candidate breaks.
    """
    errors: list[str] = []

    # Blank strings count as missing.
    clean_title = title.strip() if isinstance(title, str) else ""
    if not clean_title:
        errors.append("Title is required")
    elif len(clean_title) < TITLE_MIN_LENGTH:
        errors.append(f"Title must be at least {TITLE_MIN_LENGTH} characters long")
    elif len(clean_title) > TITLE_MAX_LENGTH:
        errors.append(f"Title cannot exceed {TITLE_MAX_LENGTH} characters")

    clean_content = content.strip() if isinstance(content, str) else ""
    if not clean_content:
        errors.append("Content is required")
    elif len(clean_content) > CONTENT_MAX_LENGTH:
        errors.append(f"Content cannot exceed {CONTENT_MAX_LENGTH} characters")

    if errors:
        raise ValidationError(errors)
    return clean_title, clean_content


@dataclass
class PostRecord:
    id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime


class PostStore(Protocol):
    """Interface for post persistence."""

    def create(self, title: str, content: str) -> PostRecord:
        ...

    def list_posts(self) -> list[PostRecord]:
        ...

    def get(self, post_id: str) -> Optional[PostRecord]:
        ...

    def update(self, post_id: str, title: str, content: str) -> Optional[PostRecord]:
        ...

    def delete(self, post_id: str) -> Optional[PostRecord]:
        ...

    def ping(self) -> bool:
        ...

    def close(self) -> None:
        ...


class InMemoryPostStore:
    """Simple in-memory store for development and tests."""

    def __init__(self):
        # dicts keep insertion order, which is the listing order
        self.posts: Dict[str, PostRecord] = {}
        self._lock = threading.Lock()

    def create(self, title: str, content: str) -> PostRecord:
        clean_title, clean_content = validate_post(title, content)
        now = _utcnow()
        record = PostRecord(
            id=new_post_id(),
            title=clean_title,
            content=clean_content,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self.posts[record.id] = record
        return replace(record)

    def list_posts(self) -> list[PostRecord]:
        with self._lock:
            return [replace(post) for post in self.posts.values()]

    def get(self, post_id: str) -> Optional[PostRecord]:
        check_post_id(post_id)
        with self._lock:
            post = self.posts.get(post_id)
            return replace(post) if post else None

    def update(self, post_id: str, title: str, content: str) -> Optional[PostRecord]:
        check_post_id(post_id)
        with self._lock:
            post = self.posts.get(post_id)
            if not post:
                return None
            clean_title, clean_content = validate_post(title, content)
            post.title = clean_title
            post.content = clean_content
            post.updated_at = max(_utcnow(), post.updated_at)
            return replace(post)

    def delete(self, post_id: str) -> Optional[PostRecord]:
        check_post_id(post_id)
        with self._lock:
            return self.posts.pop(post_id, None)

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass

    def reset(self) -> None:
        """Clear all stored posts (useful in tests)."""
        with self._lock:
            self.posts.clear()


def _engine_options(database_url: str) -> dict:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return {"pool_pre_ping": True, "pool_recycle": 1800}
    options: dict = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        # One shared connection, otherwise every pooled connection sees its own empty database.
        options["poolclass"] = StaticPool
    return options


class SqlPostStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlPostStore")
        self.engine = create_engine(database_url, future=True, **_engine_options(database_url))
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self.Session() as session:
                yield session
        except SQLAlchemyError as exc:
            raise OperationFailedError(str(exc)) from exc

    def _to_record(self, row: "PostRow") -> PostRecord:
        return PostRecord(
            id=row.id,
            title=row.title,
            content=row.content,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    def _find(self, session: Session, post_id: str) -> Optional["PostRow"]:
        stmt = select(PostRow).where(PostRow.id == post_id)
        return session.execute(stmt).scalar_one_or_none()

    def create(self, title: str, content: str) -> PostRecord:
        clean_title, clean_content = validate_post(title, content)
        now = _utcnow()
        with self._session() as session:
            row = PostRow(
                id=new_post_id(),
                title=clean_title,
                content=clean_content,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_record(row)

    def list_posts(self) -> list[PostRecord]:
        with self._session() as session:
            rows = session.execute(select(PostRow).order_by(PostRow.seq.asc())).scalars().all()
            return [self._to_record(row) for row in rows]

    def get(self, post_id: str) -> Optional[PostRecord]:
        check_post_id(post_id)
        with self._session() as session:
            row = self._find(session, post_id)
            return self._to_record(row) if row else None

    def update(self, post_id: str, title: str, content: str) -> Optional[PostRecord]:
        check_post_id(post_id)
        with self._session() as session:
            row = self._find(session, post_id)
            if not row:
                return None
            clean_title, clean_content = validate_post(title, content)
            row.title = clean_title
            row.content = clean_content
            row.updated_at = max(_utcnow(), _as_utc(row.updated_at))
            session.commit()
            session.refresh(row)
            return self._to_record(row)

    def delete(self, post_id: str) -> Optional[PostRecord]:
        check_post_id(post_id)
        with self._session() as session:
            row = self._find(session, post_id)
            if not row:
                return None
            record = self._to_record(row)
            session.delete(row)
            session.commit()
            return record

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    def close(self) -> None:
        self.engine.dispose()

    def reset(self) -> None:
        with self._session() as session:
            session.query(PostRow).delete()
            session.commit()


Base = declarative_base()


class PostRow(Base):
    __tablename__ = "posts"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(32), nullable=False, unique=True, index=True)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
