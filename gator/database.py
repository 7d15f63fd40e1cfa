"""SQLite storage for users, feeds, follows and posts."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator
from uuid import UUID

from gator.models import Feed, FeedFollowRow, Post, PostRow, User

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS feeds (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    last_fetched_at TEXT
);
CREATE TABLE IF NOT EXISTS feed_follows (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
    UNIQUE (user_id, feed_id)
);
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    description TEXT,
    published_at TEXT,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE
);
"""

_FEED_COLUMNS = "id, created_at, updated_at, name, url, user_id, last_fetched_at"
_USER_COLUMNS = "id, created_at, updated_at, name"

_FOLLOW_SELECT = """
SELECT feed_follows.id, feed_follows.created_at, feed_follows.updated_at,
       feed_follows.user_id, feed_follows.feed_id,
       feeds.name AS feed_name, users.name AS user_name
FROM feed_follows
INNER JOIN feeds ON feed_follows.feed_id = feeds.id
INNER JOIN users ON feed_follows.user_id = users.id
"""


class DatabaseError(Exception):
    """A query failed."""


class NotFoundError(DatabaseError):
    """A query that should return one row returned none."""


class UniqueViolationError(DatabaseError):
    """An insert collided with an existing unique value."""


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.IntegrityError as exc:
        if "UNIQUE" in str(exc):
            raise UniqueViolationError(
                f"duplicate key value violates unique constraint: {exc}"
            ) from exc
        raise DatabaseError(str(exc)) from exc
    except sqlite3.Error as exc:
        raise DatabaseError(str(exc)) from exc


def _fmt_dt(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.isoformat()


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _user(row: sqlite3.Row) -> User:
    return User(
        id=UUID(row["id"]),
        created_at=_parse_dt(row["created_at"]),
        updated_at=_parse_dt(row["updated_at"]),
        name=row["name"],
    )


def _feed(row: sqlite3.Row) -> Feed:
    return Feed(
        id=UUID(row["id"]),
        created_at=_parse_dt(row["created_at"]),
        updated_at=_parse_dt(row["updated_at"]),
        name=row["name"],
        url=row["url"],
        user_id=UUID(row["user_id"]),
        last_fetched_at=_parse_dt(row["last_fetched_at"]),
    )


def _follow_row(row: sqlite3.Row) -> FeedFollowRow:
    return FeedFollowRow(
        id=UUID(row["id"]),
        created_at=_parse_dt(row["created_at"]),
        updated_at=_parse_dt(row["updated_at"]),
        user_id=UUID(row["user_id"]),
        feed_id=UUID(row["feed_id"]),
        feed_name=row["feed_name"],
        user_name=row["user_name"],
    )


def _post_fields(row: sqlite3.Row) -> dict:
    return {
        "id": UUID(row["id"]),
        "created_at": _parse_dt(row["created_at"]),
        "updated_at": _parse_dt(row["updated_at"]),
        "title": row["title"],
        "url": row["url"],
        "description": row["description"],
        "published_at": _parse_dt(row["published_at"]),
        "feed_id": UUID(row["feed_id"]),
    }


class Queries:
    """The application's queries over one SQLite connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._conn.row_factory = sqlite3.Row
        with _translate_errors():
            self._conn.execute("PRAGMA foreign_keys = ON")

    def __enter__(self) -> Queries:
        return self

    def __exit__(self, *exc_info) -> None:
        self._conn.close()

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        with _translate_errors(), self._conn:
            return self._conn.execute(sql, params)

    def _fetch_all(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with _translate_errors():
            return self._conn.execute(sql, params).fetchall()

    def _fetch_one(self, sql: str, params: tuple = ()) -> sqlite3.Row:
        with _translate_errors():
            row = self._conn.execute(sql, params).fetchone()
        if row is None:
            raise NotFoundError("no rows in result set")
        return row

    def create_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        with _translate_errors():
            self._conn.executescript(_SCHEMA)

    # users

    def create_user(self, user_id: UUID, created_at: datetime, updated_at: datetime, name: str) -> User:
        self._execute(
            "INSERT INTO users (id, created_at, updated_at, name) VALUES (?, ?, ?, ?)",
            (str(user_id), _fmt_dt(created_at), _fmt_dt(updated_at), name),
        )
        return self.get_user_by_id(user_id)

    def get_user(self, name: str) -> User:
        return _user(self._fetch_one(f"SELECT {_USER_COLUMNS} FROM users WHERE name = ?", (name,)))

    def get_user_by_id(self, user_id: UUID) -> User:
        return _user(self._fetch_one(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (str(user_id),)))

    def get_users(self) -> list[User]:
        return [_user(row) for row in self._fetch_all(f"SELECT {_USER_COLUMNS} FROM users")]

    def reset(self) -> None:
        """Delete every user, and with them everything they own."""
        self._execute("DELETE FROM users")

    # feeds

    def create_feed(
        self,
        feed_id: UUID,
        created_at: datetime,
        updated_at: datetime,
        name: str,
        url: str,
        user_id: UUID,
    ) -> Feed:
        self._execute(
            "INSERT INTO feeds (id, created_at, updated_at, name, url, user_id) VALUES (?, ?, ?, ?, ?, ?)",
            (str(feed_id), _fmt_dt(created_at), _fmt_dt(updated_at), name, url, str(user_id)),
        )
        return self._get_feed_by_id(feed_id)

    def _get_feed_by_id(self, feed_id: UUID) -> Feed:
        return _feed(self._fetch_one(f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(feed_id),)))

    def get_feed_by_url(self, url: str) -> Feed:
        return _feed(self._fetch_one(f"SELECT {_FEED_COLUMNS} FROM feeds WHERE url = ?", (url,)))

    def get_feeds(self) -> list[Feed]:
        return [_feed(row) for row in self._fetch_all(f"SELECT {_FEED_COLUMNS} FROM feeds")]

    def get_next_feed_to_fetch(self) -> Feed:
        """Return the feed fetched longest ago, never-fetched feeds first."""
        return _feed(
            self._fetch_one(
                f"SELECT {_FEED_COLUMNS} FROM feeds "
                "ORDER BY last_fetched_at IS NOT NULL, last_fetched_at ASC LIMIT 1"
            )
        )

    def mark_feed_fetched(self, feed_id: UUID) -> Feed:
        now = _fmt_dt(datetime.now(timezone.utc))
        cursor = self._execute(
            "UPDATE feeds SET updated_at = ?, last_fetched_at = ? WHERE id = ?",
            (now, now, str(feed_id)),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("no rows in result set")
        return self._get_feed_by_id(feed_id)

    # feed follows

    def create_feed_follow(
        self,
        follow_id: UUID,
        created_at: datetime,
        updated_at: datetime,
        user_id: UUID,
        feed_id: UUID,
    ) -> FeedFollowRow:
        self._execute(
            "INSERT INTO feed_follows (id, created_at, updated_at, user_id, feed_id) VALUES (?, ?, ?, ?, ?)",
            (str(follow_id), _fmt_dt(created_at), _fmt_dt(updated_at), str(user_id), str(feed_id)),
        )
        return _follow_row(self._fetch_one(_FOLLOW_SELECT + "WHERE feed_follows.id = ?", (str(follow_id),)))

    def delete_feed_follow(self, user_id: UUID, feed_id: UUID) -> None:
        self._execute(
            "DELETE FROM feed_follows WHERE user_id = ? AND feed_id = ?",
            (str(user_id), str(feed_id)),
        )

    def get_feed_follows_for_user(self, user_id: UUID) -> list[FeedFollowRow]:
        rows = self._fetch_all(_FOLLOW_SELECT + "WHERE users.id = ?", (str(user_id),))
        return [_follow_row(row) for row in rows]

    # posts

    def create_post(
        self,
        post_id: UUID,
        created_at: datetime,
        updated_at: datetime,
        title: str,
        url: str,
        description: str | None,
        published_at: datetime | None,
        feed_id: UUID,
    ) -> Post:
        self._execute(
            "INSERT INTO posts (id, created_at, updated_at, title, url, description, published_at, feed_id) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                str(post_id),
                _fmt_dt(created_at),
                _fmt_dt(updated_at),
                title,
                url,
                description,
                _fmt_dt(published_at),
                str(feed_id),
            ),
        )
        row = self._fetch_one(
            "SELECT id, created_at, updated_at, title, url, description, published_at, feed_id "
            "FROM posts WHERE id = ?",
            (str(post_id),),
        )
        return Post(**_post_fields(row))

    def get_posts_for_user(self, user_id: UUID, limit: int) -> list[PostRow]:
        """Return the newest posts from the feeds a user follows."""
        if limit < 0:
            raise DatabaseError("LIMIT must not be negative")
        rows = self._fetch_all(
            "SELECT posts.id, posts.created_at, posts.updated_at, posts.title, posts.url, "
            "posts.description, posts.published_at, posts.feed_id, feeds.name AS feed_name "
            "FROM posts "
            "JOIN feed_follows ON feed_follows.feed_id = posts.feed_id "
            "JOIN feeds ON posts.feed_id = feeds.id "
            "WHERE feed_follows.user_id = ? "
            "ORDER BY posts.published_at IS NULL DESC, posts.published_at DESC "
            "LIMIT ?",
            (str(user_id), limit),
        )
        return [PostRow(**_post_fields(row), feed_name=row["feed_name"]) for row in rows]


def connect(url: str) -> Queries:
    """Open the SQLite database named by ``url`` and make sure its tables exist.

    ``url`` may be a file path, ``:memory:``, or a ``sqlite:///path`` URL.
    """
    if url.startswith("sqlite:///"):
        path = url[len("sqlite:///"):] or ":memory:"
    elif url.startswith("sqlite://"):
        path = url[len("sqlite://"):] or ":memory:"
    elif "://" in url:
        raise DatabaseError(f"unsupported database url: {url}")
    else:
        path = url
    with _translate_errors():
        conn = sqlite3.connect(path)
    queries = Queries(conn)
    queries.create_schema()
    return queries