from __future__ import annotations

import sqlite3
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import TypeVar

import anyio.to_thread

from ..logging import get_logger
from .models import Event, EventStatus, EventType, Profile, Topic, User
from .repositories import NotFoundError, RepositoryError

logger = get_logger(__name__)

T = TypeVar("T")

SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'actual',
    started_at TEXT,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS topics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    topic TEXT NOT NULL,
    user_nickname TEXT,
    event_id INTEGER NOT NULL REFERENCES events(id) ON DELETE CASCADE,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_topics_event_id ON topics(event_id);
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tg_id INTEGER NOT NULL UNIQUE,
    firstname TEXT NOT NULL DEFAULT '',
    lastname TEXT NOT NULL DEFAULT '',
    tg_username TEXT NOT NULL DEFAULT '',
    score INTEGER NOT NULL DEFAULT 0,
    has_coffee_ban INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS profiles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
    bio TEXT NOT NULL DEFAULT '',
    published_message_id INTEGER
);
"""

USER_FIELDS = frozenset({"firstname", "lastname", "tg_username"})


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _parse_ts(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class Database:
    """One SQLite connection shared by the repositories.

    Queries run in a worker thread; a lock keeps them from interleaving on
    the shared connection.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def open(self) -> None:
        if self._conn is not None:
            return
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(self._path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            conn.executescript(SCHEMA)
            conn.commit()
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to open database {self._path}: {exc}") from exc
        self._conn = conn
        logger.info("database.opened", path=str(self._path))

    def close(self) -> None:
        if self._conn is None:
            return
        with self._lock:
            self._conn.close()
            self._conn = None

    async def run(self, func: Callable[[sqlite3.Connection], T]) -> T:
        return await anyio.to_thread.run_sync(self._run_locked, func)

    def _run_locked(self, func: Callable[[sqlite3.Connection], T]) -> T:
        with self._lock:
            conn = self._conn
            if conn is None:
                raise RepositoryError("database is not open")
            try:
                result = func(conn)
                conn.commit()
            except sqlite3.Error as exc:
                conn.rollback()
                logger.error("database.error", error=str(exc), error_type=exc.__class__.__name__)
                raise RepositoryError(str(exc)) from exc
            except Exception:
                conn.rollback()
                raise
            return result


def _event_from_row(row: sqlite3.Row) -> Event:
    return Event(
        id=row["id"],
        name=row["name"],
        type=EventType(row["type"]),
        status=EventStatus(row["status"]),
        started_at=_parse_ts(row["started_at"]),
        created_at=_parse_ts(row["created_at"]) or datetime.now(UTC),
    )


def _topic_from_row(row: sqlite3.Row) -> Topic:
    return Topic(
        id=row["id"],
        topic=row["topic"],
        user_nickname=row["user_nickname"],
        event_id=row["event_id"],
        created_at=_parse_ts(row["created_at"]) or datetime.now(UTC),
    )


def _user_from_row(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        tg_id=row["tg_id"],
        firstname=row["firstname"],
        lastname=row["lastname"],
        tg_username=row["tg_username"],
        score=row["score"],
        has_coffee_ban=bool(row["has_coffee_ban"]),
    )


def _profile_from_row(row: sqlite3.Row) -> Profile:
    return Profile(
        id=row["id"],
        user_id=row["user_id"],
        bio=row["bio"],
        published_message_id=row["published_message_id"],
    )


def _require_row(row: sqlite3.Row | None, entity: str, key: object) -> sqlite3.Row:
    if row is None:
        raise NotFoundError(entity, key)
    return row


class SqliteEventRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    async def create(self, name: str, type_: EventType) -> int:
        def op(conn: sqlite3.Connection) -> int:
            cur = conn.execute(
                "INSERT INTO events (name, type, status, created_at) VALUES (?, ?, ?, ?)",
                (name, type_.value, EventStatus.ACTUAL.value, _now()),
            )
            return int(cur.lastrowid)

        return await self._db.run(op)

    async def get_by_id(self, event_id: int) -> Event:
        def op(conn: sqlite3.Connection) -> Event:
            row = conn.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()
            return _event_from_row(_require_row(row, "event", event_id))

        return await self._db.run(op)

    async def get_last(self, limit: int) -> list[Event]:
        def op(conn: sqlite3.Connection) -> list[Event]:
            rows = conn.execute(
                "SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()
            return [_event_from_row(row) for row in rows]

        return await self._db.run(op)

    async def get_last_actual(self, limit: int) -> list[Event]:
        def op(conn: sqlite3.Connection) -> list[Event]:
            rows = conn.execute(
                "SELECT * FROM events WHERE status = ? ORDER BY id DESC LIMIT ?",
                (EventStatus.ACTUAL.value, limit),
            ).fetchall()
            return [_event_from_row(row) for row in rows]

        return await self._db.run(op)

    async def update_name(self, event_id: int, name: str) -> None:
        await self._update(event_id, "name", name)

    async def update_type(self, event_id: int, type_: EventType) -> None:
        await self._update(event_id, "type", type_.value)

    async def update_started_at(self, event_id: int, started_at: datetime) -> None:
        if started_at.tzinfo is None:
            started_at = started_at.replace(tzinfo=UTC)
        await self._update(event_id, "started_at", started_at.astimezone(UTC).isoformat())

    async def update_status(self, event_id: int, status: EventStatus) -> None:
        await self._update(event_id, "status", status.value)

    async def _update(self, event_id: int, column: str, value: object) -> None:
        def op(conn: sqlite3.Connection) -> None:
            cur = conn.execute(
                f"UPDATE events SET {column} = ? WHERE id = ?", (value, event_id)
            )
            if cur.rowcount == 0:
                raise NotFoundError("event", event_id)

        await self._db.run(op)


class SqliteTopicRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    async def create(self, topic: str, user_nickname: str | None, event_id: int) -> int:
        def op(conn: sqlite3.Connection) -> int:
            cur = conn.execute(
                "INSERT INTO topics (topic, user_nickname, event_id, created_at) "
                "VALUES (?, ?, ?, ?)",
                (topic, user_nickname, event_id, _now()),
            )
            return int(cur.lastrowid)

        return await self._db.run(op)

    async def get_by_id(self, topic_id: int) -> Topic:
        def op(conn: sqlite3.Connection) -> Topic:
            row = conn.execute("SELECT * FROM topics WHERE id = ?", (topic_id,)).fetchone()
            return _topic_from_row(_require_row(row, "topic", topic_id))

        return await self._db.run(op)

    async def get_by_event(self, event_id: int) -> list[Topic]:
        def op(conn: sqlite3.Connection) -> list[Topic]:
            rows = conn.execute(
                "SELECT * FROM topics WHERE event_id = ? ORDER BY id", (event_id,)
            ).fetchall()
            return [_topic_from_row(row) for row in rows]

        return await self._db.run(op)

    async def delete(self, topic_id: int) -> None:
        def op(conn: sqlite3.Connection) -> None:
            cur = conn.execute("DELETE FROM topics WHERE id = ?", (topic_id,))
            if cur.rowcount == 0:
                raise NotFoundError("topic", topic_id)

        await self._db.run(op)


class SqliteUserRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    async def create(
        self, tg_id: int, firstname: str = "", lastname: str = "", tg_username: str = ""
    ) -> int:
        def op(conn: sqlite3.Connection) -> int:
            cur = conn.execute(
                "INSERT INTO users (tg_id, firstname, lastname, tg_username) "
                "VALUES (?, ?, ?, ?)",
                (tg_id, firstname, lastname, tg_username),
            )
            return int(cur.lastrowid)

        return await self._db.run(op)

    async def get_by_id(self, user_id: int) -> User:
        def op(conn: sqlite3.Connection) -> User:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return _user_from_row(_require_row(row, "user", user_id))

        return await self._db.run(op)

    async def get_by_tg_id(self, tg_id: int) -> User | None:
        return await self._fetch_one("SELECT * FROM users WHERE tg_id = ?", (tg_id,))

    async def get_by_username(self, username: str) -> User | None:
        username = username.strip().removeprefix("@")
        if not username:
            return None
        return await self._fetch_one(
            "SELECT * FROM users WHERE LOWER(tg_username) = LOWER(?)", (username,)
        )

    async def search_by_name(self, firstname: str, lastname: str) -> User | None:
        return await self._fetch_one(
            "SELECT * FROM users WHERE LOWER(firstname) = LOWER(?) "
            "AND LOWER(lastname) = LOWER(?) ORDER BY id LIMIT 1",
            (firstname.strip(), lastname.strip()),
        )

    async def get_or_create(
        self,
        tg_id: int,
        *,
        firstname: str | None = None,
        lastname: str | None = None,
        tg_username: str | None = None,
    ) -> User:
        def op(conn: sqlite3.Connection) -> User:
            row = conn.execute("SELECT * FROM users WHERE tg_id = ?", (tg_id,)).fetchone()
            if row is None:
                conn.execute(
                    "INSERT INTO users (tg_id, firstname, lastname, tg_username) "
                    "VALUES (?, ?, ?, ?)",
                    (tg_id, firstname or "", lastname or "", tg_username or ""),
                )
            elif tg_username and row["tg_username"] != tg_username:
                conn.execute(
                    "UPDATE users SET tg_username = ? WHERE tg_id = ?",
                    (tg_username, tg_id),
                )
            row = conn.execute("SELECT * FROM users WHERE tg_id = ?", (tg_id,)).fetchone()
            return _user_from_row(row)

        return await self._db.run(op)

    async def update(self, user_id: int, **fields: str) -> None:
        unknown = set(fields) - USER_FIELDS
        if unknown:
            raise ValueError(f"cannot update user fields: {', '.join(sorted(unknown))}")
        if not fields:
            return
        assignments = ", ".join(f"{name} = ?" for name in fields)

        def op(conn: sqlite3.Connection) -> None:
            cur = conn.execute(
                f"UPDATE users SET {assignments} WHERE id = ?",
                (*fields.values(), user_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError("user", user_id)

        await self._db.run(op)

    async def set_coffee_ban(self, user_id: int, banned: bool) -> None:
        def op(conn: sqlite3.Connection) -> None:
            cur = conn.execute(
                "UPDATE users SET has_coffee_ban = ? WHERE id = ?", (int(banned), user_id)
            )
            if cur.rowcount == 0:
                raise NotFoundError("user", user_id)

        await self._db.run(op)

    async def _fetch_one(self, query: str, params: tuple) -> User | None:
        def op(conn: sqlite3.Connection) -> User | None:
            row = conn.execute(query, params).fetchone()
            return _user_from_row(row) if row is not None else None

        return await self._db.run(op)


class SqliteProfileRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    async def get_by_id(self, profile_id: int) -> Profile:
        def op(conn: sqlite3.Connection) -> Profile:
            row = conn.execute(
                "SELECT * FROM profiles WHERE id = ?", (profile_id,)
            ).fetchone()
            return _profile_from_row(_require_row(row, "profile", profile_id))

        return await self._db.run(op)

    async def get_or_create(self, user_id: int) -> Profile:
        return await self.get_or_create_with_bio(user_id, "")

    async def get_or_create_with_bio(self, user_id: int, bio: str) -> Profile:
        def op(conn: sqlite3.Connection) -> Profile:
            row = conn.execute(
                "SELECT * FROM profiles WHERE user_id = ?", (user_id,)
            ).fetchone()
            if row is None:
                conn.execute(
                    "INSERT INTO profiles (user_id, bio) VALUES (?, ?)", (user_id, bio)
                )
                row = conn.execute(
                    "SELECT * FROM profiles WHERE user_id = ?", (user_id,)
                ).fetchone()
            return _profile_from_row(row)

        return await self._db.run(op)

    async def update_bio(self, profile_id: int, bio: str) -> None:
        await self._update(profile_id, "bio", bio)

    async def update_published_message_id(self, profile_id: int, message_id: int) -> None:
        await self._update(profile_id, "published_message_id", message_id)

    async def _update(self, profile_id: int, column: str, value: object) -> None:
        def op(conn: sqlite3.Connection) -> None:
            cur = conn.execute(
                f"UPDATE profiles SET {column} = ? WHERE id = ?", (value, profile_id)
            )
            if cur.rowcount == 0:
                raise NotFoundError("profile", profile_id)

        await self._db.run(op)
