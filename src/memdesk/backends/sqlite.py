"""SQLite storage for customer profiles and observations."""

import asyncio
import re
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Callable, TypeVar

from ..memory.models import ObservationSummary, Profile
from .base import BackendError, IntegrityError, MemoryBackend

T = TypeVar("T")

SCHEMA = """
CREATE TABLE IF NOT EXISTS customer_profiles (
    phone       TEXT PRIMARY KEY,
    name        TEXT,
    email       TEXT,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);

CREATE TABLE IF NOT EXISTS customer_observations (
    id              TEXT PRIMARY KEY,
    customer_phone  TEXT NOT NULL,
    content         TEXT NOT NULL,
    source          TEXT NOT NULL CHECK (source IN ('voice', 'sms', 'whatsapp')),
    occurred_at     TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    created_at      TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    FOREIGN KEY (customer_phone) REFERENCES customer_profiles(phone) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_observations_customer_phone
    ON customer_observations(customer_phone);
CREATE INDEX IF NOT EXISTS idx_observations_occurred_at
    ON customer_observations(occurred_at DESC);

CREATE VIRTUAL TABLE IF NOT EXISTS customer_observations_fts USING fts5(
    content,
    content='customer_observations',
    content_rowid='rowid',
    tokenize='porter unicode61'
);

CREATE TRIGGER IF NOT EXISTS customer_observations_ai
AFTER INSERT ON customer_observations BEGIN
    INSERT INTO customer_observations_fts(rowid, content)
    VALUES (new.rowid, new.content);
END;

CREATE TRIGGER IF NOT EXISTS customer_observations_ad
AFTER DELETE ON customer_observations BEGIN
    INSERT INTO customer_observations_fts(customer_observations_fts, rowid, content)
    VALUES ('delete', old.rowid, old.content);
END;
"""

_WORD_RE = re.compile(r"\w+", re.UNICODE)


def build_match_query(query: str) -> str:
    """Turn free text into an FTS5 query requiring every word.

    Each word is quoted so FTS operators in user text are matched literally.
    Returns an empty string when the text has no words.
    """
    words = _WORD_RE.findall(query)
    return " ".join(f'"{word}"' for word in words)


class SQLiteBackend(MemoryBackend):
    """Customer memory backed by a local SQLite database.

    Observation content is indexed with FTS5 using the Porter stemmer.
    sqlite3 is synchronous, so calls run in the default executor and are
    serialized on a single connection.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the backend with a database path.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        return self._conn

    def init_db(self) -> None:
        """Create tables, indexes and the search index if they don't exist.

        Raises:
            BackendError: If the database cannot be opened or created.
        """
        try:
            conn = self._get_connection()
            conn.executescript(SCHEMA)
            conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise BackendError(f"Cannot initialize {self.db_path}: {e}") from e

    async def _run(self, func: Callable[[sqlite3.Connection], T]) -> T:
        """Run a function against the connection in the executor."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            try:
                return await loop.run_in_executor(
                    None, lambda: func(self._get_connection())
                )
            except sqlite3.IntegrityError as e:
                raise IntegrityError(str(e)) from e
            except sqlite3.Error as e:
                raise BackendError(str(e)) from e

    async def fetch_profile(self, phone: str) -> Profile | None:
        def query(conn: sqlite3.Connection) -> sqlite3.Row | None:
            cursor = conn.execute(
                "SELECT phone, name, email, created_at, updated_at "
                "FROM customer_profiles WHERE phone = ?",
                (phone,),
            )
            return cursor.fetchone()

        row = await self._run(query)
        if row is None:
            return None
        return Profile(
            phone=row["phone"],
            name=row["name"],
            email=row["email"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def insert_profile(
        self, phone: str, name: str | None = None, email: str | None = None
    ) -> None:
        def insert(conn: sqlite3.Connection) -> None:
            conn.execute(
                "INSERT INTO customer_profiles (phone, name, email) VALUES (?, ?, ?)",
                (phone, name, email),
            )
            conn.commit()

        await self._run(insert)

    async def update_profile(self, phone: str, fields: dict[str, Any]) -> None:
        unknown = set(fields) - {"name", "email"}
        if unknown:
            raise BackendError(f"Unknown profile columns: {sorted(unknown)}")
        if not fields:
            return

        assignments = ", ".join(f"{column} = ?" for column in fields)

        def update(conn: sqlite3.Connection) -> None:
            conn.execute(
                f"UPDATE customer_profiles SET {assignments}, "
                "updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now') "
                "WHERE phone = ?",
                (*fields.values(), phone),
            )
            conn.commit()

        await self._run(update)

    async def insert_observation(
        self,
        customer_phone: str,
        content: str,
        source: str,
        occurred_at: str,
    ) -> None:
        def insert(conn: sqlite3.Connection) -> None:
            conn.execute(
                """
                INSERT INTO customer_observations
                    (id, customer_phone, content, source, occurred_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (str(uuid.uuid4()), customer_phone, content, source, occurred_at),
            )
            conn.commit()

        await self._run(insert)

    async def recent_observations(
        self, customer_phone: str, limit: int
    ) -> list[ObservationSummary]:
        def query(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            cursor = conn.execute(
                """
                SELECT content, occurred_at, source
                FROM customer_observations
                WHERE customer_phone = ?
                ORDER BY occurred_at DESC
                LIMIT ?
                """,
                (customer_phone, limit),
            )
            return cursor.fetchall()

        return [self._row_to_summary(row) for row in await self._run(query)]

    async def search_observations(
        self, customer_phone: str, query: str, limit: int
    ) -> list[ObservationSummary]:
        match = build_match_query(query)
        if not match:
            return []

        def search(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            cursor = conn.execute(
                """
                SELECT o.content, o.occurred_at, o.source
                FROM customer_observations_fts f
                JOIN customer_observations o ON o.rowid = f.rowid
                WHERE customer_observations_fts MATCH ?
                  AND o.customer_phone = ?
                ORDER BY o.occurred_at DESC
                LIMIT ?
                """,
                (match, customer_phone, limit),
            )
            return cursor.fetchall()

        return [self._row_to_summary(row) for row in await self._run(search)]

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _row_to_summary(self, row: sqlite3.Row) -> ObservationSummary:
        """Convert a database row to an ObservationSummary."""
        return ObservationSummary(
            content=row["content"],
            occurred_at=row["occurred_at"],
            source=row["source"],
        )
