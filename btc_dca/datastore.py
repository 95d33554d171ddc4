"""Minimal SQLite helper for the DCA calculator.

Holds two things:
1. The newsletter subscriber list, an append-only list of emails stored
   under a list key (``newsletterEmails`` by default).
2. The ``logs`` table written by the database log handler.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import List, Optional

from .config import DB_PATH, NEWSLETTER_KEY


def _ensure_parent(path: Path) -> None:
    """Create the parent directory for the database file if required."""

    if not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)


class SQLiteDataStore:
    """Very small wrapper around sqlite3 connections."""

    def __init__(self, db_path: str | Path = Path(DB_PATH)) -> None:
        self.db_path = Path(db_path)
        _ensure_parent(self.db_path)

    def _connect(self) -> sqlite3.Connection:
        """Return a live sqlite3 connection."""

        return sqlite3.connect(self.db_path)

    def initialize(self) -> None:
        """Create base tables if they do not already exist."""
        schema = """
        CREATE TABLE IF NOT EXISTS subscribers (
            list_key TEXT NOT NULL,
            position INTEGER NOT NULL,
            email TEXT NOT NULL,
            PRIMARY KEY (list_key, email)
        );

        CREATE TABLE IF NOT EXISTS logs (
            timestamp INTEGER NOT NULL,
            level TEXT NOT NULL,
            module TEXT NOT NULL,
            message TEXT NOT NULL
        );
        """

        with self._connect() as conn:
            conn.executescript(schema)

    def fetch_emails(self, list_key: str = NEWSLETTER_KEY) -> List[str]:
        """Return the emails stored under ``list_key`` in insertion order."""

        with self._connect() as conn:
            cursor = conn.execute(
                "SELECT email FROM subscribers WHERE list_key = ? ORDER BY position ASC",
                (list_key,),
            )
            rows = cursor.fetchall()

        return [str(row[0]) for row in rows]

    def contains_email(self, email: str, list_key: str = NEWSLETTER_KEY) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM subscribers WHERE list_key = ? AND email = ?",
                (list_key, email),
            ).fetchone()
        return row is not None

    def append_email(self, email: str, list_key: str = NEWSLETTER_KEY) -> bool:
        """
        Append ``email`` to the list under ``list_key``.

        Returns:
            True if the email was added, False if it was already present.
        """
        with self._connect() as conn:
            (next_position,) = conn.execute(
                "SELECT COALESCE(MAX(position), -1) + 1 FROM subscribers WHERE list_key = ?",
                (list_key,),
            ).fetchone()
            cursor = conn.execute(
                "INSERT OR IGNORE INTO subscribers (list_key, position, email) VALUES (?, ?, ?)",
                (list_key, next_position, email),
            )
            return cursor.rowcount == 1

    def insert_log(self, timestamp_ms: Optional[int], level: str, module: str, message: str) -> None:
        """Store one log record."""

        with self._connect() as conn:
            conn.execute(
                "INSERT INTO logs (timestamp, level, module, message) VALUES (?, ?, ?, ?)",
                (timestamp_ms or 0, level, module, message),
            )

    def fetch_logs(self, limit: Optional[int] = None) -> List[tuple]:
        """Return ``(timestamp, level, module, message)`` rows, oldest first."""

        query = "SELECT timestamp, level, module, message FROM logs ORDER BY rowid ASC"
        params: List[object] = []
        if limit is not None:
            query += " LIMIT ?"
            params.append(int(limit))

        with self._connect() as conn:
            return [tuple(row) for row in conn.execute(query, params).fetchall()]
