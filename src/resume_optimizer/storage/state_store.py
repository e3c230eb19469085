"""SQLite key-value store for the persisted wizard state."""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path

from pydantic import ValidationError

from resume_optimizer.errors import StorageError
from resume_optimizer.models.wizard import WizardState

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".resume-optimizer" / "state.db"
STATE_KEY = "resumeOptimizerState"


class StateStore:
    """Durable storage for one wizard state record.

    Records are JSON with camelCase keys, the same shape the web front end
    keeps in browser storage.
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH, key: str = STATE_KEY):
        self.db_path = Path(db_path)
        self.key = key
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
            """)

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def load(self) -> WizardState | None:
        """Return the saved state, or None when absent or unreadable.

        A corrupt record is removed so the next load starts clean.
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (self.key,)
            ).fetchone()
        if row is None:
            return None

        try:
            record = json.loads(row[0])
            if not isinstance(record, dict):
                raise ValueError(f"expected an object, got {type(record).__name__}")
            return WizardState.from_record(record)
        except (ValueError, ValidationError):
            logger.error("Discarding corrupt saved state", exc_info=True)
            self.clear()
            return None

    def save(self, state: WizardState) -> None:
        """Write ``state``, replacing any previous record."""
        try:
            with self._connect() as conn:
                conn.execute(
                    """INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                       VALUES (?, ?, ?)""",
                    (self.key, json.dumps(state.to_record()), time.time()),
                )
        except (sqlite3.Error, OSError) as e:
            logger.error("Failed to save state to %s", self.db_path, exc_info=True)
            raise StorageError(str(e)) from e

    def clear(self) -> None:
        """Delete the saved record."""
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (self.key,))
        except (sqlite3.Error, OSError) as e:
            logger.error("Failed to clear state in %s", self.db_path, exc_info=True)
            raise StorageError(str(e)) from e
