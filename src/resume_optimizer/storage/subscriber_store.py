"""SQLite-backed list of landing-page email subscribers."""

from __future__ import annotations

import csv
import io
import logging
import re
import sqlite3
from datetime import datetime
from pathlib import Path

from resume_optimizer.errors import InputValidationError, StorageError
from resume_optimizer.models.subscriber import EmailSubscriber, SubscribeResult

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".resume-optimizer" / "subscribers.db"
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CSV_HEADER = ["ID", "Email", "Source", "Created At", "IP Address"]


class SubscriberStore:
    """Email subscribers keyed by lowercased address."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS email_subscribers (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT UNIQUE NOT NULL,
                    source TEXT NOT NULL DEFAULT 'landing_page',
                    created_at TEXT NOT NULL,
                    ip_address TEXT,
                    user_agent TEXT
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_created_at ON email_subscribers(created_at)"
            )

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def subscribe(
        self,
        email: str | None,
        source: str = "landing_page",
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> SubscribeResult:
        """Add ``email``; an existing address is reported, not treated as an error."""
        if not email or not isinstance(email, str):
            raise InputValidationError("Email is required", user_message="Email is required")
        normalized = email.strip().lower()
        if not EMAIL_PATTERN.match(normalized):
            raise InputValidationError(
                f"Invalid email format: {email!r}", user_message="Invalid email format"
            )

        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    """INSERT INTO email_subscribers
                       (email, source, created_at, ip_address, user_agent)
                       VALUES (?, ?, ?, ?, ?)""",
                    (
                        normalized,
                        source or "landing_page",
                        datetime.now().isoformat(),
                        ip_address,
                        user_agent,
                    ),
                )
                subscriber_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            return SubscribeResult(
                success=True,
                message="You are already subscribed!",
                already_subscribed=True,
            )
        except sqlite3.Error as e:
            logger.error("Failed to save subscriber", exc_info=True)
            raise StorageError(str(e), user_message="Failed to save email") from e

        logger.info("New subscriber id=%s source=%s", subscriber_id, source)
        return SubscribeResult(
            success=True,
            message="Thank you for subscribing!",
            subscriber_id=subscriber_id,
        )

    def all(self) -> list[EmailSubscriber]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM email_subscribers ORDER BY created_at DESC, id DESC"
            ).fetchall()
        return [self._row_to_subscriber(row) for row in rows]

    def recent(self, limit: int = 10) -> list[EmailSubscriber]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM email_subscribers ORDER BY created_at DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._row_to_subscriber(row) for row in rows]

    def count(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM email_subscribers").fetchone()[0]

    @staticmethod
    def to_csv(subscribers: list[EmailSubscriber]) -> str:
        """Render subscribers as CSV with the admin export header."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for s in subscribers:
            writer.writerow([s.id, s.email, s.source, s.created_at.isoformat(), s.ip_address or ""])
        return buffer.getvalue()

    @staticmethod
    def _row_to_subscriber(row: tuple) -> EmailSubscriber:
        return EmailSubscriber(
            id=row[0],
            email=row[1],
            source=row[2],
            created_at=datetime.fromisoformat(row[3]),
            ip_address=row[4],
            user_agent=row[5],
        )
