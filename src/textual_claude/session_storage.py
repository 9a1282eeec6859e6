"""Transcript snapshots for conversation sessions.

Maps working directories to the last saved transcript so a host can offer to
restore it after a restart. Uses SQLite for persistence.

    storage = SessionStorage()
    storage.save(os.getcwd(), session.snapshot())
    ...
    if rows := storage.load(os.getcwd()):
        session.restore(rows)
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Mapping
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)


class SessionStorage:
    """Stores one transcript snapshot per working directory."""

    def __init__(self, db_path: Path | None = None, clear_on_init: bool = False):
        # Use XDG cache dir or fallback to home
        if db_path is None:
            cache_dir = Path.home() / ".cache" / "textual-claude"
            cache_dir.mkdir(parents=True, exist_ok=True)
            db_path = cache_dir / "transcripts.db"

        self.db_path = db_path
        self._init_db()

        if clear_on_init:
            count = self.clear_all()
            if count > 0:
                log.info(f"Cleared {count} stale transcript(s) from previous app run")

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS transcripts (
                    working_dir TEXT PRIMARY KEY,
                    entries TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """
            )
            conn.commit()
        log.info(f"Transcript database initialized at: {self.db_path}")

    @staticmethod
    def _normalize(cwd: str | Path) -> str:
        return str(Path(cwd).resolve())

    def save(self, cwd: str | Path, entries: list[Mapping[str, Any]]) -> None:
        """Store the transcript for a working directory, replacing any earlier one."""
        normalized = self._normalize(cwd)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO transcripts (working_dir, entries, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(working_dir) DO UPDATE SET
                    entries = excluded.entries,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (normalized, json.dumps(list(entries))),
            )
            conn.commit()
        log.debug(f"Saved {len(entries)} entries for {normalized}")

    def load(self, cwd: str | Path) -> list[dict[str, Any]] | None:
        """Return the saved transcript, or None if there is none (or it is corrupt)."""
        normalized = self._normalize(cwd)
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "SELECT entries FROM transcripts WHERE working_dir = ?", (normalized,)
            )
            row = cursor.fetchone()

        if not row:
            return None
        try:
            entries = json.loads(row[0])
        except json.JSONDecodeError:
            log.warning(f"Discarding unreadable transcript for {normalized}")
            return None
        if not isinstance(entries, list):
            return None
        return entries

    def delete(self, cwd: str | Path) -> bool:
        """Delete the transcript for a working directory. Returns True if one existed."""
        normalized = self._normalize(cwd)
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("DELETE FROM transcripts WHERE working_dir = ?", (normalized,))
            conn.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            log.info(f"Deleted transcript for {normalized}")
        return deleted

    def clear_all(self) -> int:
        """Clear all stored transcripts.

        Returns:
            Number of transcripts cleared
        """
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("DELETE FROM transcripts")
            conn.commit()
            return cursor.rowcount
