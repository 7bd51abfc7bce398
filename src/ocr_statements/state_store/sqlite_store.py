"""
SQLite-based state store implementation.

Tables:
- merchant_patterns: Learned statistics per merchant key
- corrections: Append-only log of user-approved corrections
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from ..errors import PersistenceError
from ..learning.patterns import PersistedState
from ..schemas.transactions import CorrectionRecord, MerchantPatternEntry, PatternType

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _decode_amounts(raw: str) -> list[Decimal]:
    """Parse a stored JSON array of signed decimal strings."""
    values = json.loads(raw)
    if not isinstance(values, list):
        raise ValueError(f"amounts must be a JSON array, got {type(values).__name__}")
    return [Decimal(str(v)) for v in values]


class StateStore:
    """
    SQLite-based persistence for learned patterns.

    Provides ``load_state`` / ``save_state`` for use as the loader/saver pair
    of a MerchantPatternStore. Every failure surfaces as PersistenceError.

    Thread-safe for single-writer scenarios.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path | str):
        """
        Initialize state store.

        Args:
            db_path: Path to SQLite database file

        Raises:
            PersistenceError: The database could not be created
        """
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create state directory: {e}") from e
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open state database {self.db_path}: {e}") from e

        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"State database error: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS merchant_patterns (
                    merchant TEXT PRIMARY KEY,
                    count INTEGER NOT NULL,
                    amounts TEXT NOT NULL,  -- JSON array of signed decimal strings
                    type TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS corrections (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    date_format_original TEXT,
                    original_line TEXT,
                    corrected_date TEXT,
                    corrected_description TEXT NOT NULL,
                    corrected_amount TEXT NOT NULL,
                    corrected_type TEXT,
                    created_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                (self.SCHEMA_VERSION,),
            )

    def load_state(self) -> PersistedState:
        """
        Load all patterns and the correction log.

        Raises:
            PersistenceError: The database or a stored row is unreadable
        """
        with self._transaction() as conn:
            pattern_rows = conn.execute(
                "SELECT merchant, amounts, type FROM merchant_patterns ORDER BY merchant"
            ).fetchall()
            correction_rows = conn.execute("SELECT * FROM corrections ORDER BY id").fetchall()

        try:
            patterns = {}
            for row in pattern_rows:
                amounts = _decode_amounts(row["amounts"])
                patterns[row["merchant"]] = MerchantPatternEntry(
                    count=len(amounts),
                    amounts=amounts,
                    type=PatternType(row["type"]),
                )

            corrections = [
                CorrectionRecord(
                    date_format_original=row["date_format_original"] or "",
                    original_line=row["original_line"] or "",
                    corrected_date=row["corrected_date"] or "",
                    corrected_description=row["corrected_description"],
                    corrected_amount=Decimal(row["corrected_amount"]),
                    corrected_type=row["corrected_type"] or "",
                )
                for row in correction_rows
            ]
        except (ValueError, TypeError, KeyError, InvalidOperation) as e:
            raise PersistenceError(f"Corrupt state row: {e}") from e

        return PersistedState(patterns=patterns, corrections=corrections)

    def save_state(self, changes: PersistedState) -> None:
        """
        Append unsaved changes.

        Each merchant's new amounts are appended to its stored amounts and its
        type is recomputed from the combined list. A stored row that cannot be
        read is replaced. Every correction record given is inserted; existing
        rows are never rewritten.

        Args:
            changes: Amounts and correction records not yet persisted

        Raises:
            PersistenceError: The write failed (nothing is committed)
        """
        now = _now()
        with self._transaction() as conn:
            for merchant, delta in changes.patterns.items():
                entry = MerchantPatternEntry()
                for amount in self._stored_amounts(conn, merchant) + list(delta.amounts):
                    entry.add(amount)

                conn.execute(
                    """
                    INSERT INTO merchant_patterns (merchant, count, amounts, type, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(merchant) DO UPDATE SET
                        count = excluded.count,
                        amounts = excluded.amounts,
                        type = excluded.type,
                        updated_at = excluded.updated_at
                """,
                    (
                        merchant,
                        entry.count,
                        json.dumps([str(a) for a in entry.amounts]),
                        entry.type.value,
                        now,
                    ),
                )

            for record in changes.corrections:
                conn.execute(
                    """
                    INSERT INTO corrections (
                        date_format_original, original_line, corrected_date,
                        corrected_description, corrected_amount, corrected_type,
                        created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        record.date_format_original,
                        record.original_line,
                        record.corrected_date,
                        record.corrected_description,
                        str(record.corrected_amount),
                        record.corrected_type,
                        now,
                    ),
                )

        logger.debug(
            f"Saved {len(changes.patterns)} patterns and "
            f"{len(changes.corrections)} corrections to {self.db_path}"
        )

    def _stored_amounts(self, conn: sqlite3.Connection, merchant: str) -> list[Decimal]:
        """Amounts already stored for a merchant; empty when missing or unreadable."""
        row = conn.execute(
            "SELECT amounts FROM merchant_patterns WHERE merchant = ?", (merchant,)
        ).fetchone()
        if row is None:
            return []

        try:
            return _decode_amounts(row["amounts"])
        except (ValueError, TypeError, InvalidOperation) as e:
            logger.warning(f"Replacing unreadable amounts for {merchant!r}: {e}")
            return []

    def get_stats(self) -> dict[str, Any]:
        """Counts for status output."""
        with self._transaction() as conn:
            patterns = conn.execute("SELECT COUNT(*) FROM merchant_patterns").fetchone()[0]
            corrections = conn.execute("SELECT COUNT(*) FROM corrections").fetchone()[0]
            by_type = {
                row["type"]: row["n"]
                for row in conn.execute(
                    "SELECT type, COUNT(*) AS n FROM merchant_patterns GROUP BY type"
                ).fetchall()
            }

        return {
            "merchant_patterns": patterns,
            "corrections": corrections,
            "patterns_by_type": by_type,
        }
