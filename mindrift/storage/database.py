"""
SQLite Database Layer for Mindrift

This module persists the two inputs the engine reads from the host: the
edit history (one row per note edit with its semantic diff) and the
daily drift annotations.

Design Decisions:
    - SQLite for zero-config, file-based storage
    - The engine stays pure: this layer only loads and saves values,
      all computation happens on the loaded objects
    - Timestamps are stored as UTC ISO-8601 strings with microseconds, so
      lexical order equals chronological order
    - Change details are stored as JSON without the direction vector

Schema:
    edit_history: One row per edit (note id, timestamp, semantic diff,
                  optional serialized change detail)
    drift_annotations: One row per annotated calendar day

Academic Context:
    Input: EditRecords and DriftAnnotations
    Transformation: SQL INSERT/SELECT operations
    Output: The same values, reloaded for insight computation
    Limitation: Single-user; no migrations beyond CREATE IF NOT EXISTS
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

from mindrift.annotation import parse_date
from mindrift.annotation import upsert_annotation as merge_annotation
from mindrift.change.serialization import deserialize_change_detail, serialize_change_detail
from mindrift.models import AnnotationLabel, DriftAnnotation, DriftPhase, EditRecord
from mindrift.timeline.aggregator import ensure_aware

logger = logging.getLogger(__name__)

# Default database location
DEFAULT_DB_PATH = ".mindrift/mindrift.db"


def _to_db_timestamp(value: datetime) -> str:
    return ensure_aware(value).astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


class Database:
    """
    SQLite database manager for Mindrift.

    Handles all persistence operations including:
    - Storing and loading edit-history records
    - Storing, querying and deleting daily annotations

    Usage:
        db = Database("./notes/.mindrift/mindrift.db")
        db.save_edits(records)
        series = aggregate_daily_drift(db.load_edits())
    """

    def __init__(self, db_path: Union[str, Path] = DEFAULT_DB_PATH) -> None:
        """
        Initialize the database connection.

        Args:
            db_path: Path to the SQLite database file.
                     Parent directories will be created if needed.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def path(self) -> Path:
        return self._db_path

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = sqlite3.connect(str(self._db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize the database schema if not exists."""
        with self._connection() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS edit_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    note_id TEXT,
                    created_at TEXT NOT NULL,
                    semantic_diff REAL,
                    change_detail TEXT
                );

                CREATE TABLE IF NOT EXISTS drift_annotations (
                    date TEXT PRIMARY KEY,
                    label TEXT NOT NULL,
                    note TEXT,
                    auto_phase TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_edit_history_created
                    ON edit_history(created_at);
            """)

    # Edit history

    def save_edits(self, records: Iterable[EditRecord]) -> int:
        """
        Append edit records to the history.

        Args:
            records: EditRecords to persist

        Returns:
            Number of rows inserted
        """
        count = 0
        with self._connection() as conn:
            for record in records:
                detail = (
                    serialize_change_detail(record.change_detail)
                    if record.change_detail is not None
                    else None
                )
                conn.execute(
                    """
                    INSERT INTO edit_history
                    (note_id, created_at, semantic_diff, change_detail)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        record.note_id,
                        _to_db_timestamp(record.timestamp),
                        record.semantic_diff,
                        detail,
                    ),
                )
                count += 1

        logger.debug("Saved %d edit record(s) to %s", count, self._db_path)
        return count

    def load_edits(self, since: Optional[datetime] = None) -> list[EditRecord]:
        """
        Load edit records, oldest first.

        Args:
            since: Only records at or after this instant are returned

        Returns:
            List of EditRecords
        """
        query = """
            SELECT note_id, created_at, semantic_diff, change_detail
            FROM edit_history
        """
        params: tuple = ()
        if since is not None:
            query += " WHERE created_at >= ?"
            params = (_to_db_timestamp(since),)
        query += " ORDER BY created_at ASC, id ASC"

        records = []
        with self._connection() as conn:
            for row in conn.execute(query, params):
                detail = row["change_detail"]
                records.append(
                    EditRecord(
                        timestamp=datetime.fromisoformat(row["created_at"]),
                        semantic_diff=row["semantic_diff"],
                        note_id=row["note_id"],
                        change_detail=deserialize_change_detail(detail) if detail else None,
                    )
                )
        return records

    def get_edit_count(self) -> int:
        """Get the total number of stored edit records."""
        with self._connection() as conn:
            cursor = conn.execute("SELECT COUNT(*) FROM edit_history")
            return cursor.fetchone()[0]

    # Annotations

    def save_annotation(self, annotation: DriftAnnotation) -> None:
        """
        Save an annotation, replacing any existing one for the same date.

        Args:
            annotation: A validated DriftAnnotation
        """
        now = datetime.now(timezone.utc)
        with self._connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO drift_annotations
                (date, label, note, auto_phase, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    annotation.date.isoformat(),
                    annotation.label.value,
                    annotation.note,
                    annotation.auto_phase.value if annotation.auto_phase else None,
                    _to_db_timestamp(annotation.created_at or now),
                    _to_db_timestamp(annotation.updated_at or now),
                ),
            )

    @staticmethod
    def _row_to_annotation(row: sqlite3.Row) -> DriftAnnotation:
        return DriftAnnotation(
            date=date.fromisoformat(row["date"]),
            label=AnnotationLabel(row["label"]),
            note=row["note"],
            auto_phase=DriftPhase(row["auto_phase"]) if row["auto_phase"] else None,
            created_at=_from_db_timestamp(row["created_at"]),
            updated_at=_from_db_timestamp(row["updated_at"]),
        )

    def get_annotation(self, day: date) -> Optional[DriftAnnotation]:
        """
        Load the annotation for a single day.

        Returns:
            The DriftAnnotation if found, None otherwise
        """
        with self._connection() as conn:
            cursor = conn.execute(
                """
                SELECT date, label, note, auto_phase, created_at, updated_at
                FROM drift_annotations
                WHERE date = ?
                """,
                (day.isoformat(),),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return self._row_to_annotation(row)

    def get_annotations_in_range(self, start: date, end: date) -> list[DriftAnnotation]:
        """
        Load annotations between two days, inclusive, oldest first.
        """
        with self._connection() as conn:
            cursor = conn.execute(
                """
                SELECT date, label, note, auto_phase, created_at, updated_at
                FROM drift_annotations
                WHERE date >= ? AND date <= ?
                ORDER BY date ASC
                """,
                (start.isoformat(), end.isoformat()),
            )
            return [self._row_to_annotation(row) for row in cursor]

    def get_recent_annotations(
        self,
        days: int = 30,
        today: Optional[date] = None,
    ) -> list[DriftAnnotation]:
        """Load annotations from the last `days` days, today included."""
        today = today or datetime.now(timezone.utc).date()
        return self.get_annotations_in_range(today - timedelta(days=days), today)

    def delete_annotation(self, day: date) -> bool:
        """
        Delete the annotation for a day.

        Returns:
            True if an annotation was deleted
        """
        with self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM drift_annotations WHERE date = ?",
                (day.isoformat(),),
            )
            return cursor.rowcount > 0

    def get_annotation_count(self) -> int:
        """Get the total number of stored annotations."""
        with self._connection() as conn:
            cursor = conn.execute("SELECT COUNT(*) FROM drift_annotations")
            return cursor.fetchone()[0]

    def clear(self) -> None:
        """Delete all data from the database."""
        with self._connection() as conn:
            conn.executescript("""
                DELETE FROM edit_history;
                DELETE FROM drift_annotations;
            """)


# Module-level convenience functions

def init_database(db_path: Union[str, Path] = DEFAULT_DB_PATH) -> Database:
    """
    Initialize and return a database instance.

    Args:
        db_path: Path to the database file

    Returns:
        Configured Database instance
    """
    return Database(db_path)


def upsert_annotation(
    db: Database,
    date: Union[str, date],
    label: Union[str, AnnotationLabel],
    note: Optional[str] = None,
    auto_phase: Union[str, DriftPhase, None] = None,
    now: Optional[datetime] = None,
) -> DriftAnnotation:
    """
    Validate an annotation, merge it with the stored one and save it.

    Validation happens before anything is written, so invalid input leaves
    the database untouched.

    Raises:
        AnnotationValidationError: If the date, label or phase is invalid
    """
    day = parse_date(date)
    annotation = merge_annotation(
        day,
        label,
        note=note,
        auto_phase=auto_phase,
        existing=db.get_annotation(day),
        now=now,
    )
    db.save_annotation(annotation)
    return annotation
