"""
Storage module for Mindrift.

This module provides SQLite-based persistence for the edit history and
daily annotations the engine computes on.
"""

from mindrift.storage.database import (
    DEFAULT_DB_PATH,
    Database,
    init_database,
    upsert_annotation,
)

__all__ = [
    "DEFAULT_DB_PATH",
    "Database",
    "init_database",
    "upsert_annotation",
]
