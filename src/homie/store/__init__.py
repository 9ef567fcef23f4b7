"""
Storage module for homie.

This module provides SQLite-based persistence for the clipboard history and
the retention policy that keeps it bounded.

Tables:
    - clipboard_items: One row per distinct payload (text, hash, last seen)

Design principles:
    - Dedup-on-write: repeat captures bump a timestamp instead of adding rows
    - Atomic: each write is a single transaction
    - Self-contained: a single .db file under the user's config directory
"""

from homie.store.db import HistoryDB, compute_hash
from homie.store.retention import CleanupResult, clean_old_history

__all__ = [
    "CleanupResult",
    "HistoryDB",
    "clean_old_history",
    "compute_hash",
]
