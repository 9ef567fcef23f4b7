"""
Retention policy for the clipboard history.

Runs once when the daemon starts, before capture begins. Two strategies:

    - ttl: drop entries not seen for ``ttl`` days. Takes precedence; size
      settings are ignored while ttl is positive.
    - size: once the history holds more than ``max_size`` entries, trim it
      down to the ``limit`` most recent ones.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from homie.schema import Settings

logger = logging.getLogger(__name__)

STRATEGY_DISABLED = "disabled"
STRATEGY_TTL = "ttl"
STRATEGY_SIZE = "size"


class RetentionStore(Protocol):
    """The subset of HistoryDB the retention policy needs."""

    def count(self) -> int: ...

    def delete_oldest(self, ttl_days: int) -> int: ...

    def delete_excess(self, count: int) -> int: ...


@dataclass
class CleanupResult:
    """
    Outcome of a cleanup pass.

    Attributes:
        strategy: Which strategy ran ("disabled", "ttl" or "size")
        deleted: Number of entries removed
    """

    strategy: str
    deleted: int = 0


def clean_old_history(db: RetentionStore, settings: Settings) -> CleanupResult:
    """
    Trim the history according to ``settings``.

    Args:
        db: The history store
        settings: Resolved user settings

    Returns:
        CleanupResult describing what was done

    Raises:
        StorageError: If counting or deleting fails
    """
    if not settings.clean_up:
        return CleanupResult(strategy=STRATEGY_DISABLED)

    if settings.ttl > 0:
        deleted = db.delete_oldest(settings.ttl)
        logger.debug("Removed %d entries older than %d days", deleted, settings.ttl)
        return CleanupResult(strategy=STRATEGY_TTL, deleted=deleted)

    max_size = settings.effective_max_size()
    min_limit = settings.effective_limit()

    total = db.count()
    if total <= max_size or min_limit >= total:
        return CleanupResult(strategy=STRATEGY_SIZE)

    deleted = db.delete_excess(total - min_limit)
    logger.debug("Trimmed history from %d to %d entries", total, total - deleted)
    return CleanupResult(strategy=STRATEGY_SIZE, deleted=deleted)
