"""
Card position allocation.

Positions are seeded once per operation from a single aggregate query and
then handed out from in-memory counters, so a batch of inserts into the same
list gets contiguous, gap-free positions without re-querying per card.
"""

import sqlite3
from collections.abc import Iterable

from cardflow.core.db.queries import get_max_positions


class PositionAllocator:
    """
    Hands out the next free position per list.

    Construct a fresh allocator per operation; it holds no state beyond the
    counters it was seeded with.

    Example:
        >>> allocator = PositionAllocator({"backlog": 4})
        >>> allocator.next("backlog"), allocator.next("backlog"), allocator.next("sprint")
        (5, 6, 0)
    """

    def __init__(self, max_positions: dict[str, int] | None = None) -> None:
        self._next: dict[str, int] = {
            list_id: max_position + 1 for list_id, max_position in (max_positions or {}).items()
        }

    @classmethod
    def from_connection(
        cls, conn: sqlite3.Connection, list_ids: Iterable[str]
    ) -> "PositionAllocator":
        """Seed counters for ``list_ids`` from the current non-archived cards."""
        return cls(get_max_positions(conn, list_ids))

    def next(self, list_id: str) -> int:
        """Consume and return the next position in ``list_id``."""
        position = self._next.get(list_id, 0)
        self._next[list_id] = position + 1
        return position
