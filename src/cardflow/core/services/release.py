"""
Release service: run the staged task scheduler.

Wraps ``release_due_staged_tasks`` with database access from configuration,
and provides a polling worker that repeats runs on a fixed interval. Nothing
is remembered between runs; each run re-reads due tasks from the database.

Usage:
    >>> from cardflow.core.services.release import ReleaseService
    >>> service = ReleaseService.from_config()
    >>> result = service.run()
    >>> print(f"Released {result.released_count} tasks")
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from cardflow.core.config import CardflowConfig, load_config
from cardflow.core.db.connection import get_connection
from cardflow.core.release.models import ReleaseRunResult
from cardflow.core.release.scheduler import release_due_staged_tasks

logger = logging.getLogger(__name__)


class ReleaseService:
    """
    Service for releasing due staged tasks.

    Example:
        >>> service = ReleaseService(Path(".cardflow/cardflow.db"))
        >>> service.run(board_id="board-1").released_count
        2
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    @classmethod
    def from_config(cls, config: CardflowConfig | None = None) -> ReleaseService:
        """Create the service from loaded configuration."""
        if config is None:
            config = load_config()
        return cls(Path(config.database.path))

    def run(self, *, now: datetime | None = None, board_id: str | None = None) -> ReleaseRunResult:
        """
        Run one release pass.

        Args:
            now: Reference time (defaults to the current UTC time)
            board_id: Restrict the pass to one board

        Returns:
            ReleaseRunResult for this pass
        """
        with get_connection(self.db_path) as conn:
            return release_due_staged_tasks(conn, now=now, board_id=board_id)

    def watch(
        self,
        interval_seconds: int,
        *,
        board_id: str | None = None,
        max_runs: int | None = None,
        on_result: Callable[[ReleaseRunResult], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """
        Run release passes forever (or ``max_runs`` times), sleeping between them.

        A pass that raises is logged and the worker carries on with the next one.

        Args:
            interval_seconds: Seconds to sleep between passes
            board_id: Restrict passes to one board
            max_runs: Stop after this many passes
            on_result: Called with each successful pass result
            sleep: Sleep function (injectable for tests)

        Returns:
            Number of passes attempted
        """
        runs = 0
        while max_runs is None or runs < max_runs:
            runs += 1
            try:
                result = self.run(board_id=board_id)
            except Exception:
                logger.exception("Release pass %d failed", runs)
            else:
                if on_result is not None:
                    on_result(result)
            if max_runs is not None and runs >= max_runs:
                break
            sleep(interval_seconds)
        return runs
