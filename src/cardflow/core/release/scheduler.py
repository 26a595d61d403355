"""
Release of due staged tasks.

One run scans for STAGED tasks whose scheduled release date has arrived and
promotes each into its release target list. The run keeps no state: the
``released_at`` and ``scheduled_release_date`` columns are the whole record,
so runs may overlap or repeat safely. Promotion is an UPDATE guarded by
``released_at IS NULL``; a task another run already released matches zero
rows and is reported as skipped.

Each task is processed in its own short transaction. A task whose target list
has vanished is logged and skipped (it stays unreleased for follow-up); an
unexpected error is logged and counted as failed. Neither stops the batch.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any

from cardflow.core.db.connection import transaction
from cardflow.core.db.queries import find_due_staged_tasks, get_list, release_staged_task
from cardflow.core.release.models import ReleaseOutcome, ReleaseRunResult, ReleaseStatus
from cardflow.core.release.positions import PositionAllocator

logger = logging.getLogger(__name__)


def _utc(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def release_task(conn: sqlite3.Connection, task: dict[str, Any], released_at: str) -> ReleaseOutcome:
    """
    Promote a single due task inside its own transaction.

    Args:
        conn: SQLite connection with no open transaction
        task: Due task row (with ``board_id`` of its current list)
        released_at: ISO timestamp to record

    Returns:
        ReleaseOutcome with status released or skipped
    """
    task_id = task["id"]
    target_list_id = task["release_target_list_id"]

    with transaction(conn):
        target = get_list(conn, target_list_id)
        if target is None or target["board_id"] != task["board_id"]:
            logger.warning(
                "Skipping staged task %s: release target list %s is missing",
                task_id,
                target_list_id,
            )
            return ReleaseOutcome(
                task_id=task_id,
                status=ReleaseStatus.SKIPPED,
                target_list_id=target_list_id,
                reason="release target list missing",
            )

        position = PositionAllocator.from_connection(conn, [target_list_id]).next(target_list_id)
        updated = release_staged_task(conn, task_id, target_list_id, position, released_at)

    if updated == 0:
        logger.info("Staged task %s was already released, skipping", task_id)
        return ReleaseOutcome(
            task_id=task_id,
            status=ReleaseStatus.SKIPPED,
            target_list_id=target_list_id,
            reason="already released",
        )

    logger.info("Released staged task %s into list %s at position %d",
                task_id, target_list_id, position)
    return ReleaseOutcome(
        task_id=task_id,
        status=ReleaseStatus.RELEASED,
        target_list_id=target_list_id,
        position=position,
    )


def release_due_staged_tasks(
    conn: sqlite3.Connection,
    *,
    now: datetime | None = None,
    board_id: str | None = None,
) -> ReleaseRunResult:
    """
    Release every staged task that is due at ``now``.

    Args:
        conn: SQLite connection with no open transaction
        now: Reference time (defaults to the current UTC time)
        board_id: Restrict the run to one board

    Returns:
        ReleaseRunResult with one outcome per due task

    Example:
        >>> result = release_due_staged_tasks(conn)
        >>> result.released_count, result.skipped_count, result.failed_count
        (3, 0, 0)
    """
    now_utc = _utc(now)
    released_at = now_utc.isoformat()

    due = find_due_staged_tasks(conn, now_utc.date().isoformat(), board_id=board_id)
    result = ReleaseRunResult(started_at=now_utc, scanned=len(due))

    for task in due:
        try:
            outcome = release_task(conn, task, released_at)
        except Exception as e:
            logger.exception("Failed to release staged task %s", task["id"])
            outcome = ReleaseOutcome(
                task_id=task["id"],
                status=ReleaseStatus.FAILED,
                target_list_id=task.get("release_target_list_id"),
                reason=str(e),
            )
        result.outcomes.append(outcome)

    logger.info(
        "Release run finished: %d due, %d released, %d skipped, %d failed",
        result.scanned,
        result.released_count,
        result.skipped_count,
        result.failed_count,
    )
    return result
