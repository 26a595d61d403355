"""
Module apply service: instantiate a module onto a board.

Applying a module creates (or reuses) an Epic, creates a UserStory in the
chosen planning list, and creates one Task per template. Each task either goes
live immediately in a TASKS list, or is staged in a planning list with a
scheduled release date and a release target list for the scheduler to move
it into later.

All lookups and validation run before the write transaction opens. The
writes (epic, story, tasks) happen in a single transaction: any failure
leaves no partial hierarchy behind.

Usage:
    >>> from cardflow.core.services.module_apply import ModuleApplyService
    >>> service = ModuleApplyService.from_config()
    >>> result = service.apply(board_id, ApplyModuleRequest(
    ...     module_id="mod-1", planning_list_id="sprint-4"))
    >>> [card.title for card in result.tasks]
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from cardflow.core.config import CardflowConfig, load_config
from cardflow.core.db.connection import get_connection, insert_card, transaction
from cardflow.core.db.queries import (
    find_epic_by_title,
    find_epic_placement_list,
    find_fallback_task_list,
    get_board_list,
    get_board_lists,
    get_card_views,
)
from cardflow.core.errors import NotFoundError, TemplateValidationError, ValidationError
from cardflow.core.modules.catalog import get_module
from cardflow.core.modules.models import ApplyModuleRequest, ModuleDefinition
from cardflow.core.release.chain import ResolvedTemplate, resolve_chain_order
from cardflow.core.release.dates import scheduled_release_date
from cardflow.core.release.models import ApplyResult, CardType, ReleaseMode
from cardflow.core.release.positions import PositionAllocator

logger = logging.getLogger(__name__)


@dataclass
class PlannedTask:
    """Where and how one template's task will be created."""

    resolved: ResolvedTemplate
    title: str
    list_id: str
    release_mode: ReleaseMode
    release_target_list_id: str
    staged_from_planning_list_id: str | None = None
    scheduled_release_date: date | None = None


@dataclass
class ApplyPlan:
    """Everything resolved from the request before any write happens."""

    board_id: str
    module: ModuleDefinition
    planning_list_id: str
    epic_name: str
    epic_placement_list_id: str
    story_title: str
    tasks: list[PlannedTask] = field(default_factory=list)

    @property
    def list_ids_needing_position(self) -> set[str]:
        ids = {self.planning_list_id, self.epic_placement_list_id}
        ids.update(task.list_id for task in self.tasks)
        return ids

    @property
    def staged_count(self) -> int:
        return sum(1 for t in self.tasks if t.release_mode == ReleaseMode.STAGED)


class ModuleApplyService:
    """
    Service that turns a module definition into cards on a board.

    Example:
        >>> service = ModuleApplyService(Path(".cardflow/cardflow.db"))
        >>> result = service.apply("board-1", request)
        >>> result.epic.title
        'Characters'
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    @classmethod
    def from_config(cls, config: CardflowConfig | None = None) -> ModuleApplyService:
        """Create the service from loaded configuration."""
        if config is None:
            config = load_config()
        return cls(Path(config.database.path))

    def apply(
        self,
        board_id: str,
        request: ApplyModuleRequest,
        *,
        now: datetime | None = None,
    ) -> ApplyResult:
        """
        Apply a module to a board.

        Args:
            board_id: Board receiving the cards
            request: Module, planning list and optional overrides
            now: Timestamp recorded as released_at on immediate tasks

        Returns:
            ApplyResult with the epic, the user story and every created task

        Raises:
            ValidationError: Missing ids, empty module, or a list that cannot
                be used for a template
            NotFoundError: The module does not exist
        """
        released_at = (now or datetime.now(timezone.utc)).isoformat()

        with get_connection(self.db_path) as conn:
            plan = self.plan(conn, board_id, request)
            with transaction(conn):
                result = self._create(conn, plan, released_at)

        logger.info(
            "Applied module %s to board %s: %d tasks (%d staged), epic %s",
            plan.module.symbol,
            board_id,
            len(plan.tasks),
            plan.staged_count,
            "reused" if result.epic_reused else "created",
        )
        return result

    # ============================================================================
    # Resolution (read-only)
    # ============================================================================

    def plan(
        self, conn: sqlite3.Connection, board_id: str, request: ApplyModuleRequest
    ) -> ApplyPlan:
        """
        Resolve and validate an apply request without writing anything.

        Raises:
            ValidationError: On any request or list problem
            NotFoundError: If the module does not exist
        """
        if not request.module_id:
            raise ValidationError("moduleId is required")
        if not request.planning_list_id:
            raise ValidationError("planningListId is required")

        module = get_module(conn, request.module_id)
        if module is None:
            raise NotFoundError("Module", request.module_id)

        planning_list = get_board_list(conn, board_id, request.planning_list_id, "PLANNING")
        if planning_list is None:
            raise ValidationError("Planning list not found in this board")

        if not module.task_templates:
            raise ValidationError("Selected module has no task templates")

        ordered = resolve_chain_order(module.task_templates, request.tasks)

        task_list_ids: set[str] = set()
        staging_list_ids: set[str] = set()
        for item in ordered:
            override = item.override
            if override is None:
                continue
            if item.destination_mode == ReleaseMode.IMMEDIATE:
                if override.immediate_list_id:
                    task_list_ids.add(override.immediate_list_id)
            else:
                if override.release_target_list_id:
                    task_list_ids.add(override.release_target_list_id)
                if override.staging_planning_list_id:
                    staging_list_ids.add(override.staging_planning_list_id)

        task_lists = get_board_lists(conn, board_id, task_list_ids, "TASKS")
        planning_lists = get_board_lists(conn, board_id, staging_list_ids, "PLANNING")
        planning_lists[planning_list["id"]] = planning_list

        fallback_list = find_fallback_task_list(conn, board_id)
        if fallback_list is None:
            raise ValidationError("Board has no Tasks-view list to place module tasks")
        task_lists.setdefault(fallback_list["id"], fallback_list)

        epic_name = request.epic_name or module.epic_name
        if not epic_name:
            raise ValidationError("Epic name is required")

        placement_list = find_epic_placement_list(conn, board_id)
        if placement_list is None:
            raise ValidationError("Board has no list available for Epic placement")

        story_title = request.user_story_title or module.story_title

        plan = ApplyPlan(
            board_id=board_id,
            module=module,
            planning_list_id=planning_list["id"],
            epic_name=epic_name,
            epic_placement_list_id=placement_list["id"],
            story_title=story_title,
        )
        for item in ordered:
            plan.tasks.append(
                self._plan_task(item, story_title, planning_list, fallback_list,
                                task_lists, planning_lists)
            )
        return plan

    @staticmethod
    def _plan_task(
        item: ResolvedTemplate,
        story_title: str,
        planning_list: dict[str, Any],
        fallback_list: dict[str, Any],
        task_lists: dict[str, dict[str, Any]],
        planning_lists: dict[str, dict[str, Any]],
    ) -> PlannedTask:
        template = item.template
        override = item.override
        override_title = override.title.strip() if override and override.title else ""
        title = override_title or f"{story_title} - {template.title}"

        if item.destination_mode == ReleaseMode.IMMEDIATE:
            list_id = (override.immediate_list_id if override else None) or fallback_list["id"]
            if list_id not in task_lists:
                raise TemplateValidationError(template.title, "Invalid immediate list")
            return PlannedTask(
                resolved=item,
                title=title,
                list_id=list_id,
                release_mode=ReleaseMode.IMMEDIATE,
                release_target_list_id=list_id,
            )

        staging_list_id = (
            (override.staging_planning_list_id if override else None) or planning_list["id"]
        )
        target_list_id = (
            (override.release_target_list_id if override else None) or fallback_list["id"]
        )

        staging_list = planning_lists.get(staging_list_id)
        if staging_list is None:
            raise TemplateValidationError(template.title, "Invalid staging planning list")
        release_date = scheduled_release_date(staging_list, template.title)
        if target_list_id not in task_lists:
            raise TemplateValidationError(template.title, "Invalid release target list")

        return PlannedTask(
            resolved=item,
            title=title,
            list_id=staging_list_id,
            release_mode=ReleaseMode.STAGED,
            release_target_list_id=target_list_id,
            staged_from_planning_list_id=staging_list_id,
            scheduled_release_date=release_date,
        )

    # ============================================================================
    # Creation (inside the write transaction)
    # ============================================================================

    def _create(self, conn: sqlite3.Connection, plan: ApplyPlan, released_at: str) -> ApplyResult:
        positions = PositionAllocator.from_connection(conn, plan.list_ids_needing_position)

        # Looked up under the write lock so concurrent applies share one epic
        existing_epic = find_epic_by_title(conn, plan.board_id, plan.epic_name)
        if existing_epic is not None:
            epic_id = existing_epic["id"]
        else:
            epic_id = insert_card(
                conn,
                CardType.EPIC.value,
                plan.epic_placement_list_id,
                plan.epic_name,
                positions.next(plan.epic_placement_list_id),
            )

        story_id = insert_card(
            conn,
            CardType.USER_STORY.value,
            plan.planning_list_id,
            plan.story_title,
            positions.next(plan.planning_list_id),
            description=plan.module.user_story_description,
            feature_image=plan.module.user_story_feature_image,
            linked_epic_id=epic_id,
        )

        task_ids: list[str] = []
        previous_by_chain: dict[str, str] = {}
        for task in plan.tasks:
            template = task.resolved.template
            chain_key = task.resolved.chain_key
            staged = task.release_mode == ReleaseMode.STAGED

            task_id = insert_card(
                conn,
                CardType.TASK.value,
                task.list_id,
                task.title,
                positions.next(task.list_id),
                description=template.description,
                color=template.color,
                feature_image=template.feature_image,
                linked_epic_id=epic_id,
                linked_user_story_id=story_id,
                story_points=template.story_points,
                depends_on_task_id=previous_by_chain.get(chain_key),
                release_mode=task.release_mode.value,
                staged_from_planning_list_id=task.staged_from_planning_list_id,
                scheduled_release_date=(
                    task.scheduled_release_date.isoformat() if task.scheduled_release_date else None
                ),
                release_target_list_id=task.release_target_list_id,
                released_at=None if staged else released_at,
            )
            previous_by_chain[chain_key] = task_id
            task_ids.append(task_id)

        return ApplyResult(
            created=get_card_views(conn, [epic_id, story_id, *task_ids]),
            epic_reused=existing_epic is not None,
        )
