"""
Pydantic models for task release state and apply/release results.

The task release descriptor is a tagged union keyed on ``release_mode``:

- ImmediateTaskData: live from creation. Never carries staging fields and
  always has ``released_at``.
- StagedTaskData: parked in a planning list until ``scheduled_release_date``.
  Always carries the staging list, the release date and the target list;
  ``released_at`` stays None until the scheduler promotes it.

Serialized field names are camelCase to match the HTTP payloads.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ReleaseMode(str, Enum):
    """How a task goes live."""

    IMMEDIATE = "IMMEDIATE"
    STAGED = "STAGED"


class CardType(str, Enum):
    """Card types created by module instantiation."""

    EPIC = "EPIC"
    USER_STORY = "USER_STORY"
    TASK = "TASK"


class CamelModel(BaseModel):
    """Base model that serializes with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class _TaskDataBase(CamelModel):
    linked_user_story_id: str | None = None
    linked_epic_id: str | None = None
    story_points: int | None = None
    depends_on_task_id: str | None = None
    release_target_list_id: str


class ImmediateTaskData(_TaskDataBase):
    """Release descriptor of a task that was live from creation."""

    release_mode: Literal[ReleaseMode.IMMEDIATE] = ReleaseMode.IMMEDIATE
    staged_from_planning_list_id: None = None
    scheduled_release_date: None = None
    released_at: datetime


class StagedTaskData(_TaskDataBase):
    """Release descriptor of a task staged behind a planning list start date."""

    release_mode: Literal[ReleaseMode.STAGED] = ReleaseMode.STAGED
    staged_from_planning_list_id: str
    scheduled_release_date: date
    released_at: datetime | None = None

    @property
    def is_released(self) -> bool:
        return self.released_at is not None


TaskData = ImmediateTaskData | StagedTaskData


def task_data_from_row(row: dict[str, Any]) -> TaskData:
    """
    Build the release descriptor variant for a task row.

    Raises:
        ValueError: If the row is not a task or holds an unknown release mode
    """
    fields = {
        "linked_user_story_id": row.get("linked_user_story_id"),
        "linked_epic_id": row.get("linked_epic_id"),
        "story_points": row.get("story_points"),
        "depends_on_task_id": row.get("depends_on_task_id"),
        "release_target_list_id": row.get("release_target_list_id"),
        "released_at": row.get("released_at"),
    }
    mode = row.get("release_mode")
    if mode == ReleaseMode.IMMEDIATE.value:
        return ImmediateTaskData(**fields)
    if mode == ReleaseMode.STAGED.value:
        return StagedTaskData(
            **fields,
            staged_from_planning_list_id=row.get("staged_from_planning_list_id"),
            scheduled_release_date=row.get("scheduled_release_date"),
        )
    raise ValueError(f"Row {row.get('id')} has no task release mode: {mode!r}")


class UserStoryData(CamelModel):
    """Linkage carried by a user story card."""

    linked_epic_id: str


class ListSummary(CamelModel):
    """The list a card currently sits in."""

    id: str
    name: str
    phase: str | None = None


class CardView(CamelModel):
    """
    A created card as returned to the caller for display.

    Assignees and checklists belong to the card CRUD layer; freshly created
    cards have none, so both lists are empty here.
    """

    id: str
    type: CardType
    title: str
    description: str | None = None
    color: str | None = None
    feature_image: str | None = None
    list_id: str
    position: int
    list_info: ListSummary = Field(alias="list")
    assignees: list[dict[str, Any]] = Field(default_factory=list)
    checklists: list[dict[str, Any]] = Field(default_factory=list)
    user_story_data: UserStoryData | None = None
    task_data: ImmediateTaskData | StagedTaskData | None = None


class ApplyResult(CamelModel):
    """Outcome of applying a module to a board."""

    created: list[CardView] = Field(default_factory=list)
    epic_reused: bool = Field(default=False, exclude=True)

    @property
    def epic(self) -> CardView | None:
        return next((c for c in self.created if c.type == CardType.EPIC), None)

    @property
    def user_story(self) -> CardView | None:
        return next((c for c in self.created if c.type == CardType.USER_STORY), None)

    @property
    def tasks(self) -> list[CardView]:
        return [c for c in self.created if c.type == CardType.TASK]


class ReleaseStatus(str, Enum):
    """Per-task outcome of one scheduler run."""

    RELEASED = "released"
    SKIPPED = "skipped"
    FAILED = "failed"


class ReleaseOutcome(BaseModel):
    """What happened to one due task during a scheduler run."""

    task_id: str
    status: ReleaseStatus
    target_list_id: str | None = None
    position: int | None = None
    reason: str | None = None


class ReleaseRunResult(BaseModel):
    """Aggregate result of one scheduler run."""

    started_at: datetime
    scanned: int = 0
    outcomes: list[ReleaseOutcome] = Field(default_factory=list)

    def _count(self, status: ReleaseStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def released_count(self) -> int:
        return self._count(ReleaseStatus.RELEASED)

    @property
    def skipped_count(self) -> int:
        return self._count(ReleaseStatus.SKIPPED)

    @property
    def failed_count(self) -> int:
        return self._count(ReleaseStatus.FAILED)


class ReleaseSummary(CamelModel):
    """Counts returned by the cron endpoint."""

    released_count: int
    skipped_count: int
    failed_count: int

    @classmethod
    def from_result(cls, result: ReleaseRunResult) -> "ReleaseSummary":
        return cls(
            released_count=result.released_count,
            skipped_count=result.skipped_count,
            failed_count=result.failed_count,
        )
