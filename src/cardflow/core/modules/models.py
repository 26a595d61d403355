"""
Data models for the module catalog and apply requests.

A module is a reusable bundle: an epic name, a user story template and an
ordered list of task templates. Task templates may be linked into dependency
chains through a shared ``chain_group_id``, ordered by ``chain_order``.
"""

from pydantic import Field, field_validator

from cardflow.core.release.models import CamelModel, ReleaseMode

DEFAULT_TASK_COLOR = "#3b82f6"
DEFAULT_TASK_TITLE = "TASK"


class TaskTemplate(CamelModel):
    """One task a module creates when applied."""

    id: str
    title: str = DEFAULT_TASK_TITLE
    description: str | None = None
    story_points: int | None = None
    feature_image: str | None = None
    color: str = DEFAULT_TASK_COLOR
    destination_mode: ReleaseMode = ReleaseMode.IMMEDIATE
    chain_group_id: str | None = None
    chain_order: int | float | None = None


class ModuleDefinition(CamelModel):
    """
    A module as stored in the catalog.

    Example:
        >>> module = ModuleDefinition(
        ...     id="mod-1",
        ...     name="Character",
        ...     symbol="CHR",
        ...     epic_name="Characters",
        ...     task_templates=[TaskTemplate(id="t1", title="CONCEPT")],
        ... )
        >>> module.story_title
        'CHR'
    """

    id: str
    name: str
    symbol: str
    description: str | None = None
    epic_name: str
    user_story_title: str | None = None
    user_story_description: str | None = None
    user_story_feature_image: str | None = None
    task_templates: list[TaskTemplate] = Field(default_factory=list)
    position: int = 0

    @property
    def story_title(self) -> str:
        """Title for the user story when the caller gives none."""
        return self.user_story_title or self.symbol


class TaskOverride(CamelModel):
    """Caller-supplied adjustments for one template of an apply request."""

    task_template_id: str
    destination_mode: ReleaseMode | None = None
    immediate_list_id: str | None = None
    staging_planning_list_id: str | None = None
    release_target_list_id: str | None = None
    title: str | None = None

    @field_validator(
        "immediate_list_id",
        "staging_planning_list_id",
        "release_target_list_id",
        "title",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: object) -> object:
        """Treat empty strings like an absent override."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ApplyModuleRequest(CamelModel):
    """Body of ``POST /api/boards/{board_id}/modules/apply``."""

    module_id: str = ""
    planning_list_id: str = ""
    epic_name: str | None = None
    user_story_title: str | None = None
    tasks: list[TaskOverride] = Field(default_factory=list)

    @field_validator("module_id", "planning_list_id", mode="before")
    @classmethod
    def strip_required_id(cls, v: object) -> object:
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    @field_validator("epic_name", "user_story_title", mode="before")
    @classmethod
    def strip_optional(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("tasks", mode="before")
    @classmethod
    def tasks_list_or_empty(cls, v: object) -> object:
        """Anything other than a list means no overrides."""
        return v if isinstance(v, list) else []
