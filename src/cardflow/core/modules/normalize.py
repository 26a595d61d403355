"""
Normalization of loosely-typed task template JSON.

Module definitions arrive from settings forms and older exports with missing
ids, blank titles, unknown destination modes or the legacy fixed-key layout
(``{"key": "concept"}``). ``normalize_task_templates`` turns any of these into
a clean list of ``TaskTemplate`` models.
"""

import math
import uuid
from typing import Any

from cardflow.core.modules.models import DEFAULT_TASK_COLOR, DEFAULT_TASK_TITLE, TaskTemplate
from cardflow.core.release.models import ReleaseMode

LEGACY_CHAIN_GROUP_ID = "legacy-default-chain"

# Old fixed-key templates, all linked in one chain in this order
LEGACY_TEMPLATES: dict[str, tuple[str, str, int]] = {
    "concept": ("CONCEPT", "#8b5cf6", 0),
    "static_assets": ("STATIC ART", "#22c55e", 1),
    "static_art": ("STATIC ART", "#22c55e", 1),
    "fx_animation": ("FX/ANIMATION", "#ec4899", 2),
}


def _generate_template_id(index: int) -> str:
    return f"task-{index}-{uuid.uuid4().hex[:8]}"


def _clean_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _number_or_none(value: Any) -> int | float | None:
    # bool is an int subclass; never treat it as a number here
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return value
    return None


def _int_or_none(value: Any) -> int | None:
    number = _number_or_none(value)
    if isinstance(number, float):
        return int(number) if number.is_integer() else None
    return number


def normalize_destination_mode(value: Any) -> ReleaseMode:
    """Anything other than STAGED means IMMEDIATE."""
    return ReleaseMode.STAGED if value == ReleaseMode.STAGED.value else ReleaseMode.IMMEDIATE


def normalize_task_templates(value: Any) -> list[TaskTemplate]:
    """
    Normalize raw task template JSON into TaskTemplate models.

    Non-dict entries are dropped. Accepts both snake_case and camelCase keys.

    Args:
        value: Raw JSON value (normally a list of dicts)

    Returns:
        Normalized templates, in input order

    Example:
        >>> templates = normalize_task_templates([{"key": "concept"}, {"title": " Rig "}])
        >>> [t.title for t in templates]
        ['CONCEPT', 'Rig']
        >>> templates[0].chain_group_id
        'legacy-default-chain'
    """
    source = value if isinstance(value, list) else []
    normalized: list[TaskTemplate] = []

    for index, item in enumerate(source):
        if not isinstance(item, dict):
            continue

        def pick(snake: str, camel: str) -> Any:
            return item.get(snake, item.get(camel))

        legacy_key = item.get("key") if isinstance(item.get("key"), str) else ""
        legacy = LEGACY_TEMPLATES.get(legacy_key)

        chain_group_id = _clean_str(pick("chain_group_id", "chainGroupId"))
        chain_order = _number_or_none(pick("chain_order", "chainOrder"))
        if legacy:
            chain_group_id = chain_group_id or LEGACY_CHAIN_GROUP_ID
            chain_order = chain_order if chain_order is not None else legacy[2]

        normalized.append(
            TaskTemplate(
                id=_clean_str(item.get("id")) or _generate_template_id(index),
                title=_clean_str(item.get("title")) or (legacy[0] if legacy else DEFAULT_TASK_TITLE),
                color=_clean_str(item.get("color")) or (legacy[1] if legacy else DEFAULT_TASK_COLOR),
                description=_clean_str(item.get("description")),
                story_points=_int_or_none(pick("story_points", "storyPoints")),
                feature_image=_clean_str(pick("feature_image", "featureImage")),
                destination_mode=normalize_destination_mode(
                    pick("destination_mode", "destinationMode")
                ),
                chain_group_id=chain_group_id,
                chain_order=chain_order,
            )
        )

    return normalized
