"""
Chain resolution for module task templates.

Templates that share a ``chain_group_id`` form a dependency chain ordered by
``chain_order``. Members of a chain need not be contiguous in the module's
template list, so resolution runs in two passes:

1. Group chained templates and sort each group by chain order (missing
   orders last, ties by catalog index).
2. Walk the catalog list; the first member seen of a group emits the whole
   sorted group, later members are skipped, unchained templates stay in place.

The result keeps the caller-visible order of standalone templates and
first-seen chains while every chain is internally dependency-ordered.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from cardflow.core.modules.models import TaskOverride, TaskTemplate
from cardflow.core.release.models import ReleaseMode


@dataclass(frozen=True)
class ResolvedTemplate:
    """A task template merged with its caller override."""

    template: TaskTemplate
    override: TaskOverride | None
    index: int

    @property
    def destination_mode(self) -> ReleaseMode:
        """Effective destination: the override's if given, else the template's."""
        if self.override is not None and self.override.destination_mode is not None:
            return self.override.destination_mode
        return self.template.destination_mode

    @property
    def chain_key(self) -> str:
        """Key under which dependency links are tracked."""
        if self.template.chain_group_id:
            return f"chain:{self.template.chain_group_id}"
        return f"single:{self.template.id}"

    def _sort_key(self) -> tuple[int, float, int]:
        order = self.template.chain_order
        # Missing chain order sorts after every explicit order
        return (1, 0, self.index) if order is None else (0, order, self.index)


def merge_overrides(
    templates: Sequence[TaskTemplate], overrides: Sequence[TaskOverride] | None = None
) -> list[ResolvedTemplate]:
    """
    Pair each template with the first override naming it, keeping input order.
    """
    by_template_id: dict[str, TaskOverride] = {}
    for override in overrides or ():
        by_template_id.setdefault(override.task_template_id, override)

    return [
        ResolvedTemplate(template=template, override=by_template_id.get(template.id), index=index)
        for index, template in enumerate(templates)
    ]


def resolve_chain_order(
    templates: Sequence[TaskTemplate], overrides: Sequence[TaskOverride] | None = None
) -> list[ResolvedTemplate]:
    """
    Order templates so every dependency chain is created in chain order.

    Args:
        templates: Module task templates in catalog order
        overrides: Optional per-template overrides from the caller

    Returns:
        Merged templates in creation order

    Example:
        >>> a = TaskTemplate(id="a", chain_group_id="g", chain_order=2)
        >>> b = TaskTemplate(id="b")
        >>> c = TaskTemplate(id="c", chain_group_id="g", chain_order=0)
        >>> [r.template.id for r in resolve_chain_order([a, b, c])]
        ['c', 'a', 'b']
    """
    merged = merge_overrides(templates, overrides)

    groups: dict[str, list[ResolvedTemplate]] = {}
    for item in merged:
        group_id = item.template.chain_group_id
        if group_id:
            groups.setdefault(group_id, []).append(item)

    sorted_groups = {
        group_id: sorted(items, key=ResolvedTemplate._sort_key)
        for group_id, items in groups.items()
    }

    ordered: list[ResolvedTemplate] = []
    emitted: set[str] = set()
    for item in merged:
        group_id = item.template.chain_group_id
        if not group_id:
            ordered.append(item)
            continue
        if group_id in emitted:
            continue
        emitted.add(group_id)
        ordered.extend(sorted_groups[group_id])

    return ordered
