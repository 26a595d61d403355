"""
Tests for chain resolution of module task templates.

Tests validate:
- Unchained templates keep their catalog order
- Chain members are emitted together, sorted by chain order
- Missing chain orders sort last, ties keep catalog order
- Overrides are paired with their template and change the destination
"""

from cardflow.core.modules.models import TaskOverride, TaskTemplate
from cardflow.core.release.chain import merge_overrides, resolve_chain_order
from cardflow.core.release.models import ReleaseMode


def _ids(resolved):
    return [item.template.id for item in resolved]


class TestResolveChainOrder:
    """Test ordering of templates into creation order."""

    def test_unchained_templates_keep_order(self):
        """Templates without a chain group stay where they are."""
        templates = [TaskTemplate(id=t) for t in ("a", "b", "c")]
        assert _ids(resolve_chain_order(templates)) == ["a", "b", "c"]

    def test_chain_sorted_by_chain_order(self):
        """Chain orders [2, 0, 1] resolve to 0, 1, 2."""
        templates = [
            TaskTemplate(id="fx", chain_group_id="g", chain_order=2),
            TaskTemplate(id="concept", chain_group_id="g", chain_order=0),
            TaskTemplate(id="art", chain_group_id="g", chain_order=1),
        ]
        assert _ids(resolve_chain_order(templates)) == ["concept", "art", "fx"]

    def test_chain_emitted_at_first_member_position(self):
        """A non-contiguous chain is emitted where its first member appears."""
        templates = [
            TaskTemplate(id="a", chain_group_id="g", chain_order=2),
            TaskTemplate(id="solo"),
            TaskTemplate(id="c", chain_group_id="g", chain_order=0),
        ]
        assert _ids(resolve_chain_order(templates)) == ["c", "a", "solo"]

    def test_every_template_emitted_once(self):
        """Each template appears exactly once, across several chains."""
        templates = [
            TaskTemplate(id="x1", chain_group_id="x", chain_order=1),
            TaskTemplate(id="y0", chain_group_id="y", chain_order=0),
            TaskTemplate(id="solo"),
            TaskTemplate(id="x0", chain_group_id="x", chain_order=0),
            TaskTemplate(id="y1", chain_group_id="y", chain_order=1),
        ]
        resolved = _ids(resolve_chain_order(templates))
        assert resolved == ["x0", "x1", "y0", "y1", "solo"]
        assert sorted(resolved) == sorted(t.id for t in templates)

    def test_missing_chain_order_sorts_last(self):
        """Members without a chain order come after ordered members."""
        templates = [
            TaskTemplate(id="none", chain_group_id="g"),
            TaskTemplate(id="five", chain_group_id="g", chain_order=5),
            TaskTemplate(id="one", chain_group_id="g", chain_order=1),
        ]
        assert _ids(resolve_chain_order(templates)) == ["one", "five", "none"]

    def test_fractional_chain_order_sorts_between(self):
        """A step inserted at 1.5 lands between orders 1 and 2."""
        templates = [
            TaskTemplate(id="fx", chain_group_id="g", chain_order=2),
            TaskTemplate(id="paintover", chain_group_id="g", chain_order=1.5),
            TaskTemplate(id="art", chain_group_id="g", chain_order=1),
        ]
        assert _ids(resolve_chain_order(templates)) == ["art", "paintover", "fx"]

    def test_ties_keep_catalog_order(self):
        """Equal chain orders fall back to the catalog index."""
        templates = [
            TaskTemplate(id="first", chain_group_id="g", chain_order=1),
            TaskTemplate(id="zero", chain_group_id="g", chain_order=0),
            TaskTemplate(id="second", chain_group_id="g", chain_order=1),
        ]
        assert _ids(resolve_chain_order(templates)) == ["zero", "first", "second"]

    def test_empty_input(self):
        """No templates resolve to nothing."""
        assert resolve_chain_order([]) == []


class TestChainKey:
    """Test keys used to track dependency links."""

    def test_chained_template_key(self):
        resolved = resolve_chain_order([TaskTemplate(id="a", chain_group_id="g", chain_order=0)])
        assert resolved[0].chain_key == "chain:g"

    def test_single_template_key(self):
        resolved = resolve_chain_order([TaskTemplate(id="a")])
        assert resolved[0].chain_key == "single:a"


class TestOverrides:
    """Test pairing templates with caller overrides."""

    def test_override_changes_destination(self):
        """An override's destination mode wins over the template's."""
        templates = [TaskTemplate(id="a"), TaskTemplate(id="b")]
        overrides = [TaskOverride(task_template_id="b", destination_mode=ReleaseMode.STAGED)]
        resolved = resolve_chain_order(templates, overrides)

        assert resolved[0].override is None
        assert resolved[0].destination_mode == ReleaseMode.IMMEDIATE
        assert resolved[1].destination_mode == ReleaseMode.STAGED

    def test_override_without_mode_keeps_template_mode(self):
        """An override that only renames keeps the template's destination."""
        templates = [TaskTemplate(id="a", destination_mode=ReleaseMode.STAGED)]
        overrides = [TaskOverride(task_template_id="a", title="Renamed")]
        resolved = resolve_chain_order(templates, overrides)
        assert resolved[0].destination_mode == ReleaseMode.STAGED

    def test_first_override_wins(self):
        """Duplicate overrides for one template keep the first."""
        overrides = [
            TaskOverride(task_template_id="a", title="First"),
            TaskOverride(task_template_id="a", title="Second"),
        ]
        merged = merge_overrides([TaskTemplate(id="a")], overrides)
        assert merged[0].override.title == "First"

    def test_unknown_override_ignored(self):
        """Overrides naming no template are dropped."""
        overrides = [TaskOverride(task_template_id="ghost", title="Boo")]
        merged = merge_overrides([TaskTemplate(id="a")], overrides)
        assert merged[0].override is None

    def test_blank_override_strings_are_none(self):
        """Empty-string list ids count as not given."""
        override = TaskOverride(task_template_id="a", immediate_list_id="  ", title="")
        assert override.immediate_list_id is None
        assert override.title is None
