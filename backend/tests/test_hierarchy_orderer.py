"""Tests for hierarchy render order."""

from ticket_forms.domain.enums import FieldType
from ticket_forms.engine import FieldGraph, HierarchyOrderer, ordered_view

from tests.factories import make_field, category_catalog, options


def _ids(view):
    return [entry.field.id for entry in view]


def test_parent_precedes_children_and_siblings_keep_catalog_order() -> None:
    view = ordered_view(category_catalog())

    assert _ids(view) == ["title", "category", "device", "damaged", "app", "notes"]
    assert [entry.nesting_level for entry in view] == [0, 0, 1, 2, 1, 0]
    assert [entry.has_children for entry in view] == [False, True, True, False, False, False]


def test_children_declared_anywhere_in_catalog_are_grouped_under_parent() -> None:
    catalog = [
        make_field("late", FieldType.TEXT, parent="kind", condition=options("B")),
        make_field("title"),
        make_field("kind", FieldType.DROPDOWN, options=["A", "B"]),
        make_field("notes"),
        make_field("early", FieldType.TEXT, parent="kind", condition=options("A")),
    ]

    assert _ids(ordered_view(catalog)) == ["title", "kind", "late", "early", "notes"]


def test_orphans_left_out_unless_requested() -> None:
    catalog = [
        make_field("title"),
        make_field("lost", FieldType.CHECKBOX, parent="gone", level=1),
        make_field("lost-child", FieldType.TEXT, parent="lost", level=2),
    ]
    orderer = HierarchyOrderer(FieldGraph(catalog))

    assert _ids(orderer.ordered_view()) == ["title"]

    canvas = orderer.ordered_view(include_orphans=True)
    assert _ids(canvas) == ["title", "lost", "lost-child"]
    assert [entry.orphaned for entry in canvas] == [False, True, True]
    assert [entry.nesting_level for entry in canvas] == [0, 1, 2]


def test_filter_visible_preserves_order() -> None:
    orderer = HierarchyOrderer(FieldGraph(category_catalog()))

    visible = orderer.filter_visible({"notes", "device", "title", "category"})

    assert _ids(visible) == ["title", "category", "device", "notes"]
