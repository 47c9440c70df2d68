"""Tests for form builder (authoring) operations."""

import pytest

from ticket_forms.domain.enums import FieldType
from ticket_forms.domain.models import FormConfiguration, OptionCondition, NumericCondition
from ticket_forms.domain.errors import (
    ValidationError, InvalidConditionError, ConditionalLogicNotSupportedError,
    NestingDepthExceededError, FieldNotDeletableError, CyclicDependencyError,
    ConcurrencyError, FieldNotFoundError
)
from ticket_forms.services.form_defaults import SYSTEM_TITLE_ID, SYSTEM_DESCRIPTION_ID

from tests.factories import make_field, options, between


def _field(form, field_id):
    return next(field for field in form.fields if field.id == field_id)


def _ids(form):
    return [field.id for field in form.fields]


@pytest.fixture
def issue_form(builder):
    """Dropdown parent with a checkbox child and a text grandchild"""
    _, kind = builder.add_field("default", FieldType.DROPDOWN, "Issue type", options=["Hardware", "Software"])
    _, damaged = builder.create_child_field("default", kind.id, FieldType.CHECKBOX, "Damaged?")
    form, serial = builder.create_child_field("default", damaged.id, FieldType.TEXT, "Serial number")
    return form, kind.id, damaged.id, serial.id


# ============================================================================
# Form configuration
# ============================================================================

def test_first_access_creates_form_with_system_fields(builder) -> None:
    form = builder.get_form("default")

    assert _ids(form) == [SYSTEM_TITLE_ID, SYSTEM_DESCRIPTION_ID]
    assert form.version == 1
    assert not _field(form, SYSTEM_TITLE_ID).deletable
    assert builder.get_form("default").version == 1


def test_missing_system_fields_are_merged(builder, repo) -> None:
    repo.create_config(FormConfiguration(id="legacy", fields=[make_field("custom")]))

    form = builder.get_form("legacy")

    assert _ids(form) == [SYSTEM_TITLE_ID, SYSTEM_DESCRIPTION_ID, "custom"]
    assert [field.order for field in form.fields] == [0, 1, 2]
    assert form.version == 2


def test_save_form_rejects_too_deep_catalog(builder) -> None:
    base = builder.get_form("default").fields
    fields = list(base) + [
        make_field("a", FieldType.DROPDOWN, options=["x"]),
        make_field("b", FieldType.DROPDOWN, parent="a", options=["x"]),
        make_field("c", FieldType.DROPDOWN, parent="b", options=["x"], level=2),
        make_field("d", FieldType.TEXT, parent="c", level=3),
    ]

    with pytest.raises(NestingDepthExceededError):
        builder.save_form("default", fields)


def test_save_form_rebuilds_child_lists(builder) -> None:
    base = builder.get_form("default").fields
    fields = list(base) + [
        make_field("a", FieldType.DROPDOWN, options=["x"]),
        make_field("b", FieldType.TEXT, parent="a", condition=options("x"), level=5),
    ]

    form = builder.save_form("default", fields, name="Renamed")

    assert form.name == "Renamed"
    assert _field(form, "a").conditional_logic.child_fields == ["b"]
    assert _field(form, "b").nesting_level == 1


def test_stale_expected_version_conflicts(builder) -> None:
    builder.get_form("default")
    builder.add_field("default", FieldType.TEXT, "Location")

    with pytest.raises(ConcurrencyError):
        builder.add_field("default", FieldType.TEXT, "Room", expected_version=1)


# ============================================================================
# Fields
# ============================================================================

def test_add_option_field_gets_placeholder_options(builder) -> None:
    form, field = builder.add_field("default", FieldType.MULTISELECT, "  Systems  ")

    assert field.label == "Systems"
    assert field.options == ["Option 1", "Option 2", "Option 3"]
    assert field.id.startswith("field-")
    assert _ids(form)[-1] == field.id


def test_add_field_requires_label(builder) -> None:
    with pytest.raises(ValidationError):
        builder.add_field("default", FieldType.TEXT, "   ")


def test_create_child_field(issue_form) -> None:
    form, kind_id, damaged_id, serial_id = issue_form

    damaged = _field(form, damaged_id)
    assert damaged.conditional_logic.parent_field_id == kind_id
    assert damaged.conditional_logic.enabled is False
    assert damaged.conditional_logic.conditions == []
    assert damaged.nesting_level == 1
    assert _field(form, serial_id).nesting_level == 2

    kind = _field(form, kind_id)
    assert kind.conditional_logic.enabled is True
    assert kind.conditional_logic.child_fields == [damaged_id]
    assert _ids(form)[-3:] == [kind_id, damaged_id, serial_id]


def test_child_is_inserted_after_parent_subtree(builder, issue_form) -> None:
    _, kind_id, damaged_id, serial_id = issue_form
    _, notes = builder.add_field("default", FieldType.TEXTAREA, "Notes")

    form, other = builder.create_child_field("default", kind_id, FieldType.NUMBER, "Quantity")

    assert _ids(form)[-5:] == [kind_id, damaged_id, serial_id, other.id, notes.id]
    assert _field(form, kind_id).conditional_logic.child_fields == [damaged_id, other.id]


def test_child_depth_is_limited(builder, issue_form) -> None:
    _, _, _, serial_id = issue_form
    form = builder.update_field("default", serial_id, label="Serial")
    assert _field(form, serial_id).label == "Serial"

    _, grandchild_dropdown = builder.create_child_field(
        "default", issue_form[2], FieldType.DROPDOWN, "Model", options=["A"]
    )
    with pytest.raises(NestingDepthExceededError):
        builder.create_child_field("default", grandchild_dropdown.id, FieldType.TEXT, "Too deep")


def test_child_needs_conditional_parent_and_allowed_type(builder) -> None:
    _, text = builder.add_field("default", FieldType.TEXT, "Summary")
    _, kind = builder.add_field("default", FieldType.DROPDOWN, "Kind")

    with pytest.raises(ConditionalLogicNotSupportedError):
        builder.create_child_field("default", text.id, FieldType.TEXT, "Child")
    with pytest.raises(ValidationError):
        builder.create_child_field("default", kind.id, FieldType.PRIORITY, "Priority")
    with pytest.raises(FieldNotFoundError):
        builder.create_child_field("default", "missing", FieldType.TEXT, "Child")


def test_update_field_validates_options(builder) -> None:
    _, text = builder.add_field("default", FieldType.TEXT, "Summary")
    _, kind = builder.add_field("default", FieldType.DROPDOWN, "Kind")

    with pytest.raises(ValidationError):
        builder.update_field("default", text.id, options=["a"])

    form = builder.update_field("default", kind.id, options=[" A ", "B", "A", ""], hidden=True)
    assert _field(form, kind.id).options == ["A", "B"]
    assert _field(form, kind.id).hidden is True


def test_update_field_sets_and_clears_default_value(builder) -> None:
    _, kind = builder.add_field("default", FieldType.DROPDOWN, "Kind", options=["A", "B"])

    form = builder.update_field("default", kind.id, default_value="B")
    assert _field(form, kind.id).default_value == "B"

    form = builder.update_field("default", kind.id, label="Category")
    assert _field(form, kind.id).default_value == "B"

    form = builder.update_field("default", kind.id, clear_default_value=True)
    assert _field(form, kind.id).default_value is None


def test_delete_cascades_by_default(builder, issue_form) -> None:
    _, kind_id, damaged_id, serial_id = issue_form

    form = builder.delete_field("default", kind_id)

    assert not {kind_id, damaged_id, serial_id} & set(_ids(form))


def test_delete_without_cascade_promotes_children(builder, issue_form) -> None:
    _, kind_id, damaged_id, serial_id = issue_form

    form = builder.delete_field("default", kind_id, cascade=False)

    damaged = _field(form, damaged_id)
    assert kind_id not in _ids(form)
    assert damaged.parent_field_id is None
    assert damaged.nesting_level == 0
    assert damaged.conditional_logic.child_fields == [serial_id]
    assert _field(form, serial_id).nesting_level == 1


def test_system_fields_cannot_be_deleted(builder) -> None:
    builder.get_form("default")

    with pytest.raises(FieldNotDeletableError):
        builder.delete_field("default", SYSTEM_TITLE_ID)


# ============================================================================
# Conditional logic
# ============================================================================

def test_set_condition_enables_logic(builder, issue_form) -> None:
    _, kind_id, damaged_id, _ = issue_form

    form, warnings = builder.set_condition("default", damaged_id, {"type": "option_match", "options": ["Hardware"]})

    logic = _field(form, damaged_id).conditional_logic
    assert logic.enabled is True
    assert logic.condition == OptionCondition(options=["Hardware"])
    assert warnings == []


@pytest.mark.parametrize(
    "condition",
    [
        {"type": "option_match", "options": ["Printer"]},
        {"type": "numeric", "operator": "equals", "value": 3},
        {"type": "regex", "pattern": ".*"},
    ],
)
def test_set_condition_rejects_rules_that_cannot_apply(builder, issue_form, condition) -> None:
    _, _, damaged_id, _ = issue_form

    with pytest.raises(InvalidConditionError):
        builder.set_condition("default", damaged_id, condition)


def test_set_condition_on_root_is_rejected(builder, issue_form) -> None:
    _, kind_id, _, _ = issue_form

    with pytest.raises(InvalidConditionError):
        builder.set_condition("default", kind_id, {"type": "option_match", "options": ["Hardware"]})


def test_inverted_range_is_saved_with_warning(builder) -> None:
    _, count = builder.add_field("default", FieldType.NUMBER, "Affected users")
    _, note = builder.create_child_field("default", count.id, FieldType.TEXT, "Note")

    form, warnings = builder.set_condition("default", note.id, between(10, 5))

    assert isinstance(_field(form, note.id).conditional_logic.condition, NumericCondition)
    assert len(warnings) == 1


def test_condition_editor_prunes_and_persists_stale_options(builder, repo) -> None:
    _, kind = builder.add_field("default", FieldType.CATEGORY, "Category", options=["A", "B", "C"])
    _, child = builder.create_child_field("default", kind.id, FieldType.TEXT, "Detail")
    builder.set_condition("default", child.id, options("A", "C"))
    before = builder.update_field("default", kind.id, options=["A", "B"])

    editor = builder.get_condition_editor("default", child.id)

    assert editor.pruned_options == ["C"]
    assert editor.condition.options == ["A"]
    assert editor.summary == '"A"'
    assert editor.available_options == ["A", "B"]
    stored = repo.get_config("default")
    assert _field(stored, child.id).conditional_logic.condition.options == ["A"]
    assert stored.version == before.version + 1

    again = builder.get_condition_editor("default", child.id)
    assert again.pruned_options == []
    assert repo.get_config("default").version == stored.version


def test_condition_editor_for_new_child(builder, issue_form) -> None:
    _, kind_id, damaged_id, serial_id = issue_form

    editor = builder.get_condition_editor("default", damaged_id)

    assert editor.parent_field_id == kind_id
    assert editor.parent_type == FieldType.DROPDOWN
    assert editor.enabled is False
    assert editor.summary == "No condition set"
    assert editor.condition == OptionCondition(options=[])
    assert editor.can_add_children is True
    assert builder.get_condition_editor("default", serial_id).can_add_children is False


def test_toggle_conditional_logic(builder, issue_form) -> None:
    _, _, damaged_id, _ = issue_form
    _, text = builder.add_field("default", FieldType.TEXT, "Summary")

    form = builder.set_conditional_enabled("default", damaged_id, True)
    assert _field(form, damaged_id).conditional_logic.enabled is True

    with pytest.raises(ConditionalLogicNotSupportedError):
        builder.set_conditional_enabled("default", text.id, True)


def test_attach_existing_field_under_parent(builder, issue_form) -> None:
    _, kind_id, damaged_id, serial_id = issue_form
    _, notes = builder.add_field("default", FieldType.TEXTAREA, "Notes")
    _, last = builder.add_field("default", FieldType.TEXT, "Last")

    form = builder.attach_field("default", notes.id, kind_id, condition={"type": "option_match", "options": ["Software"]})

    moved = _field(form, notes.id)
    assert moved.parent_field_id == kind_id
    assert moved.nesting_level == 1
    assert moved.conditional_logic.enabled is True
    assert _field(form, kind_id).conditional_logic.child_fields == [damaged_id, notes.id]
    assert _ids(form)[-5:] == [kind_id, damaged_id, serial_id, notes.id, last.id]


def _live_ids(ticket_forms, values):
    return [entry.field.id for entry in ticket_forms.render("default", values)]


def test_new_grandchild_shows_with_its_parent(builder, ticket_forms, issue_form) -> None:
    form, kind_id, damaged_id, serial_id = issue_form

    assert _field(form, damaged_id).conditional_logic.enabled is False
    assert _live_ids(ticket_forms, {kind_id: "Hardware"})[-3:] == [kind_id, damaged_id, serial_id]

    builder.set_condition("default", damaged_id, {"type": "option_match", "options": ["Hardware"]})
    builder.set_condition("default", serial_id, {"type": "checkbox_state", "value": True})

    assert _live_ids(ticket_forms, {kind_id: "Hardware"})[-2:] == [kind_id, damaged_id]
    assert _live_ids(ticket_forms, {kind_id: "Hardware", damaged_id: True})[-1] == serial_id
    assert damaged_id not in _live_ids(ticket_forms, {kind_id: "Software"})


def test_attaching_under_child_keeps_it_visible(builder, ticket_forms, issue_form) -> None:
    _, kind_id, damaged_id, serial_id = issue_form
    _, notes = builder.add_field("default", FieldType.TEXTAREA, "Notes")

    form = builder.attach_field("default", notes.id, damaged_id)

    assert _field(form, damaged_id).conditional_logic.enabled is False
    assert _field(form, damaged_id).conditional_logic.child_fields == [serial_id, notes.id]
    assert _live_ids(ticket_forms, {kind_id: "Hardware"})[-4:] == [kind_id, damaged_id, serial_id, notes.id]


def test_attach_rejects_cycles_and_depth(builder, issue_form) -> None:
    _, kind_id, damaged_id, _ = issue_form
    _, other = builder.add_field("default", FieldType.DROPDOWN, "Other", options=["x"])
    builder.create_child_field("default", other.id, FieldType.TEXT, "Other detail")
    _, text = builder.add_field("default", FieldType.TEXT, "Summary")

    with pytest.raises(CyclicDependencyError):
        builder.attach_field("default", kind_id, damaged_id)
    with pytest.raises(NestingDepthExceededError):
        builder.attach_field("default", other.id, damaged_id)
    with pytest.raises(ConditionalLogicNotSupportedError):
        builder.attach_field("default", other.id, text.id)


def test_detach_child(builder, issue_form) -> None:
    _, kind_id, damaged_id, serial_id = issue_form

    form = builder.detach_field("default", serial_id)

    assert _field(form, serial_id).conditional_logic is None
    assert _field(form, damaged_id).conditional_logic.child_fields == []
    with pytest.raises(ValidationError):
        builder.detach_field("default", kind_id)


# ============================================================================
# Canvas and validation
# ============================================================================

def test_canvas_lists_orphans_last(builder) -> None:
    base = builder.get_form("default").fields
    fields = list(base) + [
        make_field("lost", FieldType.TEXT, parent="deleted", condition=options("x")),
        make_field("notes", FieldType.TEXTAREA),
    ]
    builder.save_form("default", fields)

    canvas = builder.canvas("default")

    assert [entry.field.id for entry in canvas] == [SYSTEM_TITLE_ID, SYSTEM_DESCRIPTION_ID, "notes", "lost"]
    assert canvas[-1].orphaned is True


def test_validate_form_reports_problems(builder, repo) -> None:
    form = builder.get_form("default")
    broken = form.model_copy(update={"fields": list(form.fields) + [
        make_field("summary", FieldType.TEXT),
        make_field("under_text", FieldType.TEXT, parent="summary", condition=options("x")),
        make_field("kind", FieldType.DROPDOWN, options=["A", "B"]),
        make_field("stale", FieldType.TEXT, parent="kind", condition=options("A", "Z")),
        make_field("wrong_level", FieldType.TEXT, parent="kind", condition=options("B"), level=2),
        make_field("lost", FieldType.TEXT, parent="gone"),
        make_field("count", FieldType.NUMBER),
        make_field("inverted", FieldType.TEXT, parent="count", condition=between(9, 1)),
    ]})
    repo.save_config(broken)

    report = builder.validate_form("default")

    error_types = {(issue.type, issue.field_id) for issue in report.errors}
    warning_types = {(issue.type, issue.field_id) for issue in report.warnings}
    assert report.is_valid is False
    assert ("PARENT_TYPE_NOT_CONDITIONAL", "under_text") in error_types
    assert ("CONDITION_PARENT_MISMATCH", "under_text") in error_types
    assert ("NESTING_LEVEL_MISMATCH", "wrong_level") in error_types
    assert ("DANGLING_PARENT", "lost") in error_types
    assert ("STALE_OPTIONS", "stale") in warning_types
    assert ("CONDITION_WARNING", "inverted") in warning_types


def test_validate_form_reports_cycle_that_canvas_refuses(builder, repo) -> None:
    form = builder.get_form("default")
    cyclic = form.model_copy(update={"fields": list(form.fields) + [
        make_field("a", FieldType.DROPDOWN, parent="b"),
        make_field("b", FieldType.DROPDOWN, parent="a"),
    ]})
    repo.save_config(cyclic)

    report = builder.validate_form("default")

    assert [issue.type for issue in report.errors] == ["CYCLIC_DEPENDENCY"]
    with pytest.raises(CyclicDependencyError):
        builder.canvas("default")


def test_clean_form_is_valid(builder, issue_form) -> None:
    _, _, damaged_id, _ = issue_form
    builder.set_condition("default", damaged_id, options("Hardware"))

    report = builder.validate_form("default")

    assert report.is_valid is True
    assert report.errors == []
