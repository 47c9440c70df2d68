"""Tests for the live ticket form service."""

import pytest

from ticket_forms.domain.enums import FieldType
from ticket_forms.domain.models import FieldValidation
from ticket_forms.domain.errors import SubmissionValidationError, FormConfigNotFoundError, FieldNotFoundError
from ticket_forms.services.form_defaults import SYSTEM_TITLE_ID, SYSTEM_DESCRIPTION_ID
from ticket_forms.services.ticket_form_service import EngineCache

from tests.factories import make_field, options, checked, greater_than


@pytest.fixture
def intake_form(builder):
    base = builder.get_form("default").fields
    fields = list(base) + [
        make_field("priority", FieldType.DROPDOWN, options=["Low", "High", "Urgent"], default_value="Low"),
        make_field("escalation_reason", FieldType.TEXT, parent="priority", condition=options("Urgent"),
                   required=True),
        make_field("affected_users", FieldType.NUMBER, validation=FieldValidation(min_value=1, max_value=500)),
        make_field("outage", FieldType.CHECKBOX, parent="affected_users", condition=greater_than(50)),
        make_field("started_at", FieldType.DATE, parent="outage", condition=checked(True), level=2,
                   required=True),
        make_field("asset_tag", FieldType.TEXT,
                   validation=FieldValidation(max_length=8, regex_pattern=r"[A-Z]{2}-\d+")),
        make_field("systems", FieldType.MULTISELECT, options=["VPN", "CRM", "Mail"]),
    ]
    return builder.save_form("default", fields)


def _ids(view):
    return [entry.field.id for entry in view]


def _valid_values(**overrides):
    values = {SYSTEM_TITLE_ID: "Cannot log in", SYSTEM_DESCRIPTION_ID: "Since this morning", "priority": "Low"}
    values.update(overrides)
    return values


def test_render_shows_visible_fields_in_hierarchy_order(ticket_forms, intake_form) -> None:
    view = ticket_forms.render("default", {"priority": "Urgent", "affected_users": 120, "outage": True})

    assert _ids(view) == [
        SYSTEM_TITLE_ID, SYSTEM_DESCRIPTION_ID, "priority", "escalation_reason",
        "affected_users", "outage", "started_at", "asset_tag", "systems",
    ]
    assert [entry.nesting_level for entry in view][3:7] == [1, 0, 1, 2]


def test_render_unknown_form(ticket_forms) -> None:
    with pytest.raises(FormConfigNotFoundError):
        ticket_forms.render("nope", {})


def test_initial_values(ticket_forms, intake_form) -> None:
    values = ticket_forms.initial_values("default")

    assert values["priority"] == "Low"
    assert values["systems"] == []
    assert values[SYSTEM_TITLE_ID] == ""
    assert "escalation_reason" not in values


def test_apply_change_clears_hidden_descendants(ticket_forms, intake_form) -> None:
    values = {"affected_users": 120, "outage": True, "started_at": "2026-10-19"}

    result = ticket_forms.apply_change("default", values, "affected_users", 10)

    assert result.ids_to_clear == ["outage", "started_at"]
    assert result.updated_values == {"affected_users": 10}


def test_apply_change_unknown_field(ticket_forms, intake_form) -> None:
    with pytest.raises(FieldNotFoundError):
        ticket_forms.apply_change("default", {}, "nope", 1)


def test_engine_is_reused_until_form_changes(builder, ticket_forms, intake_form) -> None:
    first = ticket_forms.get_engine("default")
    assert ticket_forms.get_engine("default") is first

    builder.update_field("default", "priority", label="Urgency")

    rebuilt = ticket_forms.get_engine("default")
    assert rebuilt is not first
    assert rebuilt.graph.require("priority").label == "Urgency"


def test_engine_cache_evicts_least_recently_used() -> None:
    cache = EngineCache(max_size=2)
    cache.put(("a", 1), "engine-a")
    cache.put(("b", 1), "engine-b")
    cache.get(("a", 1))
    cache.put(("c", 1), "engine-c")

    assert cache.get(("b", 1)) is None
    assert cache.get(("a", 1)) == "engine-a"
    assert len(cache) == 2


def test_valid_submission_drops_hidden_values(ticket_forms, intake_form) -> None:
    values = _valid_values(escalation_reason="left over", affected_users="12", systems=["VPN"])

    result = ticket_forms.check_submission("default", values)

    assert "escalation_reason" not in result.values
    assert result.values["affected_users"] == "12"
    assert "escalation_reason" not in result.visible_field_ids
    assert result.visible_field_ids[:3] == [SYSTEM_TITLE_ID, SYSTEM_DESCRIPTION_ID, "priority"]


def test_hidden_required_field_is_not_enforced(ticket_forms, intake_form) -> None:
    result = ticket_forms.check_submission("default", _valid_values(affected_users=3))

    assert "started_at" not in result.visible_field_ids


def test_visible_required_fields_are_enforced(ticket_forms, intake_form) -> None:
    values = _valid_values(priority="Urgent", affected_users=80, outage=True)
    values[SYSTEM_TITLE_ID] = "   "

    with pytest.raises(SubmissionValidationError) as exc_info:
        ticket_forms.check_submission("default", values)

    problems = exc_info.value.details["fields"]
    assert set(problems) == {SYSTEM_TITLE_ID, "escalation_reason", "started_at"}
    assert exc_info.value.http_status == 422


@pytest.mark.parametrize(
    "overrides,field_id",
    [
        ({"affected_users": "many"}, "affected_users"),
        ({"affected_users": 0}, "affected_users"),
        ({"affected_users": 501}, "affected_users"),
        ({"affected_users": 60, "outage": True, "started_at": "yesterday"}, "started_at"),
        ({"asset_tag": "AB-123456789"}, "asset_tag"),
        ({"asset_tag": "ab-12"}, "asset_tag"),
        ({"priority": "Critical"}, "priority"),
        ({"systems": ["VPN", "Fax"]}, "systems"),
    ],
)
def test_invalid_values_are_reported(ticket_forms, intake_form, overrides, field_id) -> None:
    with pytest.raises(SubmissionValidationError) as exc_info:
        ticket_forms.check_submission("default", _valid_values(**overrides))

    assert list(exc_info.value.details["fields"]) == [field_id]


def test_valid_formats_pass(ticket_forms, intake_form) -> None:
    values = _valid_values(affected_users=60, outage=True, started_at="2026-10-19T08:30:00Z", asset_tag="AB-12")

    result = ticket_forms.check_submission("default", values)

    assert result.values["started_at"] == "2026-10-19T08:30:00Z"
