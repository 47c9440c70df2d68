"""Default system fields present in every ticket-intake form"""
from typing import List, Sequence

from ..domain.models import FormField, FieldValidation
from ..domain.enums import FieldType

SYSTEM_TITLE_ID = "system-title"
SYSTEM_DESCRIPTION_ID = "system-description"

SYSTEM_FIELD_IDS = (SYSTEM_TITLE_ID, SYSTEM_DESCRIPTION_ID)

# Includes ids that earlier form versions shipped as system fields
ALL_SYSTEM_FIELD_IDS = frozenset({
    SYSTEM_TITLE_ID,
    SYSTEM_DESCRIPTION_ID,
    "system-category",
    "system-priority",
    "system-attachments",
})

DEFAULT_OPTIONS = ["Option 1", "Option 2", "Option 3"]


def default_form_fields() -> List[FormField]:
    """Title and description, the only mandatory system fields"""
    return [
        FormField(
            id=SYSTEM_TITLE_ID,
            type=FieldType.TEXT,
            label="Title",
            placeholder="Brief description of your issue",
            required=True,
            order=0,
            is_system_field=True,
            deletable=False,
            help_text="Provide a short, descriptive title for your ticket",
            validation=FieldValidation(max_length=200),
        ),
        FormField(
            id=SYSTEM_DESCRIPTION_ID,
            type=FieldType.TEXTAREA,
            label="Description",
            placeholder="Provide detailed information about your issue...",
            required=True,
            order=1,
            is_system_field=True,
            deletable=False,
            help_text="Describe your issue in detail so we can help you better",
        ),
    ]


def should_initialize_defaults(fields: Sequence[FormField]) -> bool:
    """True when the catalog is empty or misses a system field"""
    if not fields:
        return True
    present = {field.id for field in fields}
    return not all(field_id in present for field_id in SYSTEM_FIELD_IDS)


def merge_with_defaults(existing_fields: Sequence[FormField]) -> List[FormField]:
    """
    Current system fields first, then the custom fields

    Old system fields (including deprecated ones) are dropped and the
    order attribute is renumbered.
    """
    custom_fields = [field for field in existing_fields if field.id not in ALL_SYSTEM_FIELD_IDS]
    merged = default_form_fields() + list(custom_fields)
    return [field.model_copy(update={"order": index}) for index, field in enumerate(merged)]
