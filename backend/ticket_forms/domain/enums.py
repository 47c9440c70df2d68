"""Domain Enumerations - Field types and condition kinds"""
from enum import Enum


class FieldType(str, Enum):
    """Supported ticket form field types"""
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    DATE = "date"
    DROPDOWN = "dropdown"
    MULTISELECT = "multiselect"
    CHECKBOX = "checkbox"
    FILE = "file"  # Attachment upload
    CC_USERS = "cc_users"  # Users copied on the ticket
    PRIORITY = "priority"
    CATEGORY = "category"


class ConditionType(str, Enum):
    """Tag of a condition rule, keyed by the parent field's type family"""
    NUMERIC = "numeric"
    OPTION_MATCH = "option_match"
    CHECKBOX_STATE = "checkbox_state"
    UNSUPPORTED = "unsupported"  # Anything that could not be recognised on load


class NumericOperator(str, Enum):
    """Operators for numeric conditions"""
    EQUALS = "equals"
    BETWEEN = "between"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"


# Field types that may govern conditional children
CONDITIONAL_PARENT_TYPES = frozenset({
    FieldType.NUMBER,
    FieldType.DROPDOWN,
    FieldType.CHECKBOX,
    FieldType.CATEGORY,
    FieldType.MULTISELECT,
})

# Field types that carry an option list
OPTION_FIELD_TYPES = frozenset({
    FieldType.DROPDOWN,
    FieldType.MULTISELECT,
    FieldType.PRIORITY,
    FieldType.CATEGORY,
})

# Field types whose value is a list
LIST_VALUE_TYPES = frozenset({
    FieldType.MULTISELECT,
    FieldType.CC_USERS,
})

# Field types the builder does not offer as conditional children
NON_CHILD_FIELD_TYPES = frozenset({
    FieldType.CC_USERS,
    FieldType.PRIORITY,
    FieldType.CATEGORY,
})

# Root = 0, child = 1, grandchild = 2
MAX_NESTING_LEVEL = 2
