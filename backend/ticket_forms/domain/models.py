"""Domain Models - Pydantic schemas for form configuration and engine results"""
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from .enums import FieldType, ConditionType, NumericOperator


# ============================================================================
# Condition Rules
# ============================================================================

class NumericCondition(BaseModel):
    """Rule on a number parent: exact value, range or strict comparison"""
    model_config = ConfigDict(extra="ignore")

    type: Literal["numeric"] = "numeric"
    operator: Optional[NumericOperator] = Field(None, description="Missing operator never matches")
    value: Optional[float] = Field(None, description="Operand for equals/greater_than/less_than")
    range_min: Optional[float] = Field(None, description="Inclusive lower bound for between")
    range_max: Optional[float] = Field(None, description="Inclusive upper bound for between")


class OptionCondition(BaseModel):
    """Rule on a dropdown/category/multiselect parent: trigger options"""
    model_config = ConfigDict(extra="ignore")

    type: Literal["option_match"] = "option_match"
    options: List[str] = Field(default_factory=list, description="Options that reveal the child")

    @field_validator("options")
    @classmethod
    def _dedupe_options(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))


class BooleanCondition(BaseModel):
    """Rule on a checkbox parent: expected checked state"""
    model_config = ConfigDict(extra="ignore")

    type: Literal["checkbox_state"] = "checkbox_state"
    value: bool = True


class UnsupportedCondition(BaseModel):
    """Placeholder for a rule that could not be recognised; never matches"""
    type: Literal["unsupported"] = "unsupported"
    raw: Dict[str, Any] = Field(default_factory=dict)


ConditionRule = Annotated[
    Union[NumericCondition, OptionCondition, BooleanCondition, UnsupportedCondition],
    Field(discriminator="type"),
]

_CONDITION_MODELS = {
    ConditionType.NUMERIC.value: NumericCondition,
    ConditionType.OPTION_MATCH.value: OptionCondition,
    ConditionType.CHECKBOX_STATE.value: BooleanCondition,
    ConditionType.UNSUPPORTED.value: UnsupportedCondition,
}

# Tags and keys written by the earlier browser client
_LEGACY_TYPES = {
    "equals": ConditionType.NUMERIC.value,
    "range": ConditionType.NUMERIC.value,
    "optionMatch": ConditionType.OPTION_MATCH.value,
    "checkboxState": ConditionType.CHECKBOX_STATE.value,
}
_LEGACY_OPERATORS = {
    "greaterThan": NumericOperator.GREATER_THAN.value,
    "lessThan": NumericOperator.LESS_THAN.value,
}
_LEGACY_KEYS = {"rangeMin": "range_min", "rangeMax": "range_max"}


def parse_condition(raw: Any) -> BaseModel:
    """
    Build a condition rule model from stored data

    Legacy tags are normalised. Anything that cannot be parsed becomes an
    UnsupportedCondition so the field fails closed instead of breaking
    the whole catalog.
    """
    if isinstance(raw, tuple(_CONDITION_MODELS.values())):
        return raw
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if not isinstance(raw, dict):
        return UnsupportedCondition(raw={"value": raw})

    data = dict(raw)
    for legacy_key, key in _LEGACY_KEYS.items():
        if legacy_key in data and key not in data:
            data[key] = data.pop(legacy_key)

    tag = data.get("type")
    if tag in _LEGACY_TYPES:
        data["type"] = _LEGACY_TYPES[tag]
        if tag == "range" and not data.get("operator"):
            data["operator"] = NumericOperator.BETWEEN.value
        elif tag == "equals" and not data.get("operator"):
            data["operator"] = NumericOperator.EQUALS.value
    if data.get("operator") in _LEGACY_OPERATORS:
        data["operator"] = _LEGACY_OPERATORS[data["operator"]]

    model = _CONDITION_MODELS.get(data.get("type"))
    if model is None:
        return UnsupportedCondition(raw=dict(raw))
    try:
        return model.model_validate(data)
    except PydanticValidationError:
        return UnsupportedCondition(raw=dict(raw))


# ============================================================================
# Form Fields
# ============================================================================

class ConditionalLogic(BaseModel):
    """Dependency record attached to a conditional root or a dependent child"""
    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(default=False)
    parent_field_id: Optional[str] = Field(None, description="Governing field; absent for roots")
    conditions: List[ConditionRule] = Field(default_factory=list, description="Only the first entry is evaluated")
    child_fields: List[str] = Field(default_factory=list, description="Direct dependents")
    nesting_level: int = Field(default=0, ge=0, description="0 root, 1 child, 2 grandchild")

    @field_validator("conditions", mode="before")
    @classmethod
    def _parse_conditions(cls, value: Any) -> List[BaseModel]:
        if value is None:
            return []
        if not isinstance(value, list):
            value = [value]
        return [parse_condition(item) for item in value]

    @property
    def condition(self) -> Optional[BaseModel]:
        """The rule the engine evaluates"""
        return self.conditions[0] if self.conditions else None


class FieldValidation(BaseModel):
    """Validation rules checked on submission"""
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    max_length: Optional[int] = None
    regex_pattern: Optional[str] = None


class FormField(BaseModel):
    """Form field definition"""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1, description="Unique within the catalog")
    type: FieldType = Field(..., description="Field type")
    label: str = Field(default="")
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    required: bool = Field(default=False)
    options: Optional[List[str]] = Field(None, description="Options for option-bearing types")
    default_value: Optional[Any] = None
    validation: Optional[FieldValidation] = None
    order: int = Field(default=0, description="Display order")
    hidden: bool = Field(default=False, description="Operator suppression, independent of conditions")
    deletable: bool = Field(default=True)
    is_system_field: bool = Field(default=False)
    conditional_logic: Optional[ConditionalLogic] = None

    @property
    def parent_field_id(self) -> Optional[str]:
        if self.conditional_logic is None:
            return None
        return self.conditional_logic.parent_field_id

    @property
    def nesting_level(self) -> int:
        if self.conditional_logic is None:
            return 0
        return self.conditional_logic.nesting_level


class FormConfiguration(BaseModel):
    """Ticket-intake form: the field catalog plus bookkeeping"""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Form configuration ID")
    name: str = Field(default="Ticket Intake Form")
    fields: List[FormField] = Field(default_factory=list, description="Catalog, in catalog order")
    version: int = Field(default=1, ge=1, description="Optimistic concurrency counter")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ============================================================================
# Engine Results
# ============================================================================

class OrderedField(BaseModel):
    """One entry of the hierarchy render order"""
    field: FormField
    nesting_level: int
    has_children: bool
    orphaned: bool = Field(default=False, description="Parent reference points at a missing field")


class ValueChangeResult(BaseModel):
    """Outcome of a single field-value change"""
    updated_values: Dict[str, Any] = Field(default_factory=dict)
    ids_to_clear: List[str] = Field(default_factory=list, description="Visible before, hidden after")
    revealed_ids: List[str] = Field(default_factory=list, description="Hidden before, visible after")


class ValidationIssue(BaseModel):
    """Single problem found in a form configuration"""
    type: str
    message: str
    field_id: Optional[str] = None


class ValidationReport(BaseModel):
    """Structural validation of a form configuration"""
    is_valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)


class ConditionEditorState(BaseModel):
    """What the builder needs to render the condition editor of a child"""
    field_id: str
    parent_field_id: str
    parent_type: FieldType
    nesting_level: int
    enabled: bool
    condition: Optional[ConditionRule] = None
    available_options: List[str] = Field(default_factory=list)
    summary: str
    pruned_options: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    can_add_children: bool


class SubmissionResult(BaseModel):
    """Values accepted for ticket creation"""
    values: Dict[str, Any] = Field(default_factory=dict)
    visible_field_ids: List[str] = Field(default_factory=list)
