"""Condition rule helpers used on the authoring path"""
from typing import Any, List, Optional, Sequence, Tuple

from ..domain.models import NumericCondition, OptionCondition, BooleanCondition
from ..domain.enums import FieldType, NumericOperator


def _format_number(number: Optional[float]) -> str:
    if number is None:
        return "?"
    return str(int(number)) if float(number).is_integer() else str(number)


def describe_condition(rule: Any) -> str:
    """
    Human-readable summary of a rule

    Examples: "= 5", "> 5", "5 - 10", '"High"', "3 options", "Checked"
    """
    if rule is None:
        return "No condition set"

    if isinstance(rule, NumericCondition):
        if rule.operator == NumericOperator.BETWEEN:
            return f"{_format_number(rule.range_min)} - {_format_number(rule.range_max)}"
        if rule.operator == NumericOperator.GREATER_THAN:
            return f"> {_format_number(rule.value)}"
        if rule.operator == NumericOperator.LESS_THAN:
            return f"< {_format_number(rule.value)}"
        return f"= {_format_number(rule.value)}"

    if isinstance(rule, OptionCondition):
        if not rule.options:
            return "No options selected"
        if len(rule.options) == 1:
            return f'"{rule.options[0]}"'
        return f"{len(rule.options)} options"

    if isinstance(rule, BooleanCondition):
        return "Checked" if rule.value else "Unchecked"

    return "Unknown condition"


def rule_fits_parent(rule: Any, parent_type: FieldType) -> bool:
    """True if the rule family matches the governing field's type"""
    if isinstance(rule, NumericCondition):
        return parent_type == FieldType.NUMBER
    if isinstance(rule, OptionCondition):
        return parent_type in (FieldType.DROPDOWN, FieldType.CATEGORY, FieldType.MULTISELECT)
    if isinstance(rule, BooleanCondition):
        return parent_type == FieldType.CHECKBOX
    return False


def default_condition_for(parent_type: FieldType) -> Optional[Any]:
    """Rule a new condition editor starts from"""
    if parent_type == FieldType.NUMBER:
        return NumericCondition(operator=NumericOperator.EQUALS)
    if parent_type in (FieldType.DROPDOWN, FieldType.CATEGORY, FieldType.MULTISELECT):
        return OptionCondition(options=[])
    if parent_type == FieldType.CHECKBOX:
        return BooleanCondition(value=True)
    return None


def prune_stale_options(
    rule: OptionCondition,
    parent_options: Optional[Sequence[str]]
) -> Tuple[OptionCondition, List[str]]:
    """
    Drop trigger options the parent no longer offers

    Returns:
        (revised rule, removed options); the rule is returned unchanged
        when nothing was removed
    """
    available = set(parent_options or ())
    removed = [option for option in rule.options if option not in available]
    if not removed:
        return rule, []
    kept = [option for option in rule.options if option in available]
    return rule.model_copy(update={"options": kept}), removed


def condition_warnings(rule: Any) -> List[str]:
    """Problems worth showing to the operator; none of them block saving"""
    warnings = []
    if isinstance(rule, NumericCondition):
        if rule.operator is None:
            warnings.append("Numeric condition has no operator and will never match")
        elif rule.operator == NumericOperator.BETWEEN:
            if rule.range_min is not None and rule.range_max is not None and rule.range_min > rule.range_max:
                warnings.append(
                    f"Minimum {_format_number(rule.range_min)} is greater than "
                    f"maximum {_format_number(rule.range_max)}; the field will never show"
                )
        elif rule.value is None:
            warnings.append("Numeric condition has no value and will never match")
    elif isinstance(rule, OptionCondition) and not rule.options:
        warnings.append("No trigger options selected; the field will never show")
    return warnings
