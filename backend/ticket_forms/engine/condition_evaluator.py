"""Condition Evaluator - Safe evaluation of child field condition rules"""
import math
from typing import Any, Callable, Optional

from ..domain.models import NumericCondition, OptionCondition, BooleanCondition
from ..domain.enums import FieldType, NumericOperator
from ..utils.logger import get_logger

logger = get_logger(__name__)

_OPTION_PARENT_TYPES = frozenset({FieldType.DROPDOWN, FieldType.CATEGORY, FieldType.MULTISELECT})

_FALSE_STRINGS = frozenset({"", "false", "0"})


class ConditionEvaluator:
    """
    Evaluate a child's condition rule against its parent's current value

    Stateless. Fails closed: a malformed rule, a rule that does not fit the
    parent type, or an unparseable value never reveals the child.
    """

    def satisfied(self, rule: Any, parent_type: FieldType, value: Any) -> bool:
        """
        Evaluate one condition rule

        Args:
            rule: Condition rule of the child field
            parent_type: Type of the governing field
            value: Current value of the governing field

        Returns:
            True if the child should be revealed
        """
        if isinstance(rule, NumericCondition):
            if parent_type != FieldType.NUMBER:
                return self._mismatch(rule, parent_type)
            return self._evaluate_numeric(rule, value)

        if isinstance(rule, OptionCondition):
            if parent_type not in _OPTION_PARENT_TYPES:
                return self._mismatch(rule, parent_type)
            return self._evaluate_options(rule, value)

        if isinstance(rule, BooleanCondition):
            if parent_type != FieldType.CHECKBOX:
                return self._mismatch(rule, parent_type)
            return to_checkbox_state(value) == rule.value

        logger.warning(f"Unsupported condition rule ignored: {rule!r}")
        return False

    def _mismatch(self, rule: Any, parent_type: FieldType) -> bool:
        logger.warning(
            f"Condition rule {rule.type} does not apply to a {parent_type.value} parent"
        )
        return False

    def _evaluate_numeric(self, rule: NumericCondition, value: Any) -> bool:
        number = to_number(value)
        if number is None:
            return False

        operator = rule.operator
        if operator == NumericOperator.EQUALS:
            return rule.value is not None and number == rule.value

        elif operator == NumericOperator.BETWEEN:
            lower, upper = rule.range_min, rule.range_max
            if lower is not None and upper is not None and lower > upper:
                return False  # Inverted range never matches
            if lower is not None and number < lower:
                return False
            if upper is not None and number > upper:
                return False
            return True

        elif operator == NumericOperator.GREATER_THAN:
            return self._compare_numeric(number, rule.value, lambda a, b: a > b)

        elif operator == NumericOperator.LESS_THAN:
            return self._compare_numeric(number, rule.value, lambda a, b: a < b)

        logger.warning(f"Numeric condition without a usable operator: {operator!r}")
        return False

    def _compare_numeric(
        self,
        number: float,
        operand: Optional[float],
        comparator: Callable[[float, float], bool]
    ) -> bool:
        if operand is None:
            return False
        return comparator(number, operand)

    def _evaluate_options(self, rule: OptionCondition, value: Any) -> bool:
        if not rule.options:
            return False
        # List membership: parent values may be unhashable
        triggers = list(rule.options)

        # Multiselect values are lists: any overlap reveals the child
        if isinstance(value, (list, tuple, set, frozenset)):
            return any(selected in triggers for selected in value)

        return value in triggers


def to_number(value: Any) -> Optional[float]:
    """Parse a parent value as a finite float, None when not numeric"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_checkbox_state(value: Any) -> bool:
    """Coerce the usual checkbox representations to a bool"""
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


_default_evaluator = ConditionEvaluator()


def satisfied(rule: Any, parent_type: FieldType, value: Any) -> bool:
    """Module-level shortcut for ConditionEvaluator().satisfied"""
    return _default_evaluator.satisfied(rule, parent_type, value)
