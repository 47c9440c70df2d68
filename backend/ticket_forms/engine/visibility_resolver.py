"""Visibility Resolver - Which fields render for the current values"""
from typing import Any, FrozenSet, List, Mapping, Optional, Sequence, Union

from ..domain.models import FormField
from .field_graph import FieldGraph
from .condition_evaluator import ConditionEvaluator
from ..utils.logger import get_logger

logger = get_logger(__name__)


class VisibilityResolver:
    """
    Compute the visible set of a catalog

    Visibility is gated top-down: roots are visible unless operator-hidden,
    and a child is visible only if its parent is visible and the child's
    condition holds for the parent's value. A field under a hidden parent
    is never visible, whatever its own condition says.

    Child rules:
    - conditional logic disabled -> condition bypassed, still parent-gated
    - enabled without conditions -> hidden
    - otherwise the first condition decides
    """

    def __init__(self, graph: FieldGraph, evaluator: Optional[ConditionEvaluator] = None):
        self.graph = graph
        self.evaluator = evaluator or ConditionEvaluator()

    def visible_field_ids(self, values: Mapping[str, Any]) -> FrozenSet[str]:
        """
        Resolve the visible set

        Args:
            values: Current field values keyed by field id

        Returns:
            Ids of the fields that should render
        """
        visible = set()
        pending: List[str] = [
            field_id for field_id in self.graph.roots
            if not self.graph.require(field_id).hidden
        ]
        while pending:
            field_id = pending.pop()
            visible.add(field_id)
            parent = self.graph.require(field_id)
            parent_value = values.get(field_id)
            for child in self.graph.children_of(field_id):
                if child.id in visible:
                    continue
                if self.condition_met(child, parent, parent_value):
                    pending.append(child.id)
        return frozenset(visible)

    def condition_met(self, child: FormField, parent: FormField, parent_value: Any) -> bool:
        """Evaluate the edge parent -> child, ignoring the parent's own visibility"""
        if child.hidden:
            return False
        logic = child.conditional_logic
        if logic is None or not logic.enabled:
            return True
        rule = logic.condition
        if rule is None:
            return False
        return self.evaluator.satisfied(rule, parent.type, parent_value)

    def is_visible(self, field_id: str, values: Mapping[str, Any]) -> bool:
        self.graph.require(field_id)
        return field_id in self.visible_field_ids(values)


def visible_field_ids(
    catalog: Union[FieldGraph, Sequence[FormField]],
    values: Mapping[str, Any]
) -> FrozenSet[str]:
    """Visible set for a catalog (list of fields) or a prebuilt graph"""
    graph = catalog if isinstance(catalog, FieldGraph) else FieldGraph(catalog)
    return VisibilityResolver(graph).visible_field_ids(values)
