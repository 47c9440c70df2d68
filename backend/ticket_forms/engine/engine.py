"""Form Engine - One catalog version, all derived views"""
from typing import Any, Dict, FrozenSet, List, Mapping, Sequence

from ..domain.models import FormField, OrderedField, ValueChangeResult
from .field_graph import FieldGraph
from .condition_evaluator import ConditionEvaluator
from .visibility_resolver import VisibilityResolver
from .hierarchy_orderer import HierarchyOrderer
from .value_controller import ValueConsistencyController


class FormEngine:
    """
    Bundle of the engine components for one catalog version

    The field graph is built once here; hosts keep the engine for as long
    as the catalog version does not change.

    Raises:
        StructuralIntegrityError: On construction, if the catalog has
            duplicate ids or a parent cycle
    """

    def __init__(self, fields: Sequence[FormField]):
        self.graph = FieldGraph(fields)
        self.evaluator = ConditionEvaluator()
        self.resolver = VisibilityResolver(self.graph, self.evaluator)
        self.orderer = HierarchyOrderer(self.graph)
        self.controller = ValueConsistencyController(self.graph, self.resolver)
        self._view = self.orderer.ordered_view()

    @property
    def fields(self) -> Sequence[FormField]:
        return self.graph.fields

    def visible_field_ids(self, values: Mapping[str, Any]) -> FrozenSet[str]:
        return self.resolver.visible_field_ids(values)

    def ordered_view(self, include_orphans: bool = False) -> List[OrderedField]:
        if include_orphans:
            return self.orderer.ordered_view(include_orphans=True)
        return list(self._view)

    def visible_ordered_view(self, values: Mapping[str, Any]) -> List[OrderedField]:
        """What the live ticket form draws: visible fields in hierarchy order"""
        return self.orderer.filter_visible(self.visible_field_ids(values), self._view)

    def on_field_value_change(
        self,
        values: Mapping[str, Any],
        changed_field_id: str,
        new_value: Any
    ) -> ValueChangeResult:
        return self.controller.on_field_value_change(values, changed_field_id, new_value)

    def initial_values(self) -> Dict[str, Any]:
        return self.controller.initial_values()
