"""Form Engine - Conditional field dependency engine"""
from .engine import FormEngine
from .field_graph import FieldGraph
from .condition_evaluator import ConditionEvaluator, satisfied
from .visibility_resolver import VisibilityResolver, visible_field_ids
from .hierarchy_orderer import HierarchyOrderer, ordered_view
from .value_controller import ValueConsistencyController, on_field_value_change, seed_value

__all__ = [
    "FormEngine",
    "FieldGraph",
    "ConditionEvaluator",
    "VisibilityResolver",
    "HierarchyOrderer",
    "ValueConsistencyController",
    "satisfied",
    "visible_field_ids",
    "ordered_view",
    "on_field_value_change",
    "seed_value",
]
