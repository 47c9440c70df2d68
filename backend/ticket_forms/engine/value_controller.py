"""Value-Consistency Controller - Keep stored values in step with visibility"""
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from ..domain.models import FormField, ValueChangeResult
from ..domain.enums import FieldType, LIST_VALUE_TYPES
from .field_graph import FieldGraph
from .visibility_resolver import VisibilityResolver
from .hierarchy_orderer import HierarchyOrderer
from ..utils.logger import get_logger

logger = get_logger(__name__)


def seed_value(field: FormField) -> Any:
    """Empty value for a field that has just become visible"""
    if field.type in LIST_VALUE_TYPES:
        return []
    if field.type == FieldType.CHECKBOX:
        return False
    return ""


def initial_value(field: FormField) -> Any:
    """Value at ticket creation: the configured default, else the empty seed"""
    if field.default_value is not None:
        return field.default_value
    return seed_value(field)


class ValueConsistencyController:
    """
    React to one field-value change

    Compares the visible set before and after the change. Fields that
    disappear lose their stored value and are reported in ids_to_clear;
    hiding a field hides its whole subtree, so the clearing cascades.
    Fields that appear get an empty seed unless they already hold a value.

    Empty seeds evaluate exactly like missing values, so seeding never
    changes the visible set and a single pass is enough.
    """

    def __init__(self, graph: FieldGraph, resolver: Optional[VisibilityResolver] = None):
        self.graph = graph
        self.resolver = resolver or VisibilityResolver(graph)
        self._order = HierarchyOrderer(graph).ordered_ids()

    def on_field_value_change(
        self,
        values: Mapping[str, Any],
        changed_field_id: str,
        new_value: Any
    ) -> ValueChangeResult:
        """
        Apply a value change

        Args:
            values: Current value map (not modified)
            changed_field_id: Field the user edited
            new_value: Its new value

        Returns:
            New value map plus the ids to clear and the ids revealed

        Raises:
            FieldNotFoundError: If the field is not in the catalog
        """
        self.graph.require(changed_field_id)

        before = self.resolver.visible_field_ids(values)
        updated: Dict[str, Any] = dict(values)
        updated[changed_field_id] = new_value
        after = self.resolver.visible_field_ids(updated)

        ids_to_clear = [field_id for field_id in self._order if field_id in before and field_id not in after]
        revealed_ids = [field_id for field_id in self._order if field_id in after and field_id not in before]

        for field_id in ids_to_clear:
            updated.pop(field_id, None)

        for field_id in revealed_ids:
            if updated.get(field_id) is None:
                updated[field_id] = seed_value(self.graph.require(field_id))

        if ids_to_clear or revealed_ids:
            logger.debug(
                f"Value change on {changed_field_id}: "
                f"cleared {len(ids_to_clear)}, revealed {len(revealed_ids)}",
                extra={"field_id": changed_field_id}
            )

        return ValueChangeResult(
            updated_values=updated,
            ids_to_clear=ids_to_clear,
            revealed_ids=revealed_ids,
        )

    def initial_values(self) -> Dict[str, Any]:
        """Values for the fields visible on an empty ticket"""
        values: Dict[str, Any] = {}
        # Defaults can reveal or hide children, so resolve until the set settles
        visible = self.resolver.visible_field_ids(values)
        while True:
            missing = [field_id for field_id in self._order if field_id in visible and field_id not in values]
            if not missing:
                break
            for field_id in missing:
                values[field_id] = initial_value(self.graph.require(field_id))
            visible = self.resolver.visible_field_ids(values)
        return {field_id: value for field_id, value in values.items() if field_id in visible}


def on_field_value_change(
    catalog: Union[FieldGraph, Sequence[FormField]],
    values: Mapping[str, Any],
    changed_field_id: str,
    new_value: Any
) -> ValueChangeResult:
    """Value change for a catalog (list of fields) or a prebuilt graph"""
    graph = catalog if isinstance(catalog, FieldGraph) else FieldGraph(catalog)
    return ValueConsistencyController(graph).on_field_value_change(values, changed_field_id, new_value)
