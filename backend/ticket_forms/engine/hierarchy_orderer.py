"""Hierarchy Orderer - Parent-before-child render order"""
from typing import AbstractSet, List, Optional, Sequence, Union

from ..domain.models import FormField, OrderedField
from .field_graph import FieldGraph


class HierarchyOrderer:
    """
    Pre-order traversal of the dependency forest

    Roots come in catalog order and every field is immediately followed by
    its subtree, children in catalog order. The order ignores visibility;
    callers intersect it with the visible set.
    """

    def __init__(self, graph: FieldGraph):
        self.graph = graph

    def ordered_view(self, include_orphans: bool = False) -> List[OrderedField]:
        """
        Build the render order

        Args:
            include_orphans: Append fields whose parent is missing (builder
                canvas), each followed by its own subtree

        Returns:
            OrderedField entries annotated with nesting depth
        """
        view = [
            OrderedField(
                field=field,
                nesting_level=depth,
                has_children=self.graph.has_children(field.id),
            )
            for field, depth in self.graph.walk()
        ]

        if include_orphans:
            for orphan_id in self.graph.orphans:
                # Stored level of the orphan is the best depth we have
                base_level = self.graph.require(orphan_id).nesting_level
                for field, depth in self.graph.walk([orphan_id]):
                    view.append(OrderedField(
                        field=field,
                        nesting_level=base_level + depth,
                        has_children=self.graph.has_children(field.id),
                        orphaned=True,
                    ))

        return view

    def ordered_ids(self) -> List[str]:
        return [field.id for field, _ in self.graph.walk()]

    def filter_visible(
        self,
        visible_ids: AbstractSet[str],
        view: Optional[List[OrderedField]] = None
    ) -> List[OrderedField]:
        """Keep the entries whose field is in the visible set, preserving order"""
        entries = view if view is not None else self.ordered_view()
        return [entry for entry in entries if entry.field.id in visible_ids]


def ordered_view(catalog: Union[FieldGraph, Sequence[FormField]]) -> List[OrderedField]:
    """Render order for a catalog (list of fields) or a prebuilt graph"""
    graph = catalog if isinstance(catalog, FieldGraph) else FieldGraph(catalog)
    return HierarchyOrderer(graph).ordered_view()
