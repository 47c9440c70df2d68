"""Field Graph - Explicit dependency forest derived from the flat catalog"""
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..domain.models import FormField
from ..domain.errors import CyclicDependencyError, DuplicateFieldIdError, FieldNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class FieldGraph:
    """
    Adjacency view of a field catalog

    The catalog (flat list of fields) stays the source of truth. This view
    is built once per catalog version:

    - children: parent id -> child ids, in catalog order
    - roots: fields without a parent reference, in catalog order
    - orphans: fields whose parent reference names a missing field

    Building the graph rejects duplicate ids and parent cycles, so every
    traversal over it terminates.
    """

    def __init__(self, fields: Sequence[FormField]):
        self.fields: Tuple[FormField, ...] = tuple(fields)
        self._by_id: Dict[str, FormField] = {}
        self._children: Dict[str, List[str]] = {}
        self.roots: List[str] = []
        self.orphans: List[str] = []

        for field in self.fields:
            if field.id in self._by_id:
                logger.error(
                    f"Duplicate field id in catalog: {field.id}",
                    extra={"field_id": field.id}
                )
                raise DuplicateFieldIdError(
                    f"Field id {field.id} appears more than once",
                    details={"field_id": field.id}
                )
            self._by_id[field.id] = field

        for field in self.fields:
            parent_id = field.parent_field_id
            if parent_id is None:
                self.roots.append(field.id)
            elif parent_id in self._by_id:
                self._children.setdefault(parent_id, []).append(field.id)
            else:
                self.orphans.append(field.id)

        self._check_cycles()

    # =========================================================================
    # Construction checks
    # =========================================================================

    def _check_cycles(self) -> None:
        """Walk each parent chain once; a revisit inside a chain is a cycle"""
        settled = set()
        for field in self.fields:
            chain: List[str] = []
            on_chain = set()
            current: Optional[str] = field.id
            while current is not None and current not in settled:
                if current in on_chain:
                    cycle = chain[chain.index(current):] + [current]
                    logger.error(
                        f"Cyclic field dependency: {' -> '.join(cycle)}",
                        extra={"field_id": current}
                    )
                    raise CyclicDependencyError(
                        f"Field {current} is its own ancestor",
                        details={"cycle": cycle}
                    )
                chain.append(current)
                on_chain.add(current)
                parent_id = self._by_id[current].parent_field_id
                current = parent_id if parent_id in self._by_id else None
            settled.update(chain)

    # =========================================================================
    # Lookups
    # =========================================================================

    def __contains__(self, field_id: str) -> bool:
        return field_id in self._by_id

    def __len__(self) -> int:
        return len(self.fields)

    def get(self, field_id: str) -> Optional[FormField]:
        return self._by_id.get(field_id)

    def require(self, field_id: str) -> FormField:
        """Get field by ID or raise error"""
        field = self._by_id.get(field_id)
        if field is None:
            raise FieldNotFoundError(
                f"Field {field_id} not found",
                details={"field_id": field_id}
            )
        return field

    def parent_of(self, field_id: str) -> Optional[FormField]:
        parent_id = self.require(field_id).parent_field_id
        return self._by_id.get(parent_id) if parent_id else None

    def child_ids(self, field_id: str) -> List[str]:
        return list(self._children.get(field_id, ()))

    def children_of(self, field_id: str) -> List[FormField]:
        return [self._by_id[child_id] for child_id in self._children.get(field_id, ())]

    def has_children(self, field_id: str) -> bool:
        return bool(self._children.get(field_id))

    def is_reachable(self, field_id: str) -> bool:
        """True if the parent chain ends at a root rather than a missing field"""
        current = self.require(field_id)
        while current.parent_field_id is not None:
            parent = self._by_id.get(current.parent_field_id)
            if parent is None:
                return False
            current = parent
        return True

    # =========================================================================
    # Traversal
    # =========================================================================

    def walk(self, start_ids: Optional[Sequence[str]] = None) -> Iterator[Tuple[FormField, int]]:
        """
        Pre-order traversal yielding (field, depth)

        Starts from the roots by default. Children follow their parent
        immediately, in catalog order. Depth is relative to the start.
        """
        stack: List[Tuple[str, int]] = [
            (field_id, 0) for field_id in reversed(list(start_ids if start_ids is not None else self.roots))
        ]
        visited = set()
        while stack:
            field_id, depth = stack.pop()
            if field_id in visited:
                continue
            visited.add(field_id)
            yield self._by_id[field_id], depth
            for child_id in reversed(self._children.get(field_id, ())):
                stack.append((child_id, depth + 1))

    def descendant_ids(self, field_id: str) -> List[str]:
        """All descendants of a field in pre-order, excluding the field"""
        return [field.id for field, depth in self.walk([field_id]) if depth > 0]

    def ancestor_ids(self, field_id: str) -> List[str]:
        """Parent first, root last"""
        ancestors = []
        current = self.require(field_id).parent_field_id
        while current is not None and current in self._by_id:
            ancestors.append(current)
            current = self._by_id[current].parent_field_id
        return ancestors

    def depth_of(self, field_id: str) -> int:
        """Distance from the root of the field's tree"""
        return len(self.ancestor_ids(field_id))

    def subtree_height(self, field_id: str) -> int:
        """0 for a leaf, 1 if it only has children, 2 with grandchildren"""
        return max((depth for _, depth in self.walk([field_id])), default=0)
