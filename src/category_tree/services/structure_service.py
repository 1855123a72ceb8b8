"""
Structure Service - nested-set tree maintenance.

Every structure has one hidden root node (level 0, no element). Top-level
elements are appended beneath it at level 1. Position arithmetic is done by
the pure functions in ``nested_set``; this service loads a structure's
positions, applies an operation and writes back the nodes that changed.

Session Management Pattern:
- Every method takes the caller's session; the caller owns the transaction.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from category_tree.models.structure import Structure, StructureElement
from category_tree.services import nested_set
from category_tree.services.exceptions import (
    InvalidTreeOperation,
    StructureNodeNotFound,
    StructureNotFound,
)
from category_tree.services.logging_utils import get_service_logger
from category_tree.services.nested_set import TreePosition

logger = get_service_logger(__name__)

_NEW_NODE = "__new__"


def _element_id(element: Union[int, Any]) -> int:
    return element if isinstance(element, int) else element.id


def _position_of(node: StructureElement) -> TreePosition:
    return TreePosition(node.lft, node.rgt, node.level, node.structure_id)


class StructureService:
    """SQLAlchemy implementation of the tree primitives."""

    # ------------------------------------------------------------------
    # Structures
    # ------------------------------------------------------------------

    def get_structure_by_id(self, structure_id: int, session: Session) -> Optional[Structure]:
        return session.get(Structure, structure_id)

    def save_structure(self, structure: Structure, session: Session) -> Structure:
        if structure.max_levels is None or structure.max_levels < 0:
            structure.max_levels = 0
        session.add(structure)
        session.flush()
        return structure

    def delete_structure_by_id(self, structure_id: int, session: Session) -> bool:
        deleted = (
            session.query(Structure)
            .filter(Structure.id == structure_id)
            .delete(synchronize_session=False)
        )
        return bool(deleted)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _get_node(
        self, structure_id: int, element_id: int, session: Session
    ) -> Optional[StructureElement]:
        return (
            session.query(StructureElement)
            .filter(
                StructureElement.structure_id == structure_id,
                StructureElement.element_id == element_id,
            )
            .first()
        )

    def get_position(
        self, structure_id: int, element_id: int, session: Session
    ) -> Optional[TreePosition]:
        node = self._get_node(structure_id, element_id, session)
        return _position_of(node) if node is not None else None

    def get_parent_id(self, structure_id: int, element_id: int, session: Session) -> Optional[int]:
        """Return the element ID of the direct parent, or None for top-level elements."""
        node = self._get_node(structure_id, element_id, session)
        if node is None:
            raise StructureNodeNotFound(structure_id, element_id)

        parent = (
            session.query(StructureElement)
            .filter(
                StructureElement.structure_id == structure_id,
                StructureElement.lft < node.lft,
                StructureElement.rgt > node.rgt,
                StructureElement.level == node.level - 1,
            )
            .first()
        )
        return parent.element_id if parent is not None else None

    def get_ancestor_ids(self, structure_id: int, element_id: int, session: Session) -> List[int]:
        """Return ancestor element IDs ordered from the top level down."""
        node = self._get_node(structure_id, element_id, session)
        if node is None:
            raise StructureNodeNotFound(structure_id, element_id)

        rows = (
            session.query(StructureElement.element_id)
            .filter(
                StructureElement.structure_id == structure_id,
                StructureElement.lft < node.lft,
                StructureElement.rgt > node.rgt,
                StructureElement.element_id.isnot(None),
            )
            .order_by(StructureElement.lft)
            .all()
        )
        return [row[0] for row in rows]

    def get_descendant_ids(
        self, structure_id: int, element_id: int, session: Session, reverse: bool = False
    ) -> List[int]:
        """
        Return descendant element IDs in tree order.

        Args:
            reverse: If True, order by lft descending (deepest/rightmost first)
        """
        node = self._get_node(structure_id, element_id, session)
        if node is None:
            raise StructureNodeNotFound(structure_id, element_id)

        order = StructureElement.lft.desc() if reverse else StructureElement.lft
        rows = (
            session.query(StructureElement.element_id)
            .filter(
                StructureElement.structure_id == structure_id,
                StructureElement.lft > node.lft,
                StructureElement.rgt < node.rgt,
            )
            .order_by(order)
            .all()
        )
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _load(
        self, structure_id: int, session: Session
    ) -> Tuple[Dict[Any, StructureElement], Dict[Any, TreePosition]]:
        nodes = (
            session.query(StructureElement)
            .filter(StructureElement.structure_id == structure_id)
            .all()
        )
        by_key = {node.id: node for node in nodes}
        positions = {node.id: _position_of(node) for node in nodes}
        return by_key, positions

    def _get_or_create_root(self, structure_id: int, session: Session) -> StructureElement:
        root = (
            session.query(StructureElement)
            .filter(
                StructureElement.structure_id == structure_id,
                StructureElement.level == 0,
            )
            .first()
        )
        if root is None:
            position = nested_set.make_root(structure_id)
            root = StructureElement(
                structure_id=structure_id,
                element_id=None,
                lft=position.lft,
                rgt=position.rgt,
                level=position.level,
            )
            session.add(root)
            session.flush()
        return root

    def _apply(
        self, nodes: Dict[Any, StructureElement], positions: Dict[Any, TreePosition]
    ) -> None:
        for key, position in positions.items():
            node = nodes[key]
            if (node.lft, node.rgt, node.level) != (position.lft, position.rgt, position.level):
                node.lft = position.lft
                node.rgt = position.rgt
                node.level = position.level

    def _check_max_levels(
        self, structure: Structure, positions: Dict[Any, TreePosition], key: Any
    ) -> None:
        if not structure.max_levels:
            return
        deepest = positions[key].level + nested_set.depth_below(positions, key)
        if deepest > structure.max_levels:
            raise InvalidTreeOperation(
                f"Structure {structure.id} allows at most {structure.max_levels} level(s)"
            )

    def append_to_root(self, structure_id: int, element: Any, session: Session) -> None:
        """Append (or move) an element to the end of the top level."""
        self.append(structure_id, element, None, session)

    def append(self, structure_id: int, element: Any, parent: Any, session: Session) -> None:
        """
        Append an element as the last child of ``parent``.

        Elements already in the structure are moved with their descendants.
        ``parent=None`` appends to the top level. If ``element`` carries tree
        position attributes they are updated to the new position.

        Raises:
            StructureNotFound: If the structure doesn't exist
            StructureNodeNotFound: If the parent is not in the structure
            InvalidTreeOperation: If the move would nest the element in itself
                or exceed the structure's max_levels
        """
        structure = self.get_structure_by_id(structure_id, session)
        if structure is None:
            raise StructureNotFound(structure_id)

        element_id = _element_id(element)
        root = self._get_or_create_root(structure_id, session)

        if parent is None:
            parent_node = root
        else:
            parent_node = self._get_node(structure_id, _element_id(parent), session)
            if parent_node is None:
                raise StructureNodeNotFound(structure_id, _element_id(parent))

        nodes, positions = self._load(structure_id, session)
        existing = self._get_node(structure_id, element_id, session)

        if existing is None:
            new_positions = nested_set.insert_last_child(positions, parent_node.id, _NEW_NODE)
            self._check_max_levels(structure, new_positions, _NEW_NODE)
            new_node_position = new_positions.pop(_NEW_NODE)
            self._apply(nodes, new_positions)
            node = StructureElement(
                structure_id=structure_id,
                element_id=element_id,
                lft=new_node_position.lft,
                rgt=new_node_position.rgt,
                level=new_node_position.level,
            )
            session.add(node)
            final_position = new_node_position
        else:
            new_positions = nested_set.move_subtree(positions, existing.id, parent_node.id)
            self._check_max_levels(structure, new_positions, existing.id)
            self._apply(nodes, new_positions)
            final_position = new_positions[existing.id]

        session.flush()

        if not isinstance(element, int) and hasattr(element, "lft"):
            element.lft = final_position.lft
            element.rgt = final_position.rgt
            element.level = final_position.level
            element.structure_id = structure_id

        logger.debug(
            f"Placed element {element_id} in structure {structure_id} at "
            f"lft={final_position.lft}, level={final_position.level}"
        )

    def remove_elements(
        self,
        element_ids: Iterable[int],
        session: Session,
        skip_structure_ids: Iterable[int] = (),
    ) -> None:
        """
        Remove the nodes of several elements from every structure they belong to.

        Each affected structure is loaded and renumbered once. A removed node
        whose whole subtree is removed as well goes with a single gap close;
        otherwise its remaining children are promoted one level.

        Args:
            element_ids: Elements to take out of their trees
            session: Caller's session
            skip_structure_ids: Structures about to be deleted; their nodes
                are deleted without renumbering
        """
        ids = list(dict.fromkeys(element_ids))
        if not ids:
            return

        skipped = set(skip_structure_ids)
        by_structure: Dict[int, List[StructureElement]] = {}
        for node in (
            session.query(StructureElement).filter(StructureElement.element_id.in_(ids)).all()
        ):
            by_structure.setdefault(node.structure_id, []).append(node)

        for structure_id, removed in by_structure.items():
            if structure_id not in skipped:
                nodes, positions = self._load(structure_id, session)
                self._apply(
                    nodes, nested_set.remove_nodes(positions, [node.id for node in removed])
                )
            for node in removed:
                session.delete(node)

        session.flush()
