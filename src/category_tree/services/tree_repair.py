"""
Tree repair - complete a category ID selection with missing ancestors.

Given an arbitrary set of category IDs (for example the categories ticked in
a relation field), ``fill_gaps`` returns them in tree order with every
missing ancestor inserted right before the first category that needs it, so
the selection can be rendered as a tree.
"""

from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from category_tree.models.category import Category
from category_tree.models.structure import StructureElement
from category_tree.services import nested_set
from category_tree.services.collaborators import StructureStore
from category_tree.services.nested_set import TreePosition


def _load_positions(category_ids: List[int], session: Session) -> List[tuple]:
    """(category_id, TreePosition) pairs ordered by structure, then lft."""
    rows = (
        session.query(
            StructureElement.element_id,
            StructureElement.lft,
            StructureElement.rgt,
            StructureElement.level,
            StructureElement.structure_id,
        )
        .join(Category, Category.id == StructureElement.element_id)
        .filter(StructureElement.element_id.in_(category_ids))
        .order_by(StructureElement.structure_id, StructureElement.lft)
        .all()
    )
    return [(row[0], TreePosition(row[1], row[2], row[3], row[4])) for row in rows]


def _parent_position(
    category_id: int, position: TreePosition, structures: StructureStore, session: Session
) -> Optional[TreePosition]:
    parent_id = structures.get_parent_id(position.structure_id, category_id, session)
    if parent_id is None:
        return None
    return structures.get_position(position.structure_id, parent_id, session)


def _continues_from(
    category_id: int,
    position: TreePosition,
    previous: TreePosition,
    structures: StructureStore,
    session: Session,
) -> bool:
    """True if the category is a sibling or child of the previous one."""
    if nested_set.is_child_of(position, previous):
        return True
    if not nested_set.same_tree(position, previous) or position.level != previous.level:
        return False
    if nested_set.is_sibling_of(position, previous):
        return True
    parent = _parent_position(category_id, position, structures, session)
    return parent is not None and nested_set.is_sibling_of(position, previous, parent)


def fill_gaps(
    category_ids: Iterable[int], structures: StructureStore, session: Session
) -> List[int]:
    """
    Return the categories in tree order with their missing ancestors added.

    Ancestors are inserted root first, directly before the category that
    needed them. IDs are never repeated, so the result is stable when fed
    back in. IDs that are not placed categories are dropped.

    Args:
        category_ids: Selected category IDs, in any order
        structures: Structure store used for ancestor lookups
        session: Database session

    Returns:
        Ordered list of category IDs
    """
    ids = list(dict.fromkeys(category_ids))
    if not ids:
        return []

    result: List[int] = []
    emitted = set()
    previous: Optional[TreePosition] = None

    for category_id, position in _load_positions(ids, session):
        if position.level != 1 and (
            previous is None
            or not _continues_from(category_id, position, previous, structures, session)
        ):
            for ancestor_id in structures.get_ancestor_ids(
                position.structure_id, category_id, session
            ):
                if ancestor_id not in emitted:
                    result.append(ancestor_id)
                    emitted.add(ancestor_id)

        if category_id not in emitted:
            result.append(category_id)
            emitted.add(category_id)
        previous = position

    return result
