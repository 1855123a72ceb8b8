"""
Nested-set arithmetic over tree positions.

A tree position is the (lft, rgt, level) triple of a node, tagged with the
structure it belongs to. Everything in this module is a pure function over
positions, so tree logic can be tested without a database. The structure
service loads the positions of a tree, applies one of the operations below
and writes back whatever changed.

Operations return a new mapping and never mutate their input.
"""

from dataclasses import dataclass, replace
from typing import Dict, Hashable, Iterable, List, Mapping, Optional

from category_tree.services.exceptions import InvalidTreeOperation


@dataclass(frozen=True)
class TreePosition:
    """Position of one node in a nested set."""

    lft: int
    rgt: int
    level: int
    structure_id: Optional[int] = None


Positions = Mapping[Hashable, TreePosition]


# ============================================================================
# Predicates
# ============================================================================


def same_tree(a: TreePosition, b: TreePosition) -> bool:
    """Return True if both positions belong to the same structure."""
    return a.structure_id == b.structure_id


def is_ancestor_of(a: TreePosition, b: TreePosition) -> bool:
    """Return True if ``a`` is an ancestor of ``b``."""
    return same_tree(a, b) and a.lft < b.lft and a.rgt > b.rgt


def is_descendant_of(a: TreePosition, b: TreePosition) -> bool:
    """Return True if ``a`` is a descendant of ``b``."""
    return is_ancestor_of(b, a)


def is_parent_of(a: TreePosition, b: TreePosition) -> bool:
    """Return True if ``a`` is the direct parent of ``b``."""
    return is_ancestor_of(a, b) and b.level == a.level + 1


def is_child_of(a: TreePosition, b: TreePosition) -> bool:
    """Return True if ``a`` is a direct child of ``b``."""
    return is_parent_of(b, a)


def is_prev_sibling_of(a: TreePosition, b: TreePosition) -> bool:
    """Return True if ``a`` sits immediately before ``b`` at the same level."""
    return same_tree(a, b) and a.level == b.level and a.rgt == b.lft - 1


def is_next_sibling_of(a: TreePosition, b: TreePosition) -> bool:
    """Return True if ``a`` sits immediately after ``b`` at the same level."""
    return same_tree(a, b) and a.level == b.level and a.lft == b.rgt + 1


def is_sibling_of(
    node: TreePosition,
    other: TreePosition,
    node_parent: Optional[TreePosition] = None,
) -> bool:
    """
    Return True if ``node`` and ``other`` share the same parent.

    Top-level nodes of one structure are always siblings, and so are adjacent
    nodes at the same level. Non-adjacent nodes need ``node_parent`` (the
    position of ``node``'s parent) to decide.

    Args:
        node: Position being tested
        other: Position to compare against
        node_parent: Optional position of ``node``'s parent

    Returns:
        True if the nodes are siblings
    """
    if not same_tree(node, other) or node.level != other.level:
        return False

    if node.level == 1:
        return True

    if is_prev_sibling_of(node, other) or is_next_sibling_of(node, other):
        return True

    if node_parent is not None:
        return is_descendant_of(other, node_parent)

    return False


def has_descendants(a: TreePosition) -> bool:
    """Return True if the node has at least one descendant."""
    return a.rgt > a.lft + 1


def descendant_count(a: TreePosition) -> int:
    """Return the number of descendants of the node."""
    return (a.rgt - a.lft - 1) // 2


def ordered_keys(positions: Positions, reverse: bool = False) -> List[Hashable]:
    """Return the keys of ``positions`` in tree order (by lft)."""
    return sorted(positions, key=lambda k: positions[k].lft, reverse=reverse)


# ============================================================================
# Arithmetic
# ============================================================================


def _require(positions: Positions, key: Hashable) -> TreePosition:
    try:
        return positions[key]
    except KeyError:
        raise InvalidTreeOperation(f"Node {key!r} is not part of the tree")


def _open_gap(positions: Positions, at: int, width: int) -> Dict[Hashable, TreePosition]:
    """Shift every boundary at or after ``at`` right by ``width``."""
    result = {}
    for key, pos in positions.items():
        lft = pos.lft + width if pos.lft >= at else pos.lft
        rgt = pos.rgt + width if pos.rgt >= at else pos.rgt
        result[key] = replace(pos, lft=lft, rgt=rgt)
    return result


def _close_gap(positions: Positions, after: int, width: int) -> Dict[Hashable, TreePosition]:
    """Shift every boundary after ``after`` left by ``width``."""
    result = {}
    for key, pos in positions.items():
        lft = pos.lft - width if pos.lft > after else pos.lft
        rgt = pos.rgt - width if pos.rgt > after else pos.rgt
        result[key] = replace(pos, lft=lft, rgt=rgt)
    return result


def make_root(structure_id: Optional[int] = None) -> TreePosition:
    """Position of a fresh hidden root node."""
    return TreePosition(lft=1, rgt=2, level=0, structure_id=structure_id)


def insert_last_child(
    positions: Positions, parent_key: Hashable, new_key: Hashable
) -> Dict[Hashable, TreePosition]:
    """
    Insert a new leaf as the last child of ``parent_key``.

    Args:
        positions: Current tree
        parent_key: Key of the parent node
        new_key: Key of the node to insert (must not be in the tree yet)

    Returns:
        New mapping including ``new_key``

    Raises:
        InvalidTreeOperation: If the parent is missing or the key already exists
    """
    parent = _require(positions, parent_key)
    if new_key in positions:
        raise InvalidTreeOperation(f"Node {new_key!r} is already part of the tree")

    at = parent.rgt
    result = _open_gap(positions, at, 2)
    result[new_key] = TreePosition(
        lft=at, rgt=at + 1, level=parent.level + 1, structure_id=parent.structure_id
    )
    return result


def move_subtree(
    positions: Positions, node_key: Hashable, new_parent_key: Hashable
) -> Dict[Hashable, TreePosition]:
    """
    Move a node and its descendants to become the last child of another node.

    Args:
        positions: Current tree
        node_key: Key of the node to move
        new_parent_key: Key of the new parent

    Returns:
        New mapping with the subtree relocated

    Raises:
        InvalidTreeOperation: If the move targets the node itself or one of
            its descendants
    """
    node = _require(positions, node_key)
    new_parent = _require(positions, new_parent_key)

    if node_key == new_parent_key or is_ancestor_of(node, new_parent):
        raise InvalidTreeOperation("Cannot move a node under itself or one of its descendants")

    width = node.rgt - node.lft + 1
    subtree = {k: p for k, p in positions.items() if node.lft <= p.lft <= node.rgt}
    rest = {k: p for k, p in positions.items() if k not in subtree}

    rest = _close_gap(rest, node.rgt, width)
    at = rest[new_parent_key].rgt
    rest = _open_gap(rest, at, width)

    offset = at - node.lft
    level_delta = new_parent.level + 1 - node.level
    for key, pos in subtree.items():
        rest[key] = replace(
            pos,
            lft=pos.lft + offset,
            rgt=pos.rgt + offset,
            level=pos.level + level_delta,
        )
    return rest


def remove_node(positions: Positions, node_key: Hashable) -> Dict[Hashable, TreePosition]:
    """
    Remove one node, promoting its children to its place.

    Args:
        positions: Current tree
        node_key: Key of the node to remove

    Returns:
        New mapping without ``node_key``
    """
    node = _require(positions, node_key)
    result = {}

    for key, pos in positions.items():
        if key == node_key:
            continue
        if node.lft < pos.lft < node.rgt:
            result[key] = replace(pos, lft=pos.lft - 1, rgt=pos.rgt - 1, level=pos.level - 1)
            continue
        lft = pos.lft - 2 if pos.lft > node.rgt else pos.lft
        rgt = pos.rgt - 2 if pos.rgt > node.rgt else pos.rgt
        result[key] = replace(pos, lft=lft, rgt=rgt)

    return result


def remove_subtree(positions: Positions, node_key: Hashable) -> Dict[Hashable, TreePosition]:
    """
    Remove a node together with all of its descendants.

    Returns:
        New mapping without the subtree; the gap is closed in one shift
    """
    node = _require(positions, node_key)
    rest = {
        key: pos
        for key, pos in positions.items()
        if not (node.lft <= pos.lft and pos.rgt <= node.rgt)
    }
    return _close_gap(rest, node.rgt, node.rgt - node.lft + 1)


def remove_nodes(
    positions: Positions, node_keys: Iterable[Hashable]
) -> Dict[Hashable, TreePosition]:
    """
    Remove several nodes at once.

    A node removed together with its whole subtree goes in a single gap
    close. A node whose subtree is only partly removed has its remaining
    children promoted, as with ``remove_node``.

    Args:
        positions: Current tree
        node_keys: Keys of the nodes to remove

    Returns:
        New mapping without any of ``node_keys``
    """
    doomed = set(node_keys)
    for key in doomed:
        _require(positions, key)

    result = dict(positions)
    for key in ordered_keys({k: positions[k] for k in doomed}):
        if key not in result:
            continue
        node = result[key]
        subtree = {k for k, pos in result.items() if node.lft <= pos.lft and pos.rgt <= node.rgt}
        if subtree <= doomed:
            result = remove_subtree(result, key)
        else:
            result = remove_node(result, key)
    return result


def depth_below(positions: Positions, node_key: Hashable) -> int:
    """Return how many levels the subtree of ``node_key`` spans below it."""
    node = _require(positions, node_key)
    deepest = node.level
    for pos in positions.values():
        if node.lft < pos.lft < node.rgt:
            deepest = max(deepest, pos.level)
    return deepest - node.level
