"""Tests for completing category ID selections with their ancestors."""

import pytest

from category_tree.services.tree_repair import fill_gaps


@pytest.fixture
def tree(saved_group, add_category):
    """
    a
      a1
      a2
      a3
    b
      b1
        b11
    """
    a = add_category(saved_group, "A")
    a1 = add_category(saved_group, "A1", parent=a)
    a2 = add_category(saved_group, "A2", parent=a)
    a3 = add_category(saved_group, "A3", parent=a)
    b = add_category(saved_group, "B")
    b1 = add_category(saved_group, "B1", parent=b)
    b11 = add_category(saved_group, "B11", parent=b1)
    return {c.title.lower(): c.id for c in (a, a1, a2, a3, b, b1, b11)}


@pytest.fixture
def fill(services, test_db):
    def _fill(ids):
        return fill_gaps(ids, services.structures, test_db)

    return _fill


def _ids(tree, *names):
    return [tree[name] for name in names]


class TestFillGaps:
    """Tests for fill_gaps()."""

    def test_empty(self, fill):
        assert fill([]) == []

    def test_grandchild_gets_both_ancestors(self, tree, fill):
        assert fill(_ids(tree, "b11")) == _ids(tree, "b", "b1", "b11")

    def test_child_after_parent_needs_nothing(self, tree, fill):
        assert fill(_ids(tree, "a2", "a")) == _ids(tree, "a", "a2")

    def test_non_adjacent_siblings_share_one_parent(self, tree, fill):
        assert fill(_ids(tree, "a3", "a1")) == _ids(tree, "a", "a1", "a3")

    def test_cousins_get_their_own_parents(self, tree, fill):
        assert fill(_ids(tree, "b1", "a1")) == _ids(tree, "a", "a1", "b", "b1")

    def test_top_level_in_tree_order(self, tree, fill):
        assert fill(_ids(tree, "b", "a")) == _ids(tree, "a", "b")

    def test_duplicates_and_unknown_ids_dropped(self, tree, fill):
        assert fill(_ids(tree, "a1", "a1") + [999]) == _ids(tree, "a", "a1")

    def test_idempotent(self, tree, fill):
        once = fill(_ids(tree, "b11", "a2", "a3"))
        assert fill(once) == once

    def test_result_is_ancestor_closed(self, services, saved_group, tree, fill, test_db):
        result = fill(_ids(tree, "a2", "b11"))
        for category_id in result:
            ancestors = services.structures.get_ancestor_ids(
                saved_group.structure_id, category_id, test_db
            )
            for ancestor_id in ancestors:
                assert result.index(ancestor_id) < result.index(category_id)


class TestFillGapsInCategoryIds:
    """Tests for CategoryService.fill_gaps_in_category_ids()."""

    def test_through_service(self, services, tree):
        ids = services.categories.fill_gaps_in_category_ids(_ids(tree, "b11", "a1"))
        assert ids == _ids(tree, "a", "a1", "b", "b1", "b11")

    def test_empty(self, services):
        assert services.categories.fill_gaps_in_category_ids([]) == []
