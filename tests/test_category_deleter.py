"""Tests for cascade deletion of categories."""

import pytest

from category_tree.models import Category, Element, ElementLocale, StructureElement
from category_tree.services.category_deleter import CategoryCascadeDeleter
from category_tree.services.category_service import CategoryService
from category_tree.services.events import AFTER_DELETE_CATEGORY, BEFORE_DELETE_CATEGORY, CategoryHooks


class _RecordingElements:
    """Element store wrapper recording batch delete calls."""

    def __init__(self, inner):
        self._inner = inner
        self.delete_calls = []

    def delete_elements_by_ids(self, element_ids, session, **kwargs):
        ids = list(element_ids)
        self.delete_calls.append(ids)
        return self._inner.delete_elements_by_ids(ids, session, **kwargs)

    def __getattr__(self, name):
        return getattr(self._inner, name)


@pytest.fixture
def tree(services, saved_group, add_category):
    """c1 > (c2 > c3, c4) and a separate top-level d1."""
    c1 = add_category(saved_group, "C1")
    c2 = add_category(saved_group, "C2", parent=c1)
    c3 = add_category(saved_group, "C3", parent=c2)
    c4 = add_category(saved_group, "C4", parent=c1)
    d1 = add_category(saved_group, "D1")
    return {"c1": c1, "c2": c2, "c3": c3, "c4": c4, "d1": d1}


def _ids(tree, *names):
    return [tree[name].id for name in names]


class TestCollectIds:
    """Tests for CategoryCascadeDeleter.collect_ids()."""

    def test_descendants_in_decreasing_lft_then_category(self, services, tree, test_db):
        deleter = CategoryCascadeDeleter(services.elements, services.structures, CategoryHooks())
        root = services.categories.get_category_by_id(tree["c1"].id)

        assert deleter.collect_ids([root], test_db) == _ids(tree, "c4", "c3", "c2", "c1")

    def test_overlapping_requests_are_not_repeated(self, services, tree, test_db):
        deleter = CategoryCascadeDeleter(services.elements, services.structures, CategoryHooks())
        requested = [
            services.categories.get_category_by_id(tree["c1"].id),
            services.categories.get_category_by_id(tree["c2"].id),
        ]

        assert deleter.collect_ids(requested, test_db) == _ids(tree, "c4", "c3", "c2", "c1")

    def test_before_delete_fires_per_node(self, services, tree, test_db):
        hooks = CategoryHooks()
        seen = []
        hooks.on(BEFORE_DELETE_CATEGORY, lambda event: seen.append(event.category.id))
        deleter = CategoryCascadeDeleter(services.elements, services.structures, hooks)

        deleter.collect_ids([services.categories.get_category_by_id(tree["c2"].id)], test_db)

        assert seen == _ids(tree, "c3", "c2")


class TestDeleteCategory:
    """Tests for CategoryService.delete_category()."""

    def test_deletes_subtree(self, services, tree, test_db):
        assert services.categories.delete_category(tree["c1"])

        remaining = {row.id for row in test_db.query(Element).all()}
        assert remaining == {tree["d1"].id}
        assert test_db.query(Category).count() == 1
        assert test_db.query(ElementLocale).filter(ElementLocale.element_id == tree["c3"].id).count() == 0

    def test_remaining_tree_is_contiguous(self, services, saved_group, tree, test_db):
        assert services.categories.delete_category(tree["c2"])

        structure_id = saved_group.structure_id
        c1 = services.structures.get_position(structure_id, tree["c1"].id, test_db)
        c4 = services.structures.get_position(structure_id, tree["c4"].id, test_db)
        d1 = services.structures.get_position(structure_id, tree["d1"].id, test_db)

        assert (c1.lft, c1.rgt, c1.level) == (2, 5, 1)
        assert (c4.lft, c4.rgt, c4.level) == (3, 4, 2)
        assert (d1.lft, d1.rgt, d1.level) == (6, 7, 1)
        assert test_db.query(StructureElement).count() == 4

    def test_single_batch_delete(self, services, tree):
        recording = _RecordingElements(services.elements)
        categories = CategoryService(services.groups, recording, services.structures)

        assert categories.delete_category([tree["c1"], tree["d1"]])

        assert recording.delete_calls == [_ids(tree, "c4", "c3", "c2", "c1", "d1")]

    def test_after_delete_only_for_requested(self, services, tree):
        before, after = [], []
        services.hooks.on(BEFORE_DELETE_CATEGORY, lambda event: before.append(event.category.id))
        services.hooks.on(AFTER_DELETE_CATEGORY, lambda event: after.append(event.category.id))

        assert services.categories.delete_category(tree["c1"])

        assert before == _ids(tree, "c4", "c3", "c2", "c1")
        assert after == _ids(tree, "c1")

    def test_nothing_to_delete(self, services):
        assert services.categories.delete_category([]) is False

    def test_hook_failure_rolls_back(self, services, tree, test_db):
        def fail(event):
            raise RuntimeError("veto")

        services.hooks.on(BEFORE_DELETE_CATEGORY, fail)

        with pytest.raises(RuntimeError, match="veto"):
            services.categories.delete_category(tree["c1"])

        assert test_db.query(Element).count() == 5


class TestDeleteCategoryById:
    """Tests for CategoryService.delete_category_by_id()."""

    def test_single_id(self, services, tree, test_db):
        assert services.categories.delete_category_by_id(tree["c2"].id)
        assert services.categories.get_category_by_id(tree["c2"].id) is None
        assert services.categories.get_category_by_id(tree["c3"].id) is None
        assert services.categories.get_category_by_id(tree["c4"].id) is not None

    def test_several_ids(self, services, tree):
        assert services.categories.delete_category_by_id([tree["c4"].id, tree["d1"].id])
        remaining = services.categories.get_group_categories(tree["c1"].group_id)
        assert [c.title for c in remaining] == ["C1", "C2", "C3"]

    def test_unknown_ids(self, services, tree):
        assert services.categories.delete_category_by_id(999) is False
        assert services.categories.delete_category_by_id([]) is False


class TestRemoveElements:
    """Tests for StructureService.remove_elements()."""

    def _root(self, test_db, structure_id):
        return (
            test_db.query(StructureElement)
            .filter(StructureElement.structure_id == structure_id, StructureElement.element_id.is_(None))
            .one()
        )

    def test_subtree_removed_in_one_pass(self, services, saved_group, tree, test_db):
        structure_id = saved_group.structure_id

        services.structures.remove_elements(_ids(tree, "c3", "c2"), test_db)

        c1 = services.structures.get_position(structure_id, tree["c1"].id, test_db)
        d1 = services.structures.get_position(structure_id, tree["d1"].id, test_db)
        assert (c1.lft, c1.rgt) == (2, 5)
        assert (d1.lft, d1.rgt) == (6, 7)
        assert self._root(test_db, structure_id).rgt == 8

    def test_skipped_structure_is_not_renumbered(self, services, saved_group, tree, test_db):
        structure_id = saved_group.structure_id

        services.structures.remove_elements(
            _ids(tree, "d1"), test_db, skip_structure_ids=[structure_id]
        )

        assert services.structures.get_position(structure_id, tree["d1"].id, test_db) is None
        c1 = services.structures.get_position(structure_id, tree["c1"].id, test_db)
        assert (c1.lft, c1.rgt) == (2, 9)
        assert self._root(test_db, structure_id).rgt == 12

    def test_no_ids(self, services, tree, test_db):
        services.structures.remove_elements([], test_db)
        assert test_db.query(StructureElement).count() == 6
