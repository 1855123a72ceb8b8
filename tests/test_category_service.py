"""Tests for CategoryService: saving, moving and loading categories."""

import pytest

from category_tree.models import Element, StructureElement
from category_tree.services.dto import CategoryData, FieldLayoutData, FieldLayoutFieldData
from category_tree.services.events import AFTER_SAVE_CATEGORY, BEFORE_SAVE_CATEGORY
from category_tree.services.exceptions import CategoryNotFound


@pytest.fixture
def g1(services, make_group):
    """Group G1: URLs, unlimited depth, English only."""
    group = make_group(
        name="G1",
        handle="g1",
        locales={"en": ("categories/{slug}", "{parent.uri}/{slug}")},
    )
    assert services.groups.save_group(group), group.errors
    return group


def _parent_id(services, category, test_db):
    return services.structures.get_parent_id(category.structure_id, category.id, test_db)


# ============================================================================
# Creating categories
# ============================================================================


class TestCreateCategory:
    """Tests for saving new categories."""

    def test_top_level_category_gets_uri(self, services, g1):
        c1 = CategoryData(group_id=g1.id, title="C1")

        assert services.categories.save_category(c1)

        assert c1.id is not None
        assert c1.slug == "c1"
        assert c1.uri == "categories/c1"
        assert c1.level == 1

    def test_child_is_appended_under_parent(self, services, g1, add_category, test_db):
        c1 = add_category(g1, "C1")
        c2 = CategoryData(group_id=g1.id, title="C2", new_parent_id=c1.id)

        assert services.categories.save_category(c2)

        assert c2.level == c1.level + 1
        assert c2.uri == "categories/c1/c2"
        assert _parent_id(services, c2, test_db) == c1.id

    def test_children_are_appended_last(self, services, g1, add_category):
        c1 = add_category(g1, "C1")
        first = add_category(g1, "First", parent=c1)
        second = add_category(g1, "Second", parent=c1)

        assert first.lft < second.lft
        titles = [c.title for c in services.categories.get_group_categories(g1.id)]
        assert titles == ["C1", "First", "Second"]

    def test_duplicate_titles_get_unique_uris(self, services, g1, add_category):
        first = add_category(g1, "Fruit")
        second = add_category(g1, "Fruit")

        assert first.uri == "categories/fruit"
        assert second.slug == "fruit-2"
        assert second.uri == "categories/fruit-2"

    def test_content_is_copied_to_every_group_locale(self, services, make_group, add_category):
        group = make_group(
            locales={
                "en": ("topics/{slug}", "{parent.uri}/{slug}"),
                "de": ("themen/{slug}", "{parent.uri}/{slug}"),
            }
        )
        services.groups.save_group(group)
        c1 = add_category(group, "Fruit", fields={"color": "red"})

        german = services.categories.get_category_by_id(c1.id, "de")
        assert german.title == "Fruit"
        assert german.uri == "themen/fruit"
        assert german.fields == {"color": "red"}

    def test_group_without_urls_gives_no_uri(self, services, make_group, add_category):
        group = make_group(has_urls=False)
        services.groups.save_group(group)

        c1 = add_category(group, "C1")

        assert c1.slug == "c1"
        assert c1.uri is None


class TestSaveCategoryFailures:
    """Validation and lookup failures."""

    def test_blank_title_saves_nothing(self, services, g1, test_db):
        category = CategoryData(group_id=g1.id, title="  ")

        assert services.categories.save_category(category) is False

        assert category.get_error("title") == "Title cannot be blank."
        assert category.id is None
        assert test_db.query(Element).count() == 0

    def test_required_custom_field(self, services, make_group):
        group = make_group(
            field_layout=FieldLayoutData(
                fields=[FieldLayoutFieldData(handle="summary", name="Summary", required=True)]
            )
        )
        services.groups.save_group(group)

        category = CategoryData(group_id=group.id, title="C1")
        assert services.categories.save_category(category) is False
        assert category.get_error("summary") == "Summary cannot be blank."

        category.fields["summary"] = "Things"
        assert services.categories.save_category(category)
        loaded = services.categories.get_category_by_id(category.id)
        assert loaded.fields == {"summary": "Things"}

    def test_unknown_group(self, services):
        category = CategoryData(group_id=999, title="C1")
        assert services.categories.save_category(category) is False
        assert category.has_errors("group_id")

    def test_unknown_parent_raises(self, services, g1):
        category = CategoryData(group_id=g1.id, title="C1", new_parent_id=999)
        with pytest.raises(CategoryNotFound, match="999"):
            services.categories.save_category(category)

    def test_unknown_category_id_raises(self, services, g1):
        category = CategoryData(id=999, group_id=g1.id, title="C1")
        with pytest.raises(CategoryNotFound):
            services.categories.save_category(category)

    def test_max_levels_enforced_for_new_categories(self, services, make_group, add_category):
        group = make_group(max_levels=2)
        services.groups.save_group(group)
        c1 = add_category(group, "C1")
        c2 = add_category(group, "C2", parent=c1)

        c3 = CategoryData(group_id=group.id, title="C3", new_parent_id=c2.id)
        assert services.categories.save_category(c3) is False
        assert c3.has_errors("new_parent_id")
        assert c3.id is None


# ============================================================================
# Moving categories
# ============================================================================


class TestHasNewParent:
    """Tests for has_new_parent()."""

    @pytest.fixture
    def tree(self, g1, add_category):
        c1 = add_category(g1, "C1")
        c2 = add_category(g1, "C2", parent=c1)
        d1 = add_category(g1, "D1")
        return c1, c2, d1

    def _load(self, services, category, new_parent_id):
        loaded = services.categories.get_category_by_id(category.id)
        loaded.new_parent_id = new_parent_id
        return loaded

    def test_new_category(self, services, g1):
        assert services.categories.has_new_parent(CategoryData(group_id=g1.id))

    def test_no_parent_submitted(self, services, tree):
        c1, c2, _ = tree
        assert not services.categories.has_new_parent(self._load(services, c2, None))

    def test_top_level_stays_top_level(self, services, tree):
        c1, _, _ = tree
        assert not services.categories.has_new_parent(self._load(services, c1, ""))
        assert not services.categories.has_new_parent(self._load(services, c1, 0))

    def test_top_level_gets_parent(self, services, tree):
        c1, _, d1 = tree
        assert services.categories.has_new_parent(self._load(services, c1, d1.id))

    def test_nested_moves_to_top_level(self, services, tree):
        _, c2, _ = tree
        assert services.categories.has_new_parent(self._load(services, c2, ""))

    def test_same_parent(self, services, tree):
        c1, c2, _ = tree
        assert not services.categories.has_new_parent(self._load(services, c2, c1.id))

    def test_different_parent(self, services, tree):
        _, c2, d1 = tree
        assert services.categories.has_new_parent(self._load(services, c2, d1.id))


class TestMoveCategory:
    """Tests for moving categories within the tree."""

    def test_move_to_top_level_updates_descendant_uris(self, services, g1, add_category):
        c1 = add_category(g1, "C1")
        c2 = add_category(g1, "C2", parent=c1)
        c3 = add_category(g1, "C3", parent=c2)
        assert c3.uri == "categories/c1/c2/c3"

        moving = services.categories.get_category_by_id(c2.id)
        moving.new_parent_id = ""
        assert services.categories.save_category(moving)

        assert moving.level == 1
        assert moving.uri == "categories/c2"
        moved_child = services.categories.get_category_by_id(c3.id)
        assert moved_child.level == 2
        assert moved_child.uri == "categories/c2/c3"

    def test_move_under_other_parent(self, services, g1, add_category, test_db):
        c1 = add_category(g1, "C1")
        c2 = add_category(g1, "C2", parent=c1)
        d1 = add_category(g1, "D1")

        moving = services.categories.get_category_by_id(c2.id)
        moving.new_parent_id = d1.id
        assert services.categories.save_category(moving)

        assert _parent_id(services, moving, test_db) == d1.id
        assert services.categories.get_category_by_id(c2.id).uri == "categories/d1/c2"
        order = [c.title for c in services.categories.get_group_categories(g1.id)]
        assert order == ["C1", "D1", "C2"]

    def test_slug_change_updates_descendants(self, services, g1, add_category):
        c1 = add_category(g1, "C1")
        c2 = add_category(g1, "C2", parent=c1)

        renamed = services.categories.get_category_by_id(c1.id)
        renamed.slug = "First One"
        assert services.categories.save_category(renamed)

        assert renamed.uri == "categories/first-one"
        assert services.categories.get_category_by_id(c2.id).uri == "categories/first-one/c2"

    def test_move_under_itself_is_refused(self, services, g1, add_category):
        c1 = add_category(g1, "C1")

        moving = services.categories.get_category_by_id(c1.id)
        moving.new_parent_id = c1.id
        assert services.categories.save_category(moving) is False
        assert moving.has_errors("new_parent_id")

    def test_move_under_descendant_is_refused(self, services, g1, add_category):
        c1 = add_category(g1, "C1")
        c2 = add_category(g1, "C2", parent=c1)

        moving = services.categories.get_category_by_id(c1.id)
        moving.new_parent_id = c2.id
        assert services.categories.save_category(moving) is False
        assert moving.has_errors("new_parent_id")
        assert services.categories.get_category_by_id(c2.id).level == 2

    def test_move_respects_max_levels(self, services, make_group, add_category):
        group = make_group(max_levels=2)
        services.groups.save_group(group)
        c1 = add_category(group, "C1")
        add_category(group, "C2", parent=c1)
        d1 = add_category(group, "D1")

        moving = services.categories.get_category_by_id(c1.id)
        moving.new_parent_id = d1.id
        assert services.categories.save_category(moving) is False
        assert moving.has_errors("new_parent_id")

    def test_zero_string_moves_to_top_level(self, services, g1, add_category):
        c1 = add_category(g1, "C1")
        c2 = add_category(g1, "C2", parent=c1)

        moving = services.categories.get_category_by_id(c2.id)
        moving.new_parent_id = "0"
        assert services.categories.has_new_parent(moving)
        assert services.categories.save_category(moving), moving.errors

        assert moving.level == 1
        assert services.categories.get_category_by_id(c2.id).uri == "categories/c2"

    def test_non_numeric_parent_is_a_validation_error(self, services, g1, add_category):
        c1 = add_category(g1, "C1")

        moving = services.categories.get_category_by_id(c1.id)
        moving.new_parent_id = "abc"
        assert services.categories.save_category(moving) is False
        assert moving.has_errors("new_parent_id")
        assert services.categories.get_category_by_id(c1.id).level == 1

    def test_change_of_group_is_refused(self, services, g1, make_group, add_category, test_db):
        other = make_group(
            name="Other",
            handle="other",
            locales={"en": ("other/{slug}", "{parent.uri}/{slug}")},
        )
        assert services.groups.save_group(other), other.errors
        c1 = add_category(g1, "C1")

        moving = services.categories.get_category_by_id(c1.id)
        moving.group_id = other.id
        moving.new_parent_id = ""
        assert services.categories.save_category(moving) is False
        assert moving.has_errors("group_id")

        reloaded = services.categories.get_category_by_id(c1.id)
        assert reloaded.group_id == g1.id
        assert reloaded.uri == "categories/c1"
        assert test_db.query(StructureElement).filter(StructureElement.element_id == c1.id).count() == 1


# ============================================================================
# Hooks
# ============================================================================


class TestSaveHooks:
    """Before/after save hooks."""

    def test_hooks_fire_around_save(self, services, g1):
        seen = []
        services.hooks.on(BEFORE_SAVE_CATEGORY, lambda e: seen.append(("before", e.category.id)))
        services.hooks.on(AFTER_SAVE_CATEGORY, lambda e: seen.append(("after", e.category.id)))

        category = CategoryData(group_id=g1.id, title="C1")
        services.categories.save_category(category)

        assert seen == [("before", None), ("after", category.id)]

    def test_cancelled_save_returns_false(self, services, g1, test_db):
        after = []

        def cancel(event):
            event.perform_action = False

        services.hooks.on(BEFORE_SAVE_CATEGORY, cancel)
        services.hooks.on(AFTER_SAVE_CATEGORY, after.append)

        category = CategoryData(group_id=g1.id, title="C1")
        assert services.categories.save_category(category) is False

        assert category.id is None
        assert after == []
        assert test_db.query(Element).count() == 0


# ============================================================================
# Loading
# ============================================================================


class TestLoadCategories:
    """Tests for get_category_by_id() and get_group_categories()."""

    def test_get_category_defaults_to_group_locale(self, services, g1, add_category):
        c1 = add_category(g1, "C1", fields={"color": "red"})

        loaded = services.categories.get_category_by_id(c1.id)

        assert loaded.locale == "en"
        assert loaded.title == "C1"
        assert loaded.fields == {"color": "red"}
        assert loaded.group.id == g1.id
        assert (loaded.lft, loaded.rgt, loaded.level) == (c1.lft, c1.rgt, 1)

    def test_missing_category_and_locale(self, services, g1, add_category):
        c1 = add_category(g1, "C1")
        assert services.categories.get_category_by_id(999) is None
        assert services.categories.get_category_by_id(c1.id, "fr") is None

    def test_group_categories_in_tree_order(self, services, g1, add_category):
        c1 = add_category(g1, "C1")
        d1 = add_category(g1, "D1")
        add_category(g1, "C2", parent=c1)
        add_category(g1, "D2", parent=d1)

        categories = services.categories.get_group_categories(g1.id)

        assert [(c.title, c.level) for c in categories] == [
            ("C1", 1),
            ("C2", 2),
            ("D1", 1),
            ("D2", 2),
        ]
