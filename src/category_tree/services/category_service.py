"""
Category Service - lifecycle of categories within their group's tree.

A category is an element (title, slug, URI and custom field values per
locale) that belongs to exactly one category group and sits in that group's
structure. This service saves categories (including moves within the tree),
deletes them with their descendants, lists them and repairs ID selections.

Session Management Pattern:
- All public methods accept an optional `session` parameter
- If session is provided, use it directly (the caller owns the transaction)
- If session is None, the method opens and commits its own transaction

Usage:
    services = build_category_services()
    category = CategoryData(group_id=group.id, title="Fruit", new_parent_id="")
    if not services.categories.save_category(category):
        print(category.errors)
"""

import logging
from typing import Iterable, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from category_tree.models.category import Category
from category_tree.models.element import Element, ElementContent, ElementLocale
from category_tree.models.structure import StructureElement
from category_tree.services import nested_set
from category_tree.services.category_deleter import CategoryCascadeDeleter
from category_tree.services.category_group_service import CategoryGroupService
from category_tree.services.collaborators import ElementStore, StructureStore
from category_tree.services.database import session_scope, transaction_scope
from category_tree.services.dto import CategoryData, CategoryGroupData
from category_tree.services.events import CategoryHooks
from category_tree.services.exceptions import CategoryNotFound
from category_tree.services.logging_utils import get_service_logger, log_operation
from category_tree.services.tree_repair import fill_gaps
from category_tree.utils.constants import ELEMENT_TYPE_CATEGORY

logger = get_service_logger(__name__)


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


class CategoryService:
    """Create, update, move, delete and list categories."""

    def __init__(
        self,
        groups: CategoryGroupService,
        elements: ElementStore,
        structures: StructureStore,
        hooks: Optional[CategoryHooks] = None,
    ):
        self._groups = groups
        self._elements = elements
        self._structures = structures
        self.hooks = hooks if hooks is not None else CategoryHooks()
        self._deleter = CategoryCascadeDeleter(elements, structures, self.hooks)

        register = getattr(elements, "register_element_type", None)
        if register is not None:
            register(ELEMENT_TYPE_CATEGORY, self._hydrate)

    def _run(self, impl, session: Optional[Session]):
        if session is not None:
            return impl(session)
        with session_scope() as sess:
            return impl(sess)

    # ========================================================================
    # Loading
    # ========================================================================

    def _hydrate(
        self, category_id: int, locale: Optional[str], session: Session
    ) -> Optional[CategoryData]:
        """
        Build a CategoryData from the stored rows.

        Without a locale, the group's first locale (or any stored locale) is
        used. Returns None if the category doesn't exist in the locale.
        """
        record = session.get(Category, category_id)
        if record is None:
            return None

        group = self._groups.get_group_by_id(record.group_id, session=session)

        locale_query = session.query(ElementLocale).filter(ElementLocale.element_id == category_id)
        if locale is None:
            locale_rows = {row.locale: row for row in locale_query.order_by(ElementLocale.id)}
            preferred = [code for code in (group.locales if group else {}) if code in locale_rows]
            if preferred:
                locale = preferred[0]
            elif locale_rows:
                locale = next(iter(locale_rows))
            else:
                return None
            locale_row = locale_rows[locale]
        else:
            locale_row = locale_query.filter(ElementLocale.locale == locale).first()
            if locale_row is None:
                return None

        element = session.get(Element, category_id)
        content = (
            session.query(ElementContent)
            .filter(ElementContent.element_id == category_id, ElementContent.locale == locale)
            .first()
        )
        node = session.query(StructureElement).filter(StructureElement.element_id == category_id)
        if group is not None and group.structure_id is not None:
            node = node.filter(StructureElement.structure_id == group.structure_id)
        node = node.first()

        return CategoryData(
            id=category_id,
            group_id=record.group_id,
            locale=locale,
            title=content.title if content is not None else None,
            slug=locale_row.slug,
            uri=locale_row.uri,
            enabled=bool(element.enabled and locale_row.enabled),
            fields=dict(content.fields or {}) if content is not None else {},
            lft=node.lft if node is not None else None,
            rgt=node.rgt if node is not None else None,
            level=node.level if node is not None else None,
            structure_id=node.structure_id if node is not None else None,
            group=group,
        )

    def get_category_by_id(
        self, category_id: int, locale: Optional[str] = None, session: Optional[Session] = None
    ) -> Optional[CategoryData]:
        """Return a category in a locale (its group's first locale by default), or None."""
        return self._run(
            lambda sess: self._elements.get_element_by_id(
                category_id, ELEMENT_TYPE_CATEGORY, locale, sess
            ),
            session,
        )

    def get_group_categories(
        self, group_id: int, locale: Optional[str] = None, session: Optional[Session] = None
    ) -> List[CategoryData]:
        """Return the categories of a group in tree order."""

        def _impl(sess: Session) -> List[CategoryData]:
            rows = (
                sess.query(Category.id)
                .join(StructureElement, StructureElement.element_id == Category.id)
                .filter(Category.group_id == group_id)
                .order_by(StructureElement.lft)
                .all()
            )
            categories = []
            for (category_id,) in rows:
                category = self._elements.get_element_by_id(
                    category_id, ELEMENT_TYPE_CATEGORY, locale, sess
                )
                if category is not None:
                    categories.append(category)
            return categories

        return self._run(_impl, session)

    def fill_gaps_in_category_ids(
        self, category_ids: Iterable[int], session: Optional[Session] = None
    ) -> List[int]:
        """Return the IDs in tree order with every missing ancestor added before its descendants."""
        ids = list(category_ids)
        if not ids:
            return []
        return self._run(lambda sess: fill_gaps(ids, self._structures, sess), session)

    # ========================================================================
    # Tree position
    # ========================================================================

    def _load_position(self, category: CategoryData, structure_id: int, session: Session) -> None:
        """Fill in the stored tree position of an existing category."""
        position = self._structures.get_position(structure_id, category.id, session)
        if position is not None:
            category.lft, category.rgt, category.level = position.lft, position.rgt, position.level
            category.structure_id = structure_id

    def has_new_parent(self, category: CategoryData, session: Optional[Session] = None) -> bool:
        """
        Return whether saving the category places it somewhere new in the tree.

        New categories always need placing. Otherwise a submitted
        ``new_parent_id`` counts when it moves the category between the top
        level and a nested position, or names a different parent than the
        current one.

        Raises:
            ValueError: If ``new_parent_id`` is not a number
        """
        if category.id is None:
            return True
        if category.new_parent_id is None:
            return False

        group = category.group or self._groups.get_group_by_id(category.group_id, session=session)
        if group is None or group.structure_id is None:
            return True

        def _impl(sess: Session) -> bool:
            position = self._structures.get_position(group.structure_id, category.id, sess)
            if position is None:
                return True
            if category.wants_top_level:
                return position.level != 1
            if position.level == 1:
                return True
            current_parent_id = self._structures.get_parent_id(
                group.structure_id, category.id, sess
            )
            return category.requested_parent_id() != current_parent_id

        return self._run(_impl, session)

    # ========================================================================
    # Validation
    # ========================================================================

    def _validate(
        self,
        category: CategoryData,
        group: CategoryGroupData,
        has_new_parent: bool,
        session: Session,
    ) -> bool:
        for layout_field in group.get_field_layout().fields:
            if layout_field.required and _is_blank(category.fields.get(layout_field.handle)):
                category.add_error(layout_field.handle, f"{layout_field.name} cannot be blank.")

        if has_new_parent and category.id is not None and group.structure_id is not None:
            stored = self._structures.get_position(group.structure_id, category.id, session)
            parent = category.parent
            if parent is not None and (
                parent.id == category.id
                or (
                    stored is not None
                    and parent.position is not None
                    and nested_set.is_descendant_of(parent.position, stored)
                )
            ):
                category.add_error("new_parent_id", "A category cannot be moved under itself.")
            elif group.max_levels and stored is not None:
                deepest = (
                    session.query(func.max(StructureElement.level))
                    .filter(
                        StructureElement.structure_id == group.structure_id,
                        StructureElement.lft >= stored.lft,
                        StructureElement.rgt <= stored.rgt,
                    )
                    .scalar()
                )
                if category.level + (deepest - stored.level) > group.max_levels:
                    category.add_error(
                        "new_parent_id",
                        f"This would nest categories deeper than {group.max_levels} level(s).",
                    )

        if has_new_parent and category.id is None and group.max_levels:
            if category.level > group.max_levels:
                category.add_error(
                    "new_parent_id",
                    f"Categories in this group can be at most {group.max_levels} level(s) deep.",
                )

        return not category.has_errors()

    # ========================================================================
    # Save
    # ========================================================================

    def save_category(self, category: CategoryData, session: Optional[Session] = None) -> bool:
        """
        Save a category and place it in its group's tree.

        Args:
            category: Category to save; receives its ID, slug, URI and tree position
            session: Optional database session

        Returns:
            True on success. False if validation failed (errors are on
            ``category.errors``), the element store rejected it, or a
            before-save handler cancelled the save.

        Raises:
            CategoryNotFound: If ``category.id`` or the requested parent doesn't exist
        """
        is_new = category.id is None
        category.clear_errors()

        def _prepare(sess: Session) -> Optional[tuple]:
            record = None if is_new else sess.get(Category, category.id)
            if not is_new and record is None:
                raise CategoryNotFound(category.id)
            if record is not None and record.group_id != category.group_id:
                category.add_error("group_id", "A category cannot be moved to another group.")
                return None
            try:
                requested_parent_id = category.requested_parent_id()
            except ValueError:
                category.add_error("new_parent_id", "Parent must be a category ID.")
                return None

            group = self._groups.get_group_by_id(category.group_id, session=sess)
            if group is None:
                category.add_error("group_id", "Category group does not exist.")
                return None
            category.group = group

            if not is_new and group.structure_id is not None:
                self._load_position(category, group.structure_id, sess)

            has_new_parent = self.has_new_parent(category, session=sess)
            if has_new_parent:
                parent = None
                if requested_parent_id is not None:
                    parent = self.get_category_by_id(requested_parent_id, category.locale, session=sess)
                    if parent is None:
                        raise CategoryNotFound(requested_parent_id)
                category.set_parent(parent)

            if not self._validate(category, group, has_new_parent, sess):
                return None
            return group, has_new_parent

        prepared = self._run(_prepare, session)
        if prepared is None:
            log_operation(
                logger,
                operation="save_category",
                outcome="validation_failed",
                level=logging.WARNING,
                category_id=category.id,
                errors=dict(category.errors),
            )
            return False
        group, has_new_parent = prepared

        try:
            with transaction_scope(session) as tx:
                sess = tx.session
                proceed = self.hooks.before_save(category)

                if proceed:
                    if not self._elements.save_element(category, sess):
                        tx.rollback()
                        if is_new:
                            category.id = None
                        log_operation(
                            logger,
                            operation="save_category",
                            outcome="element_rejected",
                            level=logging.WARNING,
                            errors=dict(category.errors),
                        )
                        return False

                    if is_new:
                        sess.add(Category(id=category.id, group_id=category.group_id))
                        sess.flush()

                    if has_new_parent:
                        if category.parent is None:
                            self._structures.append_to_root(group.structure_id, category, sess)
                        else:
                            self._structures.append(
                                group.structure_id, category, category.parent, sess
                            )

                    self._elements.update_descendant_slugs_and_uris(category, sess)
        except Exception as e:
            if is_new:
                category.id = None
            log_operation(
                logger,
                operation="save_category",
                outcome="error",
                level=logging.ERROR,
                group_id=category.group_id,
                error=str(e),
            )
            raise

        if not proceed:
            log_operation(
                logger,
                operation="save_category",
                outcome="cancelled",
                category_id=category.id,
            )
            return False

        self.hooks.after_save(category)
        log_operation(
            logger,
            operation="save_category",
            outcome="success",
            category_id=category.id,
            group_id=category.group_id,
            is_new=is_new,
            moved=has_new_parent,
        )
        return True

    # ========================================================================
    # Delete
    # ========================================================================

    def delete_category(
        self,
        categories: Union[CategoryData, Iterable[CategoryData]],
        session: Optional[Session] = None,
    ) -> bool:
        """
        Delete categories together with their descendants.

        The after-delete hook fires for the requested categories only, once
        everything is deleted.

        Returns:
            False if nothing was given or deleted
        """
        if isinstance(categories, CategoryData):
            categories = [categories]
        categories = list(categories)
        if not categories:
            return False

        try:
            with transaction_scope(session) as tx:
                for category in categories:
                    if category.structure_id is None:
                        group = self._groups.get_group_by_id(category.group_id, session=tx.session)
                        if group is not None and group.structure_id is not None:
                            self._load_position(category, group.structure_id, tx.session)
                deleted = self._deleter.delete(categories, tx.session)
        except Exception as e:
            log_operation(
                logger,
                operation="delete_category",
                outcome="error",
                level=logging.ERROR,
                category_ids=[c.id for c in categories],
                error=str(e),
            )
            raise

        if deleted:
            for category in categories:
                self.hooks.after_delete(category)
        return deleted

    def delete_category_by_id(
        self, category_ids: Union[int, Iterable[int]], session: Optional[Session] = None
    ) -> bool:
        """Delete categories (enabled or not) by ID; False if none of the IDs exist."""
        if isinstance(category_ids, int):
            category_ids = [category_ids]
        ids = list(category_ids)
        if not ids:
            return False

        def _impl(sess: Session) -> List[CategoryData]:
            found = []
            for category_id in ids:
                category = self._elements.get_element_by_id(
                    category_id, ELEMENT_TYPE_CATEGORY, None, sess
                )
                if category is not None:
                    found.append(category)
            return found

        categories = self._run(_impl, session)
        if not categories:
            return False
        return self.delete_category(categories, session=session)
