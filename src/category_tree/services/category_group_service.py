"""
Category Group Service - configuration of category groups.

A category group owns a structure (its category tree, with an optional depth
limit), a field layout and one URL-format row per enabled locale. Saving a
group keeps those owned records and the URIs of the group's categories in
step with the group settings; deleting a group removes all of it.

Session Management Pattern:
- All public methods accept an optional `session` parameter
- If session is provided, use it directly (the caller owns the transaction)
- If session is None, the method opens and commits its own transaction

Lookups go through an injected GroupCache. Saves and deletes update or
invalidate the affected cache entries; changes made by other processes are
only seen after ``GroupCache.clear()`` or TTL expiry.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import insert
from sqlalchemy.orm import Session

from category_tree.models.category import Category
from category_tree.models.category_group import CategoryGroup, CategoryGroupLocale
from category_tree.models.structure import Structure, StructureElement
from category_tree.services.collaborators import (
    ElementStore,
    FieldLayoutStore,
    PermissionChecker,
    StructureStore,
    TemplateResolver,
)
from category_tree.services.database import session_scope, transaction_scope
from category_tree.services.dto import CategoryGroupData, FieldLayoutData, GroupLocaleData
from category_tree.services.exceptions import CategoryGroupNotFound
from category_tree.services.group_cache import MISSING, GroupCache
from category_tree.services.locale_config import LocaleDiff, diff_locales, validate_group_locales
from category_tree.services.logging_utils import get_service_logger, log_operation
from category_tree.services.permissions import StaticPermissionChecker
from category_tree.utils.constants import (
    EDIT_CATEGORIES_PERMISSION,
    ELEMENT_TYPE_CATEGORY,
    HANDLE_PATTERN,
    MAX_HANDLE_LENGTH,
    MAX_NAME_LENGTH,
    RESERVED_HANDLES,
)

logger = get_service_logger(__name__)

GroupCollection = Union[List[CategoryGroupData], Dict[Any, CategoryGroupData]]


def _index(groups: List[CategoryGroupData], index_by: Optional[str]) -> GroupCollection:
    if index_by is None:
        return list(groups)
    return {getattr(group, index_by): group for group in groups}


class CategoryGroupService:
    """CRUD and caching of category group definitions."""

    def __init__(
        self,
        elements: ElementStore,
        structures: StructureStore,
        field_layouts: FieldLayoutStore,
        permissions: Optional[PermissionChecker] = None,
        templates: Optional[TemplateResolver] = None,
        cache: Optional[GroupCache] = None,
    ):
        self._elements = elements
        self._structures = structures
        self._field_layouts = field_layouts
        self._permissions = permissions or StaticPermissionChecker()
        self._templates = templates
        self.cache = cache if cache is not None else GroupCache()

    # ========================================================================
    # Record conversion
    # ========================================================================

    def _to_data(self, record: CategoryGroup, session: Session) -> CategoryGroupData:
        layout = None
        if record.field_layout_id is not None:
            layout = self._field_layouts.get_layout_by_id(record.field_layout_id, session)

        group = CategoryGroupData(
            id=record.id,
            name=record.name,
            handle=record.handle,
            has_urls=record.has_urls,
            template=record.template,
            max_levels=record.structure.max_levels if record.structure is not None else 0,
            structure_id=record.structure_id,
            field_layout_id=record.field_layout_id,
            field_layout=layout or FieldLayoutData(),
        )
        group.set_locales(
            GroupLocaleData(
                locale=row.locale,
                url_format=row.url_format,
                nested_url_format=row.nested_url_format,
                id=row.id,
                group_id=row.group_id,
            )
            for row in record.locales
        )
        return group

    def _run(self, impl, session: Optional[Session]):
        if session is not None:
            return impl(session)
        with session_scope() as sess:
            return impl(sess)

    # ========================================================================
    # Lookups
    # ========================================================================

    def get_all_group_ids(self, session: Optional[Session] = None) -> List[int]:
        """Return every group ID in group name order."""
        cached = self.cache.get_all_ids()
        if cached is not MISSING:
            return list(cached)

        def _impl(sess: Session) -> List[int]:
            return [row[0] for row in sess.query(CategoryGroup.id).order_by(CategoryGroup.name)]

        group_ids = self._run(_impl, session)
        self.cache.put_all_ids(group_ids)
        return group_ids

    def get_all_groups(
        self, index_by: Optional[str] = None, session: Optional[Session] = None
    ) -> GroupCollection:
        """
        Return every category group in name order.

        Groups are loaded once with their structures and then served from
        the cache.

        Args:
            index_by: None for a list, or an attribute name ("id", "handle")
                to key a dict by
            session: Optional database session
        """
        groups = None
        cached_ids = self.cache.get_all_ids()
        if cached_ids is not MISSING:
            cached = [self.cache.get_group(group_id) for group_id in cached_ids]
            if all(group is not MISSING and group is not None for group in cached):
                groups = cached

        if groups is None:

            def _impl(sess: Session) -> List[CategoryGroupData]:
                records = sess.query(CategoryGroup).order_by(CategoryGroup.name).all()
                return [self._to_data(record, sess) for record in records]

            groups = self._run(_impl, session)
            for group in groups:
                self.cache.put_group(group.id, group)
            self.cache.put_all_ids([group.id for group in groups])

        return _index(groups, index_by)

    def get_editable_group_ids(self, user_id: Any, session: Optional[Session] = None) -> List[int]:
        """Return the IDs of the groups whose categories the user may edit."""
        cached = self.cache.get_editable_ids(user_id)
        if cached is not MISSING:
            return list(cached)

        editable = [
            group_id
            for group_id in self.get_all_group_ids(session=session)
            if self._permissions.check_permission(
                EDIT_CATEGORIES_PERMISSION.format(group_id=group_id), user_id
            )
        ]
        self.cache.put_editable_ids(user_id, editable)
        return editable

    def get_editable_groups(
        self, user_id: Any, index_by: Optional[str] = None, session: Optional[Session] = None
    ) -> GroupCollection:
        editable_ids = set(self.get_editable_group_ids(user_id, session=session))
        groups = [g for g in self.get_all_groups(session=session) if g.id in editable_ids]
        return _index(groups, index_by)

    def get_total_groups(self, session: Optional[Session] = None) -> int:
        return len(self.get_all_group_ids(session=session))

    def get_group_by_id(
        self, group_id: int, session: Optional[Session] = None
    ) -> Optional[CategoryGroupData]:
        """
        Return a group by ID, or None.

        Both hits and misses are cached, so asking again for an unknown ID
        does not query.
        """
        cached = self.cache.get_group(group_id)
        if cached is not MISSING:
            return cached

        def _impl(sess: Session) -> Optional[CategoryGroupData]:
            record = sess.get(CategoryGroup, group_id)
            return self._to_data(record, sess) if record is not None else None

        group = self._run(_impl, session)
        self.cache.put_group(group_id, group)
        return group

    def get_group_by_handle(
        self, handle: str, session: Optional[Session] = None
    ) -> Optional[CategoryGroupData]:
        """Return a group by handle. Always queries; the result is cached by ID."""

        def _impl(sess: Session) -> Optional[CategoryGroupData]:
            record = sess.query(CategoryGroup).filter(CategoryGroup.handle == handle).first()
            return self._to_data(record, sess) if record is not None else None

        group = self._run(_impl, session)
        if group is not None:
            self.cache.put_group(group.id, group)
        return group

    def get_group_locales(
        self, group_id: int, index_by: Optional[str] = None, session: Optional[Session] = None
    ) -> Union[List[GroupLocaleData], Dict[Any, GroupLocaleData]]:
        """Return a group's locale settings as stored, optionally keyed by an attribute."""

        def _impl(sess: Session) -> List[GroupLocaleData]:
            rows = (
                sess.query(CategoryGroupLocale)
                .filter(CategoryGroupLocale.group_id == group_id)
                .order_by(CategoryGroupLocale.id)
                .all()
            )
            return [
                GroupLocaleData(
                    locale=row.locale,
                    url_format=row.url_format,
                    nested_url_format=row.nested_url_format,
                    id=row.id,
                    group_id=row.group_id,
                )
                for row in rows
            ]

        locales = self._run(_impl, session)
        if index_by is None:
            return locales
        return {getattr(locale, index_by): locale for locale in locales}

    def _get_category_ids(self, group_id: int, session: Session) -> List[int]:
        """Category IDs of a group in tree order (unplaced categories last)."""
        rows = (
            session.query(Category.id)
            .outerjoin(StructureElement, StructureElement.element_id == Category.id)
            .filter(Category.group_id == group_id)
            .order_by(StructureElement.lft.is_(None), StructureElement.lft, Category.id)
            .all()
        )
        return [row[0] for row in rows]

    # ========================================================================
    # Validation
    # ========================================================================

    def _validate_record(self, group: CategoryGroupData, session: Session) -> bool:
        name = (group.name or "").strip()
        handle = (group.handle or "").strip()
        group.name, group.handle = name, handle

        if not name:
            group.add_error("name", "Name cannot be blank.")
        elif len(name) > MAX_NAME_LENGTH:
            group.add_error("name", f"Name should contain at most {MAX_NAME_LENGTH} characters.")

        if not handle:
            group.add_error("handle", "Handle cannot be blank.")
        elif len(handle) > MAX_HANDLE_LENGTH:
            group.add_error(
                "handle", f"Handle should contain at most {MAX_HANDLE_LENGTH} characters."
            )
        elif not HANDLE_PATTERN.match(handle):
            group.add_error("handle", f"\"{handle}\" is not a valid handle.")
        elif handle.lower() in {h.lower() for h in RESERVED_HANDLES}:
            group.add_error("handle", f"\"{handle}\" is a reserved word.")

        for attribute, value in (("name", name), ("handle", handle)):
            if not value or group.has_errors(attribute):
                continue
            query = session.query(CategoryGroup.id).filter(getattr(CategoryGroup, attribute) == value)
            if group.id is not None:
                query = query.filter(CategoryGroup.id != group.id)
            if query.first() is not None:
                label = attribute.capitalize()
                group.add_error(attribute, f'{label} "{value}" has already been taken.')

        if group.has_urls and not (group.template or "").strip():
            group.add_error("template", "Template cannot be blank.")

        if group.max_levels is None or group.max_levels < 0:
            group.add_error("max_levels", "Max Levels must be 0 or greater.")

        seen = set()
        for layout_field in group.field_layout.fields:
            if layout_field.handle in seen:
                group.add_error("field_layout", f'Field "{layout_field.handle}" appears twice.')
            seen.add(layout_field.handle)

        return not group.has_errors()

    # ========================================================================
    # Save
    # ========================================================================

    def save_group(self, group: CategoryGroupData, session: Optional[Session] = None) -> bool:
        """
        Save a category group with its structure, field layout and locales.

        Validation errors are recorded on ``group.errors`` (per-locale errors
        as ``"<attribute>-<locale>"``) and nothing is written. On update, URL
        format changes are applied to the URIs of the group's categories in
        the changed locales only.

        Args:
            group: Group to save; receives its ID, structure and layout IDs
            session: Optional database session

        Returns:
            True on success, False on validation failure

        Raises:
            CategoryGroupNotFound: If ``group.id`` is set but doesn't exist
        """
        is_new = group.id is None
        old_group: Optional[CategoryGroupData] = None

        if not is_new:

            def _snapshot(sess: Session) -> Optional[CategoryGroupData]:
                record = sess.get(CategoryGroup, group.id)
                return self._to_data(record, sess) if record is not None else None

            old_group = self._run(_snapshot, session)
            if old_group is None:
                raise CategoryGroupNotFound(group.id)

        if not group.has_urls:
            group.template = None

        group.clear_errors()
        locales_valid = validate_group_locales(group)
        record_valid = self._run(lambda sess: self._validate_record(group, sess), session)

        if not (locales_valid and record_valid):
            log_operation(
                logger,
                operation="save_group",
                outcome="validation_failed",
                level=logging.WARNING,
                group_id=group.id,
                errors=dict(group.errors),
            )
            return False

        try:
            with transaction_scope(session) as tx:
                diff = self._persist_group(group, old_group, tx.session)
        except Exception as e:
            if group.id is not None:
                self.cache.forget_group(group.id)
            if is_new:
                group.id = None
            self.cache.invalidate_lists()
            log_operation(
                logger,
                operation="save_group",
                outcome="error",
                level=logging.ERROR,
                group_id=group.id,
                error=str(e),
            )
            raise

        log_operation(
            logger,
            operation="save_group",
            outcome="success",
            group_id=group.id,
            is_new=is_new,
            changed_locales=diff.changed,
            added_locales=diff.added,
            dropped_locales=diff.dropped,
        )
        return True

    def _persist_group(
        self, group: CategoryGroupData, old_group: Optional[CategoryGroupData], session: Session
    ) -> LocaleDiff:
        is_new = old_group is None

        # Structure
        structure = None
        if old_group is not None and old_group.structure_id is not None:
            structure = self._structures.get_structure_by_id(old_group.structure_id, session)
        if structure is None:
            structure = Structure()
        structure.max_levels = group.max_levels
        self._structures.save_structure(structure, session)
        group.structure_id = structure.id

        # Field layout
        if old_group is not None and old_group.field_layout_id is not None:
            self._field_layouts.delete_layout_by_id(old_group.field_layout_id, session)
        layout = group.get_field_layout()
        layout.id = None
        layout.type = ELEMENT_TYPE_CATEGORY
        self._field_layouts.save_layout(layout, session)
        group.field_layout_id = layout.id

        # Group row
        record = CategoryGroup() if is_new else session.get(CategoryGroup, group.id)
        record.name = group.name
        record.handle = group.handle
        record.has_urls = group.has_urls
        record.template = group.template
        record.structure_id = group.structure_id
        record.field_layout_id = group.field_layout_id
        session.add(record)
        session.flush()
        group.id = record.id

        # Locales
        locales = group.get_locales()
        for locale in locales.values():
            locale.group_id = group.id
        self.cache.put_group(group.id, group)
        self.cache.invalidate_lists()

        if is_new:
            diff = LocaleDiff(added=list(locales))
        else:
            diff = diff_locales(old_group.get_locales(), locales)

        for locale_id in diff.changed:
            locale = locales[locale_id]
            session.query(CategoryGroupLocale).filter(
                CategoryGroupLocale.group_id == group.id,
                CategoryGroupLocale.locale == locale_id,
            ).update(
                {
                    CategoryGroupLocale.url_format: locale.url_format,
                    CategoryGroupLocale.nested_url_format: locale.nested_url_format,
                },
                synchronize_session=False,
            )

        if diff.added:
            session.execute(
                insert(CategoryGroupLocale),
                [
                    {
                        "group_id": group.id,
                        "locale": locale_id,
                        "url_format": locales[locale_id].url_format,
                        "nested_url_format": locales[locale_id].nested_url_format,
                    }
                    for locale_id in diff.added
                ],
            )

        if diff.dropped:
            session.query(CategoryGroupLocale).filter(
                CategoryGroupLocale.group_id == group.id,
                CategoryGroupLocale.locale.in_(diff.dropped),
            ).delete(synchronize_session=False)

        session.expire(record, ["locales"])

        if not is_new:
            self._update_category_locales(group, old_group, diff, session)

        return diff

    def _update_category_locales(
        self,
        group: CategoryGroupData,
        old_group: CategoryGroupData,
        diff: LocaleDiff,
        session: Session,
    ) -> None:
        """Bring the group's categories in line with the saved locale settings."""
        if not (diff.dropped or diff.changed or (old_group.has_urls and not group.has_urls)):
            return

        category_ids = self._get_category_ids(group.id, session)
        if not category_ids:
            return

        if diff.dropped:
            self._elements.delete_locale_data(category_ids, diff.dropped, session)

        if not group.get_locales():
            return

        if old_group.has_urls and not group.has_urls:
            self._elements.clear_uris(category_ids, session)
        elif diff.changed:
            for category_id in category_ids:
                for locale_id in diff.changed:
                    category = self._elements.get_element_by_id(
                        category_id, ELEMENT_TYPE_CATEGORY, locale_id, session
                    )
                    if category is not None:
                        self._elements.update_slug_and_uri(category, False, False, session)

    # ========================================================================
    # Delete
    # ========================================================================

    def delete_group_by_id(self, group_id: int, session: Optional[Session] = None) -> bool:
        """
        Delete a group with its field layout, categories and structure.

        Everything happens in one transaction; a failure at any step leaves
        the group untouched.

        Raises:
            CategoryGroupNotFound: If the group doesn't exist
        """
        if not group_id:
            return False

        try:
            with transaction_scope(session) as tx:
                sess = tx.session
                record = sess.get(CategoryGroup, group_id)
                if record is None:
                    raise CategoryGroupNotFound(group_id)
                structure_id = record.structure_id

                if record.field_layout_id is not None:
                    self._field_layouts.delete_layout_by_id(record.field_layout_id, sess)

                category_ids = self._get_category_ids(group_id, sess)
                if category_ids:
                    self._elements.delete_elements_by_ids(
                        category_ids,
                        sess,
                        skip_structure_ids=[structure_id] if structure_id is not None else [],
                    )

                sess.delete(record)
                sess.flush()

                if structure_id is not None:
                    self._structures.delete_structure_by_id(structure_id, sess)
        except CategoryGroupNotFound:
            raise
        except Exception as e:
            log_operation(
                logger,
                operation="delete_group",
                outcome="error",
                level=logging.ERROR,
                group_id=group_id,
                error=str(e),
            )
            raise
        finally:
            self.cache.forget_group(group_id)
            self.cache.invalidate_lists()

        log_operation(
            logger,
            operation="delete_group",
            outcome="success",
            group_id=group_id,
            category_count=len(category_ids),
        )
        return True

    # ========================================================================
    # Templates
    # ========================================================================

    def is_group_template_valid(self, group: CategoryGroupData) -> bool:
        """
        Check that the group's template exists under the site templates path.

        Always False for groups without URLs.
        """
        if not group.has_urls or not group.template or self._templates is None:
            return False

        with self._templates.use_templates_path(self._templates.site_templates_path):
            return self._templates.template_exists(group.template)
