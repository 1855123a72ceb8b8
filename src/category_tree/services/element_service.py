"""
Element Service - generic element persistence and slug/URI management.

Elements are stored in three tables: ``elements`` (identity), ``element_locales``
(slug, URI and enabled flag per locale) and ``element_content`` (title and
custom field values per locale). Element types plug in a hydrator that turns
an element ID plus locale into the type's data object; the data object must
expose ``id``, ``element_type``, ``locale``, ``title``, ``slug``, ``uri``,
``enabled``, ``fields``, ``level``, ``structure_id``, ``parent``,
``get_url_format(locale)``, ``get_supported_locales()`` and ``add_error()``.

URIs are rendered from the element's URL format for the locale. When the
rendered URI is already used by another element in the same locale, the slug
gets a numeric suffix until the URI is unique.

Session Management Pattern:
- Every method takes the caller's session; the caller owns the transaction.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from category_tree.models.element import Element, ElementContent, ElementLocale
from category_tree.models.structure import StructureElement
from category_tree.services.exceptions import ElementNotFound
from category_tree.services.logging_utils import get_service_logger, log_operation
from category_tree.services.structure_service import StructureService
from category_tree.utils.constants import MAX_NAME_LENGTH
from category_tree.utils.slug_utils import generate_slug, make_unique
from category_tree.utils.url_format import format_tokens, render_url_format

logger = get_service_logger(__name__)

ElementHydrator = Callable[[int, Optional[str], Session], Optional[Any]]


class ElementService:
    """SQLAlchemy implementation of the element store."""

    def __init__(self, structures: StructureService):
        self._structures = structures
        self._hydrators: Dict[str, ElementHydrator] = {}

    def register_element_type(self, element_type: str, hydrator: ElementHydrator) -> None:
        """Register the loader used by get_element_by_id for a type tag."""
        self._hydrators[element_type] = hydrator

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def get_element_by_id(
        self,
        element_id: int,
        element_type: str,
        locale: Optional[str],
        session: Session,
    ) -> Optional[Any]:
        """
        Load an element of the given type.

        Raises:
            ValueError: If no hydrator is registered for ``element_type``
        """
        hydrator = self._hydrators.get(element_type)
        if hydrator is None:
            raise ValueError(f"Unknown element type '{element_type}'")
        return hydrator(element_id, locale, session)

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def _validate(self, element: Any) -> bool:
        title = (element.title or "").strip()
        if not title:
            element.add_error("title", "Title cannot be blank.")
        elif len(title) > MAX_NAME_LENGTH:
            element.add_error("title", f"Title should contain at most {MAX_NAME_LENGTH} characters.")
        return not element.has_errors("title")

    def save_element(self, element: Any, session: Session) -> bool:
        """
        Save an element, its content and its per-locale slug/URI rows.

        New elements get a content row and a slug/URI row in every locale they
        support. Existing elements only have their own locale's content
        replaced; the slug/URI of every supported locale is recomputed.

        Returns:
            False if the element failed validation (errors are on the element)

        Raises:
            ElementNotFound: If an existing element's row is missing
        """
        if not self._validate(element):
            log_operation(
                logger,
                operation="save_element",
                outcome="validation_failed",
                element_id=element.id,
                errors=dict(element.errors),
            )
            return False

        element.title = element.title.strip()
        is_new = element.id is None

        if is_new:
            record = Element(type=element.element_type, enabled=element.enabled)
            session.add(record)
            session.flush()
            element.id = record.id
        else:
            record = session.get(Element, element.id)
            if record is None:
                raise ElementNotFound(element.id)
            record.enabled = element.enabled

        locales = element.get_supported_locales()
        if element.locale not in locales:
            locales = [element.locale] + list(locales)

        for locale in locales:
            if locale == element.locale or is_new:
                self._save_content(element, locale, session)

        element.slug = generate_slug(element.slug or "") or generate_slug(element.title) or str(element.id)

        for locale in locales:
            row = self._get_locale_row(element.id, locale, session)
            if locale == element.locale:
                slug = element.slug
            else:
                slug = row.slug if row is not None and row.slug else element.slug
            slug, uri = self._build_uri(element, locale, slug, session)
            if locale == element.locale:
                element.slug, element.uri = slug, uri
            self._store_locale_row(element, locale, slug, uri, row, session)

        session.flush()
        log_operation(
            logger,
            operation="save_element",
            outcome="success",
            level=logging.DEBUG,
            element_id=element.id,
            is_new=is_new,
        )
        return True

    def _save_content(self, element: Any, locale: str, session: Session) -> None:
        content = (
            session.query(ElementContent)
            .filter(ElementContent.element_id == element.id, ElementContent.locale == locale)
            .first()
        )
        if content is None:
            content = ElementContent(element_id=element.id, locale=locale)
            session.add(content)
        content.title = element.title
        content.fields = dict(element.fields or {})

    def _get_locale_row(self, element_id: int, locale: str, session: Session) -> Optional[ElementLocale]:
        return (
            session.query(ElementLocale)
            .filter(ElementLocale.element_id == element_id, ElementLocale.locale == locale)
            .first()
        )

    def _store_locale_row(
        self,
        element: Any,
        locale: str,
        slug: str,
        uri: Optional[str],
        row: Optional[ElementLocale],
        session: Session,
    ) -> None:
        if row is None:
            row = ElementLocale(element_id=element.id, locale=locale, enabled=True)
            session.add(row)
        row.slug = slug
        row.uri = uri
        if locale == element.locale:
            row.enabled = element.enabled
        # Later URI uniqueness checks in this flush must see this row
        session.flush()

    # ------------------------------------------------------------------
    # Slugs and URIs
    # ------------------------------------------------------------------

    def _parent_values(self, element: Any, locale: str, session: Session) -> Dict[str, Any]:
        if not element.level or element.level <= 1:
            return {}

        if element.parent is not None:
            parent_id = element.parent.id
        elif element.structure_id is not None and element.id is not None:
            parent_id = self._structures.get_parent_id(element.structure_id, element.id, session)
        else:
            parent_id = None

        if parent_id is None:
            return {}

        row = self._get_locale_row(parent_id, locale, session)
        return {
            "parent.id": parent_id,
            "parent.slug": row.slug if row is not None else None,
            "parent.uri": row.uri if row is not None else None,
        }

    def _uri_taken(self, uri: str, locale: str, element_id: int, session: Session) -> bool:
        return (
            session.query(ElementLocale.id)
            .filter(
                ElementLocale.uri == uri,
                ElementLocale.locale == locale,
                ElementLocale.element_id != element_id,
            )
            .first()
            is not None
        )

    def _build_uri(
        self, element: Any, locale: str, slug: str, session: Session
    ) -> Tuple[str, Optional[str]]:
        """Return (slug, uri) for a locale, suffixing the slug if the URI is taken."""
        url_format = element.get_url_format(locale)
        if not url_format:
            return slug, None

        values = {"id": element.id, "level": element.level}
        values.update(self._parent_values(element, locale, session))

        def render(candidate: str) -> Optional[str]:
            return render_url_format(url_format, dict(values, slug=candidate))

        if "slug" in format_tokens(url_format):

            def taken(candidate: str) -> bool:
                uri = render(candidate)
                return uri is not None and self._uri_taken(uri, locale, element.id, session)

            slug = make_unique(slug, taken)
            return slug, render(slug)

        uri = render(slug)
        if uri is not None and self._uri_taken(uri, locale, element.id, session):
            logger.warning(f"URI '{uri}' of element {element.id} ({locale}) is not unique")
        return slug, uri

    def update_slug_and_uri(
        self,
        element: Any,
        update_other_locales: bool = True,
        update_descendants: bool = True,
        session: Session = None,
    ) -> None:
        """
        Recompute and store an element's slug and URI in its locale.

        Args:
            element: Element data object
            update_other_locales: Also recompute the element in its other locales
            update_descendants: Also recompute every descendant
            session: Caller's session
        """
        if not element.slug:
            element.slug = generate_slug(element.title or "") or str(element.id)

        row = self._get_locale_row(element.id, element.locale, session)
        slug, uri = self._build_uri(element, element.locale, element.slug, session)
        element.slug, element.uri = slug, uri
        self._store_locale_row(element, element.locale, slug, uri, row, session)

        if update_other_locales:
            for locale in element.get_supported_locales():
                if locale == element.locale:
                    continue
                other = self.get_element_by_id(element.id, element.element_type, locale, session)
                if other is not None:
                    self.update_slug_and_uri(other, False, False, session)

        if update_descendants:
            self.update_descendant_slugs_and_uris(element, session)

    def update_descendant_slugs_and_uris(self, element: Any, session: Session) -> None:
        """
        Recompute slugs and URIs of every descendant of an element.

        Descendants are processed in tree order so each parent's URI is
        current before its children embed it.
        """
        if element.id is None or element.structure_id is None:
            return

        descendant_ids = self._structures.get_descendant_ids(
            element.structure_id, element.id, session
        )
        for descendant_id in descendant_ids:
            descendant = self.get_element_by_id(
                descendant_id, element.element_type, element.locale, session
            )
            if descendant is not None:
                self.update_slug_and_uri(descendant, True, False, session)

    def clear_uris(
        self, element_ids: Iterable[int], session: Session, locales: Optional[Iterable[str]] = None
    ) -> int:
        """Null the URI of the given elements (optionally only in some locales)."""
        ids = list(element_ids)
        if not ids:
            return 0
        query = session.query(ElementLocale).filter(ElementLocale.element_id.in_(ids))
        if locales is not None:
            query = query.filter(ElementLocale.locale.in_(list(locales)))
        return query.update({ElementLocale.uri: None}, synchronize_session="fetch")

    def delete_locale_data(
        self, element_ids: Iterable[int], locales: Iterable[str], session: Session
    ) -> None:
        """Delete slug/URI and content rows of elements for the given locales."""
        ids, locale_ids = list(element_ids), list(locales)
        if not ids or not locale_ids:
            return
        for model in (ElementLocale, ElementContent):
            session.query(model).filter(
                model.element_id.in_(ids), model.locale.in_(locale_ids)
            ).delete(synchronize_session="fetch")

    # ------------------------------------------------------------------
    # Deleting
    # ------------------------------------------------------------------

    def delete_elements_by_ids(
        self,
        element_ids: Iterable[int],
        session: Session,
        skip_structure_ids: Iterable[int] = (),
    ) -> bool:
        """
        Delete elements in one batch statement.

        Tree nodes are removed first with one renumbering per structure;
        structures in ``skip_structure_ids`` are about to be deleted and are
        not renumbered. Dependent rows (per-locale data, content,
        type-specific rows) go with the element through ON DELETE CASCADE.

        Returns:
            True if any element row was deleted
        """
        ids: List[int] = list(dict.fromkeys(element_ids))
        if not ids:
            return False

        self._structures.remove_elements(ids, session, skip_structure_ids)

        deleted = (
            session.query(Element)
            .filter(Element.id.in_(ids))
            .delete(synchronize_session=False)
        )
        self._expunge_deleted(ids, session)

        log_operation(
            logger,
            operation="delete_elements",
            outcome="success" if deleted else "nothing_deleted",
            element_ids=ids,
            deleted=deleted,
        )
        return bool(deleted)

    def _expunge_deleted(self, ids: List[int], session: Session) -> None:
        """Drop instances of rows removed by the database cascade from the session."""
        id_set = set(ids)
        for obj in list(session.identity_map.values()):
            if isinstance(obj, (ElementLocale, ElementContent, StructureElement)):
                stale = obj.element_id in id_set
            else:
                stale = isinstance(obj, Element) or obj.__tablename__ == "categories"
                stale = stale and obj.id in id_set
            if stale:
                session.expunge(obj)
