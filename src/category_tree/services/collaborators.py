"""
Protocols for the collaborators the category services depend on.

The category services only talk to persistence, tree maintenance, field
layouts, permissions and templates through these interfaces. Default
implementations live in element_service, structure_service,
field_layout_service, permissions and template_resolver; tests and host
applications can pass their own.
"""

from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any, Iterable, List, Optional, Protocol, Union

from sqlalchemy.orm import Session

from category_tree.services.dto import FieldLayoutData
from category_tree.services.nested_set import TreePosition
from category_tree.models.structure import Structure


class ElementStore(Protocol):
    """Generic element persistence and slug/URI management."""

    def save_element(self, element: Any, session: Session) -> bool:
        """Persist the element; return False (with errors on it) if invalid."""
        ...

    def delete_elements_by_ids(
        self,
        element_ids: Iterable[int],
        session: Session,
        skip_structure_ids: Iterable[int] = (),
    ) -> bool:
        """Delete elements and everything hanging off them in one batch."""
        ...

    def get_element_by_id(
        self, element_id: int, element_type: str, locale: Optional[str], session: Session
    ) -> Optional[Any]:
        """Load an element of the given type in a locale, or None."""
        ...

    def update_slug_and_uri(
        self,
        element: Any,
        update_other_locales: bool,
        update_descendants: bool,
        session: Session,
    ) -> None:
        """Recompute and store the element's slug and URI."""
        ...

    def update_descendant_slugs_and_uris(self, element: Any, session: Session) -> None:
        """Recompute slugs and URIs of every descendant of the element."""
        ...

    def clear_uris(
        self, element_ids: Iterable[int], session: Session, locales: Optional[Iterable[str]] = None
    ) -> int:
        """Null the URIs of the elements, optionally only in some locales."""
        ...

    def delete_locale_data(
        self, element_ids: Iterable[int], locales: Iterable[str], session: Session
    ) -> None:
        """Delete the elements' per-locale rows for the given locales."""
        ...


class StructureStore(Protocol):
    """Nested-set tree primitives."""

    def get_structure_by_id(self, structure_id: int, session: Session) -> Optional[Structure]:
        ...

    def save_structure(self, structure: Structure, session: Session) -> Structure:
        ...

    def delete_structure_by_id(self, structure_id: int, session: Session) -> bool:
        ...

    def append_to_root(self, structure_id: int, element: Any, session: Session) -> None:
        ...

    def append(self, structure_id: int, element: Any, parent: Any, session: Session) -> None:
        ...

    def get_position(
        self, structure_id: int, element_id: int, session: Session
    ) -> Optional[TreePosition]:
        ...

    def get_parent_id(self, structure_id: int, element_id: int, session: Session) -> Optional[int]:
        ...

    def get_ancestor_ids(self, structure_id: int, element_id: int, session: Session) -> List[int]:
        ...

    def get_descendant_ids(
        self, structure_id: int, element_id: int, session: Session, reverse: bool = False
    ) -> List[int]:
        ...

    def remove_elements(
        self,
        element_ids: Iterable[int],
        session: Session,
        skip_structure_ids: Iterable[int] = (),
    ) -> None:
        ...


class FieldLayoutStore(Protocol):
    """Custom field layout storage."""

    def save_layout(self, layout: FieldLayoutData, session: Session) -> FieldLayoutData:
        ...

    def delete_layout_by_id(self, layout_id: int, session: Session) -> bool:
        ...

    def get_layout_by_id(self, layout_id: int, session: Session) -> Optional[FieldLayoutData]:
        ...


class PermissionChecker(Protocol):
    """Answers whether a user holds a permission."""

    def check_permission(self, permission: str, user_id: Any) -> bool:
        ...


class TemplateResolver(Protocol):
    """Looks up templates under a switchable search path."""

    templates_path: Path
    site_templates_path: Path

    def template_exists(self, path: str) -> bool:
        ...

    def use_templates_path(self, path: Union[str, Path]) -> AbstractContextManager:
        ...
