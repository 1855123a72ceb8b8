"""Data Transfer Objects for the service layer.

These are the in-memory shapes callers build and pass to the services. The
ORM models in ``category_tree.models`` are persistence records; services copy
data between the two so that validation errors and transient request state
(``new_parent_id``, pending parent, per-locale settings) never touch the
session.

Validation errors are accumulated on each object's ``errors`` mapping, keyed
by attribute name. Per-locale group errors use ``"<attribute>-<locale>"``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from category_tree.services.nested_set import TreePosition
from category_tree.utils.constants import (
    DEFAULT_LOCALE,
    ELEMENT_TYPE_CATEGORY,
    MAX_URL_FORMAT_LENGTH,
)


class ErrorsMixin:
    """Error bookkeeping shared by the data objects."""

    errors: Dict[str, List[str]]

    def add_error(self, attribute: str, message: str) -> None:
        self.errors.setdefault(attribute, []).append(message)

    def has_errors(self, attribute: Optional[str] = None) -> bool:
        if attribute is None:
            return bool(self.errors)
        return bool(self.errors.get(attribute))

    def get_error(self, attribute: str) -> Optional[str]:
        """Return the first error message for an attribute, if any."""
        messages = self.errors.get(attribute)
        return messages[0] if messages else None

    def clear_errors(self) -> None:
        self.errors.clear()


# ============================================================================
# Locale configuration
# ============================================================================


_LOCALE_LABELS = {
    "url_format": "URL Format",
    "nested_url_format": "Nested URL Format",
}


@dataclass
class GroupLocaleData(ErrorsMixin):
    """
    URL-format settings of a category group in one locale.

    Attributes:
        locale: Locale identifier
        url_format: URI format for top-level categories
        nested_url_format: URI format for nested categories
        url_format_is_required: Set by the group service when the group has URLs
        nested_url_format_is_required: Set when nested categories are possible
    """

    locale: str
    url_format: Optional[str] = None
    nested_url_format: Optional[str] = None
    id: Optional[int] = None
    group_id: Optional[int] = None
    url_format_is_required: bool = False
    nested_url_format_is_required: bool = False
    errors: Dict[str, List[str]] = field(default_factory=dict)

    def validate(self, attributes: Iterable[str]) -> bool:
        """
        Validate the given attributes, recording errors on this object.

        Args:
            attributes: Attribute names ("url_format", "nested_url_format")

        Returns:
            True if none of the attributes has an error
        """
        valid = True
        for attribute in attributes:
            value = getattr(self, attribute)
            required = getattr(self, f"{attribute}_is_required")
            label = _LOCALE_LABELS[attribute]

            if required and not (value and value.strip()):
                self.add_error(attribute, f"{label} cannot be blank.")
                valid = False
            elif value and len(value) > MAX_URL_FORMAT_LENGTH:
                self.add_error(
                    attribute,
                    f"{label} should contain at most {MAX_URL_FORMAT_LENGTH} characters.",
                )
                valid = False
        return valid

    def formats(self) -> tuple:
        """Return (url_format, nested_url_format) for change detection."""
        return (self.url_format, self.nested_url_format)


# ============================================================================
# Field layouts
# ============================================================================


@dataclass
class FieldLayoutFieldData:
    """One custom field in a layout."""

    handle: str
    name: str
    required: bool = False
    sort_order: int = 0


@dataclass
class FieldLayoutData:
    """An ordered set of custom fields."""

    id: Optional[int] = None
    type: str = ELEMENT_TYPE_CATEGORY
    fields: List[FieldLayoutFieldData] = field(default_factory=list)

    def required_handles(self) -> List[str]:
        return [f.handle for f in self.fields if f.required]

    def get_field(self, handle: str) -> Optional[FieldLayoutFieldData]:
        for layout_field in self.fields:
            if layout_field.handle == handle:
                return layout_field
        return None


# ============================================================================
# Category groups
# ============================================================================


@dataclass
class CategoryGroupData(ErrorsMixin):
    """
    A category group as callers see it.

    Attributes:
        id: Group ID (None until saved)
        name: Display name
        handle: URL-safe identifier
        has_urls: Whether categories get URIs
        template: Template path for category URLs
        max_levels: Maximum tree depth, 0 for unlimited
        structure_id: Owned structure (set on save)
        field_layout_id: Owned field layout (set on save)
        locales: Enabled locales keyed by locale ID
        field_layout: Custom fields of the group's categories
    """

    id: Optional[int] = None
    name: str = ""
    handle: str = ""
    has_urls: bool = True
    template: Optional[str] = None
    max_levels: int = 0
    structure_id: Optional[int] = None
    field_layout_id: Optional[int] = None
    locales: Dict[str, GroupLocaleData] = field(default_factory=dict)
    field_layout: FieldLayoutData = field(default_factory=FieldLayoutData)
    errors: Dict[str, List[str]] = field(default_factory=dict)

    def get_locales(self) -> Dict[str, GroupLocaleData]:
        return self.locales

    def get_field_layout(self) -> FieldLayoutData:
        return self.field_layout

    def set_locales(self, locales: Iterable[GroupLocaleData]) -> None:
        self.locales = {locale.locale: locale for locale in locales}


# ============================================================================
# Categories
# ============================================================================


@dataclass
class CategoryData(ErrorsMixin):
    """
    A category in one locale.

    Tree position fields (lft, rgt, level, structure_id) are read from the
    group's structure; they are never written by callers.

    ``new_parent_id`` is request state: None means no parent was submitted,
    ``""``, ``0`` or ``"0"`` means "move to the top level", and anything else
    is the ID (int or numeric string) of the requested parent category.
    """

    id: Optional[int] = None
    group_id: Optional[int] = None
    locale: str = DEFAULT_LOCALE
    title: Optional[str] = None
    slug: Optional[str] = None
    uri: Optional[str] = None
    enabled: bool = True
    fields: Dict[str, Any] = field(default_factory=dict)
    new_parent_id: Optional[Union[int, str]] = None
    lft: Optional[int] = None
    rgt: Optional[int] = None
    level: Optional[int] = None
    structure_id: Optional[int] = None
    group: Optional[CategoryGroupData] = field(default=None, repr=False, compare=False)
    parent: Optional["CategoryData"] = field(default=None, repr=False, compare=False)
    errors: Dict[str, List[str]] = field(default_factory=dict, repr=False, compare=False)

    element_type = ELEMENT_TYPE_CATEGORY

    @property
    def position(self) -> Optional[TreePosition]:
        """Tree position, or None if the category is not in a tree yet."""
        if self.lft is None or self.rgt is None or self.level is None:
            return None
        return TreePosition(self.lft, self.rgt, self.level, self.structure_id)

    @property
    def wants_top_level(self) -> bool:
        """True if the request moves the category to the top level."""
        if self.new_parent_id is None:
            return False
        return not self.new_parent_id or str(self.new_parent_id).strip() in ("", "0")

    def requested_parent_id(self) -> Optional[int]:
        """
        Return the parent ID asked for by ``new_parent_id``.

        None means no parent was submitted or the top level was requested.

        Raises:
            ValueError: If ``new_parent_id`` is not a number
        """
        if self.new_parent_id is None or self.wants_top_level:
            return None
        return int(self.new_parent_id)

    def set_parent(self, parent: Optional["CategoryData"]) -> None:
        """Attach a pending parent and derive the pending level from it."""
        self.parent = parent
        self.level = parent.level + 1 if parent is not None and parent.level else 1

    def get_supported_locales(self) -> List[str]:
        """Locales this category exists in (its group's enabled locales)."""
        if self.group is not None and self.group.locales:
            return list(self.group.locales)
        return [self.locale]

    def get_url_format(self, locale: Optional[str] = None) -> Optional[str]:
        """
        Return the URL format that applies to this category in a locale.

        Nested categories use the nested format when one is set.
        """
        if self.group is None or not self.group.has_urls:
            return None

        group_locale = self.group.locales.get(locale or self.locale)
        if group_locale is None:
            return None

        if self.level is not None and self.level > 1 and group_locale.nested_url_format:
            return group_locale.nested_url_format
        return group_locale.url_format
