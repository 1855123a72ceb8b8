"""
Locale configuration rules for category groups.

Pure functions over ``GroupLocaleData``: normalizing and validating the
supplied locale settings of a group, and diffing a group's new locale set
against the stored one.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from category_tree.services.dto import CategoryGroupData, GroupLocaleData


@dataclass
class LocaleDiff:
    """
    Result of comparing stored locale settings with submitted ones.

    Attributes:
        changed: Locales present before and after whose URL formats differ
        added: Submitted locales with no stored row
        dropped: Stored locales missing from the submission
    """

    changed: List[str] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)

    def has_changes(self) -> bool:
        return bool(self.changed or self.added or self.dropped)


def validate_group_locales(group: CategoryGroupData) -> bool:
    """
    Normalize and validate every locale of a group.

    With URLs, the URL format is required and the nested URL format is
    required unless the group is limited to one level, in which case it is
    cleared. Without URLs both formats are cleared. Errors are copied to the
    group keyed ``"<attribute>-<locale>"``.

    Returns:
        True if every locale is valid
    """
    valid = True
    for locale_id, locale in group.get_locales().items():
        locale.locale = locale_id
        if group.id is not None:
            locale.group_id = group.id

        if group.has_urls:
            locale.url_format_is_required = True
            if group.max_levels == 1:
                locale.nested_url_format = None
                locale.nested_url_format_is_required = False
                attributes = ["url_format"]
            else:
                locale.nested_url_format_is_required = True
                attributes = ["url_format", "nested_url_format"]
        else:
            locale.url_format = None
            locale.nested_url_format = None
            locale.url_format_is_required = False
            locale.nested_url_format_is_required = False
            attributes = []

        locale.clear_errors()
        if not locale.validate(attributes):
            valid = False
            for attribute, messages in locale.errors.items():
                for message in messages:
                    group.add_error(f"{attribute}-{locale_id}", message)
    return valid


def diff_locales(
    old_locales: Dict[str, GroupLocaleData], new_locales: Dict[str, GroupLocaleData]
) -> LocaleDiff:
    """Compare stored locale settings with submitted ones, preserving submission order."""
    diff = LocaleDiff()
    for locale_id, new_locale in new_locales.items():
        old_locale = old_locales.get(locale_id)
        if old_locale is None:
            diff.added.append(locale_id)
        elif old_locale.formats() != new_locale.formats():
            diff.changed.append(locale_id)
    diff.dropped = [locale_id for locale_id in old_locales if locale_id not in new_locales]
    return diff
