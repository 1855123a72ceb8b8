"""
Constants for the Category Tree application.

This module defines system-wide constants including:
- Application metadata
- Element type tags
- Permission keys
- Validation limits
"""

import re

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Category Tree"
APP_VERSION = "0.1.0"
DATABASE_VERSION = "1.0"
DATABASE_FILENAME = "category_tree.db"

# ============================================================================
# Element Types
# ============================================================================

ELEMENT_TYPE_CATEGORY = "category"

# ============================================================================
# Locales
# ============================================================================

DEFAULT_LOCALE = "en"

# ============================================================================
# Permissions
# ============================================================================

# Formatted with the category group ID
EDIT_CATEGORIES_PERMISSION = "editCategories:{group_id}"

# ============================================================================
# Validation
# ============================================================================

MAX_NAME_LENGTH = 255
MAX_HANDLE_LENGTH = 255
MAX_URL_FORMAT_LENGTH = 255

# Handles must start with a letter and contain only letters, digits and underscores
HANDLE_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*$")

RESERVED_HANDLES = frozenset(
    {
        "author",
        "authorid",
        "children",
        "content",
        "dateCreated",
        "dateUpdated",
        "enabled",
        "id",
        "level",
        "lft",
        "link",
        "locale",
        "name",
        "next",
        "parent",
        "prev",
        "ref",
        "rgt",
        "slug",
        "title",
        "uri",
        "url",
    }
)

# Extensions tried when resolving a template path
TEMPLATE_EXTENSIONS = (".html", ".twig")
