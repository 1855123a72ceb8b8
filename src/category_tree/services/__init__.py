"""Services package - category groups and categories.

Architecture:
- Services: classes wired together by build_category_services()
- Transactions: session_scope() for reads, transaction_scope() for writes;
  every public method takes an optional caller-owned session
- Exceptions: ServiceError hierarchy; validation errors live on the data objects
- Collaborators: element, structure and field layout stores behind Protocols

Service Modules:
- category_group_service: group CRUD, locale fan-out, group cache use
- category_service: category save/move/delete, listing, gap filling
- category_deleter: descendant-aware deletion
- tree_repair: ancestor completion of ID selections
- events: before/after save and delete hooks

Infrastructure:
- database: engine, sessions, transaction scopes
- element_service, structure_service, field_layout_service: default stores
- nested_set: pure tree position arithmetic
"""

from dataclasses import dataclass
from typing import Optional

from category_tree.utils.config import get_config

from .category_group_service import CategoryGroupService
from .category_service import CategoryService
from .collaborators import PermissionChecker, TemplateResolver
from .element_service import ElementService
from .events import CategoryEvent, CategoryHooks
from .field_layout_service import FieldLayoutService
from .group_cache import GroupCache
from .structure_service import StructureService
from .template_resolver import FileSystemTemplateResolver


@dataclass
class CategoryServices:
    """The wired set of services."""

    groups: CategoryGroupService
    categories: CategoryService
    hooks: CategoryHooks
    elements: ElementService
    structures: StructureService
    field_layouts: FieldLayoutService
    cache: GroupCache


def build_category_services(
    permissions: Optional[PermissionChecker] = None,
    templates: Optional[TemplateResolver] = None,
    cache: Optional[GroupCache] = None,
    hooks: Optional[CategoryHooks] = None,
) -> CategoryServices:
    """
    Wire the default stores and the category services together.

    Args:
        permissions: Permission checker (defaults to one granting nothing)
        templates: Template resolver (defaults to the configured site templates path)
        cache: Group cache (defaults to a new cache without expiry)
        hooks: Event hooks (defaults to an empty registry)
    """
    if templates is None:
        templates = FileSystemTemplateResolver(get_config().site_templates_path)

    structures = StructureService()
    elements = ElementService(structures)
    field_layouts = FieldLayoutService()
    cache = cache if cache is not None else GroupCache()
    hooks = hooks if hooks is not None else CategoryHooks()

    groups = CategoryGroupService(
        elements,
        structures,
        field_layouts,
        permissions=permissions,
        templates=templates,
        cache=cache,
    )
    categories = CategoryService(groups, elements, structures, hooks=hooks)

    return CategoryServices(
        groups=groups,
        categories=categories,
        hooks=hooks,
        elements=elements,
        structures=structures,
        field_layouts=field_layouts,
        cache=cache,
    )


__all__ = [
    "CategoryEvent",
    "CategoryGroupService",
    "CategoryHooks",
    "CategoryService",
    "CategoryServices",
    "ElementService",
    "FieldLayoutService",
    "FileSystemTemplateResolver",
    "GroupCache",
    "StructureService",
    "build_category_services",
]
