"""
Cascade deletion of categories.

Deleting a category deletes its whole subtree. Descendants are visited
deepest/rightmost first (descending lft) and announced through the
before-delete hook one by one, then everything is removed with a single
batch call to the element store.
"""

from typing import Iterable, List

from sqlalchemy.orm import Session

from category_tree.services.collaborators import ElementStore, StructureStore
from category_tree.services.dto import CategoryData
from category_tree.services.events import CategoryHooks
from category_tree.services.logging_utils import get_service_logger, log_operation

logger = get_service_logger(__name__)


class CategoryCascadeDeleter:
    """Collects a set of categories with their descendants and deletes them."""

    def __init__(self, elements: ElementStore, structures: StructureStore, hooks: CategoryHooks):
        self._elements = elements
        self._structures = structures
        self._hooks = hooks

    def collect_ids(self, categories: Iterable[CategoryData], session: Session) -> List[int]:
        """
        Return the IDs to delete, descendants before their ancestor.

        Fires the before-delete hook for every category in the returned
        order. An ID reached twice (a requested category that is also a
        descendant of another requested one) is kept at its first position.
        """
        collected: List[int] = []
        seen = set()

        for category in categories:
            if category.structure_id is not None:
                descendant_ids = self._structures.get_descendant_ids(
                    category.structure_id, category.id, session, reverse=True
                )
            else:
                descendant_ids = []

            for descendant_id in descendant_ids:
                if descendant_id in seen:
                    continue
                descendant = self._elements.get_element_by_id(
                    descendant_id, category.element_type, category.locale, session
                )
                if descendant is not None:
                    self._hooks.before_delete(descendant)
                collected.append(descendant_id)
                seen.add(descendant_id)

            if category.id not in seen:
                self._hooks.before_delete(category)
                collected.append(category.id)
                seen.add(category.id)

        return collected

    def delete(self, categories: Iterable[CategoryData], session: Session) -> bool:
        """Delete the categories and all their descendants in the caller's session."""
        category_ids = self.collect_ids(categories, session)
        if not category_ids:
            return False

        deleted = self._elements.delete_elements_by_ids(category_ids, session)
        log_operation(
            logger,
            operation="delete_categories",
            outcome="success" if deleted else "nothing_deleted",
            category_ids=category_ids,
        )
        return deleted
