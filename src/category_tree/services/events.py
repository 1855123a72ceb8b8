"""Category event hooks.

Handlers are registered per event name and called in registration order with
a ``CategoryEvent``. The before-save event is the only cancellable one: a
handler sets ``event.perform_action = False`` to stop the save. All other
events are notifications.

Usage:
    hooks = CategoryHooks()

    def keep_drafts_out(event: CategoryEvent) -> None:
        if event.category.title.startswith("Draft"):
            event.perform_action = False

    hooks.on(BEFORE_SAVE_CATEGORY, keep_drafts_out)
"""

from dataclasses import dataclass
from typing import Callable, Dict, List

from category_tree.services.dto import CategoryData
from category_tree.services.logging_utils import get_service_logger, log_operation

logger = get_service_logger(__name__)

BEFORE_SAVE_CATEGORY = "before_save_category"
AFTER_SAVE_CATEGORY = "after_save_category"
BEFORE_DELETE_CATEGORY = "before_delete_category"
AFTER_DELETE_CATEGORY = "after_delete_category"

EVENT_NAMES = (
    BEFORE_SAVE_CATEGORY,
    AFTER_SAVE_CATEGORY,
    BEFORE_DELETE_CATEGORY,
    AFTER_DELETE_CATEGORY,
)


@dataclass
class CategoryEvent:
    """
    Payload passed to category event handlers.

    Attributes:
        category: The category being saved or deleted
        perform_action: Cleared by a before-save handler to cancel the save
    """

    category: CategoryData
    perform_action: bool = True


CategoryEventHandler = Callable[[CategoryEvent], None]


class CategoryHooks:
    """Registry of category event handlers."""

    def __init__(self):
        self._handlers: Dict[str, List[CategoryEventHandler]] = {name: [] for name in EVENT_NAMES}

    def on(self, event_name: str, handler: CategoryEventHandler) -> None:
        """
        Register a handler for an event.

        Raises:
            ValueError: If the event name is unknown
        """
        if event_name not in self._handlers:
            raise ValueError(f"Unknown category event '{event_name}'")
        self._handlers[event_name].append(handler)

    def off(self, event_name: str, handler: CategoryEventHandler) -> None:
        """Unregister a handler; unknown handlers are ignored."""
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def trigger(self, event_name: str, event: CategoryEvent) -> CategoryEvent:
        """Call every handler of ``event_name`` with ``event``."""
        for handler in list(self._handlers[event_name]):
            handler(event)
        return event

    def before_save(self, category: CategoryData) -> bool:
        """Fire the before-save event; return whether the save may proceed."""
        event = self.trigger(BEFORE_SAVE_CATEGORY, CategoryEvent(category))
        if not event.perform_action:
            log_operation(
                logger,
                operation=BEFORE_SAVE_CATEGORY,
                outcome="cancelled",
                category_id=category.id,
            )
        return event.perform_action

    def after_save(self, category: CategoryData) -> None:
        self.trigger(AFTER_SAVE_CATEGORY, CategoryEvent(category))

    def before_delete(self, category: CategoryData) -> None:
        self.trigger(BEFORE_DELETE_CATEGORY, CategoryEvent(category))

    def after_delete(self, category: CategoryData) -> None:
        self.trigger(AFTER_DELETE_CATEGORY, CategoryEvent(category))
