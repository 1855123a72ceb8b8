"""
Group cache - process-local cache of category group lookups.

Caches groups by ID (including "no such group" results), the list of all
group IDs and the editable group IDs per user. Entries optionally expire
after a TTL; writes through CategoryGroupService invalidate the affected
entries explicitly.
"""

import copy
import threading
import time
from typing import Any, Dict, List, Optional, Tuple

from category_tree.services.dto import CategoryGroupData

MISSING = object()

_ALL_IDS_KEY = "all_ids"
_GROUP_PREFIX = "group:"
_EDITABLE_PREFIX = "editable:"


class GroupCache:
    """
    Thread-safe cache for category group lookups.

    ``get_group`` returns ``MISSING`` on a cache miss so that a cached
    ``None`` (known not to exist) can be told apart from an unknown ID.
    """

    def __init__(self, ttl_seconds: Optional[float] = None):
        self.cache: Dict[str, Tuple[Any, float]] = {}
        self.ttl = ttl_seconds
        self.lock = threading.RLock()

    # ------------------------------------------------------------------
    # Generic storage
    # ------------------------------------------------------------------

    def _expired(self, timestamp: float) -> bool:
        return self.ttl is not None and time.time() - timestamp >= self.ttl

    def get(self, key: str) -> Any:
        """Get a cached value, or MISSING if absent or expired."""
        with self.lock:
            if key in self.cache:
                value, timestamp = self.cache[key]
                if not self._expired(timestamp):
                    return value
                del self.cache[key]
            return MISSING

    def put(self, key: str, value: Any) -> None:
        with self.lock:
            self.cache[key] = (value, time.time())

    def invalidate(self, pattern: str = None) -> None:
        """Remove cache entries, optionally only keys containing ``pattern``."""
        with self.lock:
            if pattern is None:
                self.cache.clear()
            else:
                for key in [k for k in self.cache if pattern in k]:
                    del self.cache[key]

    def clear(self) -> None:
        self.invalidate()

    def size(self) -> int:
        with self.lock:
            for key in [k for k, (_, ts) in self.cache.items() if self._expired(ts)]:
                del self.cache[key]
            return len(self.cache)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def get_group(self, group_id: int) -> Any:
        """Return a private copy of the cached group (None, or MISSING on a miss)."""
        group = self.get(f"{_GROUP_PREFIX}{group_id}")
        if group is MISSING or group is None:
            return group
        return copy.deepcopy(group)

    def put_group(self, group_id: int, group: Optional[CategoryGroupData]) -> None:
        # Callers keep editing their own objects; only a snapshot is stored
        self.put(f"{_GROUP_PREFIX}{group_id}", copy.deepcopy(group))

    def forget_group(self, group_id: int) -> None:
        with self.lock:
            self.cache.pop(f"{_GROUP_PREFIX}{group_id}", None)

    def get_all_ids(self) -> Any:
        return self.get(_ALL_IDS_KEY)

    def put_all_ids(self, group_ids: List[int]) -> None:
        self.put(_ALL_IDS_KEY, list(group_ids))

    def get_editable_ids(self, user_id: Any) -> Any:
        return self.get(f"{_EDITABLE_PREFIX}{user_id}")

    def put_editable_ids(self, user_id: Any, group_ids: List[int]) -> None:
        self.put(f"{_EDITABLE_PREFIX}{user_id}", list(group_ids))

    def invalidate_lists(self) -> None:
        """Drop the all-IDs list and every user's editable IDs."""
        with self.lock:
            self.cache.pop(_ALL_IDS_KEY, None)
        self.invalidate(_EDITABLE_PREFIX)
