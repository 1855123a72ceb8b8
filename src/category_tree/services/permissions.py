"""In-process permission checker.

Permissions are plain strings such as ``"editCategories:3"``. Host
applications with their own user system implement the PermissionChecker
protocol instead.
"""

from typing import Any, Dict, Iterable, Optional, Set


class StaticPermissionChecker:
    """
    Permission checker backed by a mapping of user ID to granted permissions.

    Permission keys are compared case-insensitively. Users listed in
    ``admins`` hold every permission.
    """

    def __init__(
        self,
        grants: Optional[Dict[Any, Iterable[str]]] = None,
        admins: Iterable[Any] = (),
    ):
        self._grants: Dict[Any, Set[str]] = {}
        self._admins = set(admins)
        for user_id, permissions in (grants or {}).items():
            for permission in permissions:
                self.grant(user_id, permission)

    def grant(self, user_id: Any, permission: str) -> None:
        self._grants.setdefault(user_id, set()).add(permission.lower())

    def revoke(self, user_id: Any, permission: str) -> None:
        self._grants.get(user_id, set()).discard(permission.lower())

    def check_permission(self, permission: str, user_id: Any) -> bool:
        if user_id in self._admins:
            return True
        return permission.lower() in self._grants.get(user_id, set())
