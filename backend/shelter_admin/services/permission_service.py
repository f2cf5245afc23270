"""Centralized permission checking. All route handlers should use this."""

from __future__ import annotations

import time

from shelter_admin.core.exceptions import PermissionDenied
from shelter_admin.core.permissions import MODULES
from shelter_admin.schemas.role import RoleRecord
from shelter_admin.schemas.user import UserRecord
from shelter_admin.services.document_store import ROLES, DocumentStore
from shelter_admin.services.permission_matrix import PermissionMatrix


class PermissionService:
    """Answers "may this user do X" from the permissions of the user's role."""

    # role name → (matrix, timestamp)
    _role_cache: dict[str, tuple[PermissionMatrix, float]] = {}
    CACHE_TTL = 300  # 5 minutes

    @staticmethod
    async def load_role_matrix(store: DocumentStore, role_name: str) -> PermissionMatrix | None:
        """Load a role's permissions by name, with caching."""
        now = time.time()
        cached = PermissionService._role_cache.get(role_name)
        if cached and (now - cached[1]) < PermissionService.CACHE_TTL:
            return cached[0]

        records = await store.query(ROLES, {"name": role_name}, limit=1)
        if not records:
            return None
        matrix = PermissionMatrix.initialize(MODULES, RoleRecord.model_validate(records[0]))
        PermissionService._role_cache[role_name] = (matrix, now)
        return matrix

    @staticmethod
    def invalidate_role_cache(role_name: str | None = None) -> None:
        if role_name is None:
            PermissionService._role_cache.clear()
        else:
            PermissionService._role_cache.pop(role_name, None)

    @staticmethod
    async def has_permission(
        store: DocumentStore, user: UserRecord, module: str, action: str
    ) -> bool:
        matrix = await PermissionService.load_role_matrix(store, user.role)
        if matrix is None:
            return False
        return matrix.is_enabled(module, action)

    @staticmethod
    async def has_module_access(store: DocumentStore, user: UserRecord, module: str) -> bool:
        """True if any action of ``module`` is enabled for the user's role."""
        matrix = await PermissionService.load_role_matrix(store, user.role)
        if matrix is None or module not in {m.name for m in matrix.catalog}:
            return False
        return matrix.count_selected(module) > 0

    @staticmethod
    async def require_permission(
        store: DocumentStore, user: UserRecord, module: str, action: str
    ) -> None:
        if not await PermissionService.has_permission(store, user, module, action):
            raise PermissionDenied(f"You do not have the '{action}' permission in {module}.")

    @staticmethod
    async def require_module_access(store: DocumentStore, user: UserRecord, module: str) -> None:
        if not await PermissionService.has_module_access(store, user, module):
            raise PermissionDenied(f"You do not have access to {module}.")
