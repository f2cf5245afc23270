"""Role persistence: list, save (create or full replacement), delete, default seeding."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from shelter_admin.core.exceptions import (
    NotFoundError,
    PermissionDenied,
    PersistenceError,
    ValidationError,
)
from shelter_admin.core.permissions import (
    DEFAULT_ROLE_GRANTS,
    MODULES,
    PRESET_ADMIN,
    is_protected_role,
)
from shelter_admin.schemas.role import RoleRecord
from shelter_admin.services.document_store import ROLES, DocumentStore
from shelter_admin.services.permission_matrix import PermissionMatrix, validate_role_submission
from shelter_admin.services.permission_service import PermissionService

logger = logging.getLogger(__name__)


class RoleService:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def list_roles(self) -> list[RoleRecord]:
        """All roles, newest first. Records without a name are skipped."""
        records = await self.store.query(ROLES, order_by="created_at", descending=True)
        roles = []
        for record in records:
            if not record.get("name"):
                logger.warning("Skipping invalid role record %s", record.get("id"))
                continue
            roles.append(RoleRecord.model_validate(record))
        return roles

    async def get_role(self, role_id: str) -> RoleRecord:
        record = await self.store.get(ROLES, role_id)
        if record is None:
            raise NotFoundError("Role not found")
        return RoleRecord.model_validate(record)

    async def save_role(
        self, name: str, matrix: PermissionMatrix, role_id: str | None = None
    ) -> RoleRecord:
        """Validate, then create or fully replace a role.

        Permissions are always re-derived from the current catalog, dropping
        modules or actions a stale record may still carry.
        """
        trimmed = validate_role_submission(name, matrix)
        permissions = [p.model_dump() for p in matrix.serialize(MODULES)]

        previous = await self.get_role(role_id) if role_id is not None else None
        if previous is not None and is_protected_role(previous.name) and trimmed != previous.name:
            raise PermissionDenied("System roles (Admin) cannot be renamed.")
        await self._ensure_unique_name(trimmed, role_id)

        try:
            if role_id is None:
                role_id = await self.store.create(
                    ROLES, {"name": trimmed, "permissions": permissions}
                )
            else:
                await self.store.update(
                    ROLES,
                    role_id,
                    {
                        "name": trimmed,
                        "permissions": permissions,
                        "updated_at": datetime.now(timezone.utc),
                    },
                )
        except NotFoundError:
            raise
        except PersistenceError:
            logger.exception("Error saving role '%s'", trimmed)
            raise

        PermissionService.invalidate_role_cache(trimmed)
        if previous is not None:
            PermissionService.invalidate_role_cache(previous.name)
        return await self.get_role(role_id)

    async def _ensure_unique_name(self, name: str, role_id: str | None) -> None:
        """Role names are unique, compared case-insensitively."""
        wanted = name.lower()
        for record in await self.store.query(ROLES):
            other = record.get("name") or ""
            if other.strip().lower() == wanted and record.get("id") != role_id:
                raise ValidationError(
                    "role name already exists",
                    {"name": f"A role named '{other}' already exists"},
                )

    async def delete_role(self, role_id: str, *, can_manage_roles: bool) -> None:
        """Delete a role; protected names and callers without access are refused."""
        if not can_manage_roles:
            raise PermissionDenied(
                "You do not have permission to delete roles. "
                "Only users with Role Management access can manage roles."
            )
        role = await self.get_role(role_id)
        if is_protected_role(role.name):
            raise PermissionDenied("System roles (Admin) cannot be deleted for security reasons.")

        try:
            await self.store.delete(ROLES, role_id)
        except PersistenceError:
            logger.exception("Error deleting role %s", role_id)
            raise
        PermissionService.invalidate_role_cache(role.name)
        logger.info("Deleted role '%s' (%s)", role.name, role_id)

    async def initialize_default_roles(self) -> list[str]:
        """Create any missing default role. Returns the names created."""
        existing = {role.name.lower() for role in await self.list_roles()}
        created: list[str] = []
        for name, grants in DEFAULT_ROLE_GRANTS.items():
            if name in existing:
                continue
            if grants is None:
                matrix, _ = PermissionMatrix.initialize(MODULES).apply_preset(PRESET_ADMIN)
            else:
                matrix = PermissionMatrix.from_grants(grants, MODULES)
            await self.save_role(name, matrix)
            logger.info("Created default role '%s'", name)
            created.append(name)
        return created
