from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shelter_admin.core.security import decode_access_token
from shelter_admin.database import get_db
from shelter_admin.schemas.user import UserRecord
from shelter_admin.services.document_store import USERS, DocumentStore, SqlDocumentStore
from shelter_admin.services.notification_service import NotificationService
from shelter_admin.services.role_service import RoleService
from shelter_admin.services.user_service import UserService


async def get_store(db: AsyncSession = Depends(get_db)) -> DocumentStore:
    return SqlDocumentStore(db)


async def get_current_user(
    request: Request, store: DocumentStore = Depends(get_store)
) -> UserRecord:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    user_id = decode_access_token(auth[7:])
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    record = await store.get(USERS, user_id)
    if record is None or not record.get("is_active", True):
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return UserRecord.model_validate(record)


def get_role_service(store: DocumentStore = Depends(get_store)) -> RoleService:
    return RoleService(store)


def get_notification_service(store: DocumentStore = Depends(get_store)) -> NotificationService:
    return NotificationService(store)


def get_user_service(store: DocumentStore = Depends(get_store)) -> UserService:
    return UserService(store)


def require_permission(module: str, action: str):
    """Dependency factory that checks a single module/action via PermissionService."""
    async def _check(
        user: UserRecord = Depends(get_current_user),
        store: DocumentStore = Depends(get_store),
    ) -> UserRecord:
        from shelter_admin.services.permission_service import PermissionService

        await PermissionService.require_permission(store, user, module, action)
        return user
    return _check
