"""Role management and role-editor API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from shelter_admin.api.deps import get_current_user, get_role_service, get_store, require_permission
from shelter_admin.core.permissions import MODULES, PRESET_NAMES, ROLE_MANAGEMENT
from shelter_admin.schemas.role import (
    MatrixResponse,
    PresetRequest,
    RoleRecord,
    RoleSubmit,
    ToggleModuleRequest,
    ToggleRequest,
)
from shelter_admin.schemas.user import UserRecord
from shelter_admin.services.document_store import DocumentStore
from shelter_admin.services.permission_matrix import PermissionMatrix
from shelter_admin.services.permission_service import PermissionService
from shelter_admin.services.role_service import RoleService

router = APIRouter(prefix="/roles", tags=["roles"])


def _matrix_response(matrix: PermissionMatrix, suggested_name: str | None = None) -> MatrixResponse:
    return MatrixResponse(
        permissions=matrix.serialize(),
        selected_by_module=matrix.selected_by_module(),
        selection_by_module={m.name: matrix.module_selection(m.name) for m in matrix.catalog},
        selected_total=matrix.count_selected_total(),
        suggested_name=suggested_name,
    )


# ---------------------------------------------------------------------------
# Catalog + stateless editor operations
# ---------------------------------------------------------------------------

@router.get("/catalog")
async def catalog(user: UserRecord = Depends(get_current_user)):
    """Module/action catalog in display order, plus the preset names."""
    return {
        "modules": [{"name": m.name, "actions": list(m.actions)} for m in MODULES],
        "presets": list(PRESET_NAMES),
    }


@router.post("/editor/preset", response_model=MatrixResponse)
async def apply_preset(body: PresetRequest, user: UserRecord = Depends(get_current_user)):
    matrix = PermissionMatrix.from_permissions(body.permissions, MODULES)
    matrix, suggested_name = matrix.apply_preset(body.preset)
    return _matrix_response(matrix, suggested_name)


@router.post("/editor/toggle", response_model=MatrixResponse)
async def toggle(body: ToggleRequest, user: UserRecord = Depends(get_current_user)):
    matrix = PermissionMatrix.from_permissions(body.permissions, MODULES)
    return _matrix_response(matrix.toggle(body.module, body.action))


@router.post("/editor/toggle-module", response_model=MatrixResponse)
async def toggle_module(body: ToggleModuleRequest, user: UserRecord = Depends(get_current_user)):
    matrix = PermissionMatrix.from_permissions(body.permissions, MODULES)
    return _matrix_response(matrix.toggle_all_for_module(body.module))


# ---------------------------------------------------------------------------
# Persisted roles
# ---------------------------------------------------------------------------

@router.get("", response_model=list[RoleRecord])
async def list_roles(
    service: RoleService = Depends(get_role_service),
    user: UserRecord = Depends(get_current_user),
):
    """List all roles. Any authenticated user can view roles."""
    return await service.list_roles()


@router.post("/initialize")
async def initialize_default_roles(
    service: RoleService = Depends(get_role_service),
    store: DocumentStore = Depends(get_store),
    user: UserRecord = Depends(get_current_user),
):
    await PermissionService.require_module_access(store, user, ROLE_MANAGEMENT)
    created = await service.initialize_default_roles()
    return {"created": created}


@router.get("/{role_id}", response_model=RoleRecord)
async def get_role(
    role_id: str,
    service: RoleService = Depends(get_role_service),
    user: UserRecord = Depends(get_current_user),
):
    return await service.get_role(role_id)


@router.post("", status_code=201, response_model=RoleRecord)
async def create_role(
    body: RoleSubmit,
    service: RoleService = Depends(get_role_service),
    user: UserRecord = Depends(require_permission(ROLE_MANAGEMENT, "Create Roles")),
):
    matrix = PermissionMatrix.from_permissions(body.permissions, MODULES)
    return await service.save_role(body.name, matrix)


@router.put("/{role_id}", response_model=RoleRecord)
async def replace_role(
    role_id: str,
    body: RoleSubmit,
    service: RoleService = Depends(get_role_service),
    user: UserRecord = Depends(require_permission(ROLE_MANAGEMENT, "Edit Roles")),
):
    matrix = PermissionMatrix.from_permissions(body.permissions, MODULES)
    return await service.save_role(body.name, matrix, role_id=role_id)


@router.delete("/{role_id}", status_code=204)
async def delete_role(
    role_id: str,
    service: RoleService = Depends(get_role_service),
    store: DocumentStore = Depends(get_store),
    user: UserRecord = Depends(get_current_user),
):
    can_manage = await PermissionService.has_module_access(store, user, ROLE_MANAGEMENT)
    await service.delete_role(role_id, can_manage_roles=can_manage)
