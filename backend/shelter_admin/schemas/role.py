from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ActionPermission(BaseModel):
    name: str
    enabled: bool = False


class ModulePermission(BaseModel):
    module: str
    actions: list[ActionPermission] = []


class RoleRecord(BaseModel):
    """A role as persisted in the ``roles`` collection."""

    id: str | None = None
    name: str
    permissions: list[ModulePermission] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RoleSubmit(BaseModel):
    """Full role payload; edits always resubmit the entire permissions list."""

    name: str = Field(..., max_length=200)
    permissions: list[ModulePermission] = []


class PresetRequest(BaseModel):
    preset: str
    permissions: list[ModulePermission] = []


class ToggleRequest(BaseModel):
    module: str
    action: str
    permissions: list[ModulePermission] = []


class ToggleModuleRequest(BaseModel):
    module: str
    permissions: list[ModulePermission] = []


class MatrixResponse(BaseModel):
    permissions: list[ModulePermission]
    selected_by_module: dict[str, int]
    # "all" / "some" / "none" per module, for the module toggle label
    selection_by_module: dict[str, str]
    selected_total: int
    suggested_name: str | None = None
