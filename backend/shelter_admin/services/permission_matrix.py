"""Permission matrix behind the role editor.

The matrix maps every ``(module, action)`` pair of a catalog to an enabled
flag. It always covers exactly the catalog's pairs: keys are derived from the
catalog on construction, never from the data it was loaded from, so a role
saved against an older catalog can neither add stray keys nor leave holes.

Every operation returns a new matrix. Callers hold on to the result; the
original is never mutated.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from shelter_admin.core.exceptions import ValidationError
from shelter_admin.core.permissions import (
    MANAGER_MODULES,
    MODULES,
    PRESET_ADMIN,
    PRESET_CLEAR,
    PRESET_MANAGER,
    PRESET_SUGGESTED_NAMES,
    PRESET_VIEWER,
    Module,
)
from shelter_admin.schemas.role import ActionPermission, ModulePermission, RoleRecord

PermissionKey = tuple[str, str]

SELECTION_ALL = "all"
SELECTION_SOME = "some"
SELECTION_NONE = "none"


class PermissionMatrix:
    __slots__ = ("_catalog", "_enabled")

    def __init__(
        self,
        catalog: Sequence[Module] = MODULES,
        enabled: Mapping[PermissionKey, bool] | None = None,
    ) -> None:
        self._catalog: tuple[Module, ...] = tuple(catalog)
        enabled = enabled or {}
        self._enabled: dict[PermissionKey, bool] = {
            (module.name, action): bool(enabled.get((module.name, action), False))
            for module in self._catalog
            for action in module.actions
        }

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def initialize(
        cls, catalog: Sequence[Module] = MODULES, existing_role: RoleRecord | None = None
    ) -> PermissionMatrix:
        """All-false matrix, or one pre-filled from a persisted role.

        Pairs are matched by exact module and action name. When a legacy record
        repeats a module, only its first entry is read.
        """
        if existing_role is None:
            return cls(catalog)
        return cls.from_permissions(existing_role.permissions, catalog)

    @classmethod
    def from_permissions(
        cls, permissions: Iterable[ModulePermission], catalog: Sequence[Module] = MODULES
    ) -> PermissionMatrix:
        first_entries: dict[str, ModulePermission] = {}
        for module_perm in permissions:
            first_entries.setdefault(module_perm.module, module_perm)

        enabled: dict[PermissionKey, bool] = {}
        for module_name, module_perm in first_entries.items():
            for action in module_perm.actions:
                enabled.setdefault((module_name, action.name), action.enabled)
        return cls(catalog, enabled)

    @classmethod
    def from_grants(
        cls, grants: Mapping[str, Iterable[str]], catalog: Sequence[Module] = MODULES
    ) -> PermissionMatrix:
        """Matrix with exactly the listed actions enabled per module."""
        enabled = {(module, action): True for module, actions in grants.items() for action in actions}
        return cls(catalog, enabled)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def catalog(self) -> tuple[Module, ...]:
        return self._catalog

    def is_enabled(self, module_name: str, action_name: str) -> bool:
        return self._enabled.get((module_name, action_name), False)

    def count_selected(self, module_name: str) -> int:
        module = self._module(module_name)
        return sum(1 for action in module.actions if self._enabled[(module.name, action)])

    def count_selected_total(self) -> int:
        return sum(1 for value in self._enabled.values() if value)

    def module_selection(self, module_name: str) -> str:
        """``"all"``, ``"some"`` or ``"none"`` for the module's toggle label."""
        module = self._module(module_name)
        selected = self.count_selected(module_name)
        if selected == len(module.actions):
            return SELECTION_ALL
        if selected == 0:
            return SELECTION_NONE
        return SELECTION_SOME

    def selected_by_module(self) -> dict[str, int]:
        return {module.name: self.count_selected(module.name) for module in self._catalog}

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def toggle(self, module_name: str, action_name: str) -> PermissionMatrix:
        key = (module_name, action_name)
        if key not in self._enabled:
            raise ValidationError(f"Unknown permission: {module_name} / {action_name}")
        enabled = dict(self._enabled)
        enabled[key] = not enabled[key]
        return PermissionMatrix(self._catalog, enabled)

    def toggle_all_for_module(self, module_name: str) -> PermissionMatrix:
        """Disable the module if every action is on, otherwise enable all of it."""
        module = self._module(module_name)
        all_enabled = all(self._enabled[(module.name, action)] for action in module.actions)
        enabled = dict(self._enabled)
        for action in module.actions:
            enabled[(module.name, action)] = not all_enabled
        return PermissionMatrix(self._catalog, enabled)

    def apply_preset(self, preset: str) -> tuple[PermissionMatrix, str | None]:
        """Apply a named preset. Returns the new matrix and the suggested role name.

        The suggested name is ``None`` when the preset leaves the name as is.
        """
        if preset == PRESET_ADMIN:
            rule = lambda module, action: True  # noqa: E731
        elif preset == PRESET_MANAGER:
            rule = lambda module, action: module in MANAGER_MODULES  # noqa: E731
        elif preset == PRESET_VIEWER:
            rule = lambda module, action: "view" in action.lower()  # noqa: E731
        elif preset == PRESET_CLEAR:
            rule = lambda module, action: False  # noqa: E731
        else:
            raise ValidationError(f"Unknown preset: {preset}")

        enabled = {key: rule(*key) for key in self._enabled}
        return PermissionMatrix(self._catalog, enabled), PRESET_SUGGESTED_NAMES[preset]

    # ------------------------------------------------------------------
    # Persistence shape
    # ------------------------------------------------------------------

    def serialize(self, catalog: Sequence[Module] | None = None) -> list[ModulePermission]:
        """Role permissions in catalog order.

        Iterates the catalog rather than the stored flags, so output coverage
        matches ``catalog`` exactly even if this matrix was built for another.
        """
        catalog = self._catalog if catalog is None else catalog
        return [
            ModulePermission(
                module=module.name,
                actions=[
                    ActionPermission(name=action, enabled=self.is_enabled(module.name, action))
                    for action in module.actions
                ],
            )
            for module in catalog
        ]

    # ------------------------------------------------------------------

    def _module(self, module_name: str) -> Module:
        for module in self._catalog:
            if module.name == module_name:
                return module
        raise ValidationError(f"Unknown module: {module_name}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PermissionMatrix):
            return NotImplemented
        return self._catalog == other._catalog and self._enabled == other._enabled

    def __hash__(self) -> int:
        return hash((self._catalog, frozenset(self._enabled.items())))

    def __repr__(self) -> str:
        return f"PermissionMatrix(selected={self.count_selected_total()}/{len(self._enabled)})"


def validate_role_submission(name: str, matrix: PermissionMatrix) -> str:
    """Return the trimmed role name, or raise before anything is persisted."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationError("name required", {"name": "Role name is required"})
    if matrix.count_selected_total() == 0:
        raise ValidationError(
            "at least one permission required",
            {"permissions": "Please select at least one permission"},
        )
    return trimmed
