"""Module/action catalog: single source of truth for every permission a role can hold."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Module:
    name: str
    actions: tuple[str, ...]


# ---------------------------------------------------------------------------
# Catalog (display order is preserved everywhere)
# ---------------------------------------------------------------------------

MODULES: tuple[Module, ...] = (
    Module("Dashboard", ("View Dashboard", "View Analytics", "View Reports")),
    Module(
        "Case Management",
        ("View Cases", "Create Cases", "Edit Cases", "Delete Cases", "Archive Cases"),
    ),
    Module("User Management", ("View Users", "Create Users", "Edit Users", "Delete Users")),
    Module("Role Management", ("View Roles", "Create Roles", "Edit Roles", "Delete Roles")),
    Module(
        "Animal Care",
        ("View Care Records", "Add Care Records", "Edit Care Records", "Delete Care Records"),
    ),
    Module(
        "Facility Management",
        (
            "View Cleaning Records",
            "Add Cleaning Records",
            "Edit Cleaning Records",
            "Delete Cleaning Records",
        ),
    ),
    Module(
        "Inventory",
        ("View Inventory", "Add Items", "Edit Items", "Delete Items", "Generate Reports"),
    ),
    Module("Media Library", ("View Media", "Upload Media", "Edit Media", "Delete Media")),
)

USER_MANAGEMENT = "User Management"
ROLE_MANAGEMENT = "Role Management"

# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

PRESET_ADMIN = "admin"
PRESET_MANAGER = "manager"
PRESET_VIEWER = "viewer"
PRESET_CLEAR = "clear"

PRESET_NAMES: tuple[str, ...] = (PRESET_ADMIN, PRESET_MANAGER, PRESET_VIEWER, PRESET_CLEAR)

MANAGER_MODULES: frozenset[str] = frozenset(
    {"Dashboard", "Case Management", "Animal Care", "Facility Management", "Inventory"}
)

# Suggested role name after applying a preset; "clear" leaves the name alone
PRESET_SUGGESTED_NAMES: dict[str, str | None] = {
    PRESET_ADMIN: "Admin",
    PRESET_MANAGER: "Manager",
    PRESET_VIEWER: "Viewer",
    PRESET_CLEAR: None,
}

# ---------------------------------------------------------------------------
# Protected roles (compared case-insensitively)
# ---------------------------------------------------------------------------

PROTECTED_ROLE_NAMES: tuple[str, ...] = ("admin",)


def is_protected_role(name: str) -> bool:
    return name.strip().lower() in PROTECTED_ROLE_NAMES


# ---------------------------------------------------------------------------
# Default roles created by RoleService.initialize_default_roles.
# Maps module -> enabled actions; anything unlisted is disabled. "admin" is
# built from the admin preset instead.
# ---------------------------------------------------------------------------

DOCTOR_GRANTS: dict[str, tuple[str, ...]] = {
    "Dashboard": ("View Dashboard", "View Analytics", "View Reports"),
    "Case Management": ("View Cases", "Create Cases", "Edit Cases", "Archive Cases"),
    "Animal Care": ("View Care Records", "Add Care Records", "Edit Care Records"),
    "Media Library": ("View Media", "Upload Media", "Edit Media"),
}

STAFF_GRANTS: dict[str, tuple[str, ...]] = {
    "Dashboard": ("View Dashboard", "View Reports"),
    "Case Management": ("View Cases", "Create Cases"),
    "Animal Care": ("View Care Records", "Add Care Records"),
    "Facility Management": (
        "View Cleaning Records",
        "Add Cleaning Records",
        "Edit Cleaning Records",
    ),
    "Inventory": ("View Inventory", "Add Items"),
}

PHOTOGRAPHER_GRANTS: dict[str, tuple[str, ...]] = {
    "Dashboard": ("View Dashboard",),
    "Media Library": ("View Media", "Upload Media", "Edit Media"),
}

DEFAULT_ROLE_GRANTS: dict[str, dict[str, tuple[str, ...]] | None] = {
    "admin": None,
    "doctor": DOCTOR_GRANTS,
    "staff": STAFF_GRANTS,
    "photographer": PHOTOGRAPHER_GRANTS,
}
