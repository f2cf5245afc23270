"""User provisioning: form validation, password strength, and user records."""
from __future__ import annotations

import logging
import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone

from shelter_admin.core.exceptions import (
    NotFoundError,
    PermissionDenied,
    PersistenceError,
    ValidationError,
)
from shelter_admin.core.security import hash_password, verify_password
from shelter_admin.schemas.user import UserCreate, UserRecord, UserUpdate
from shelter_admin.services.document_store import ROLES, USERS, DocumentStore

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")
_PHONE_SEPARATORS = re.compile(r"[\s\-()]")
_SPECIAL_CHARS = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")

MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 8

_PASSWORD_ALPHABET = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789!@#$%^&*"
)


@dataclass
class PasswordStrength:
    score: int = 0
    feedback: list[str] = field(default_factory=list)
    color: str = "gray"


def password_strength(password: str) -> PasswordStrength:
    """Score 0-5, one point per satisfied rule; feedback lists the missing ones."""
    if not password:
        return PasswordStrength()

    checks = (
        (len(password) >= MIN_PASSWORD_LENGTH, "At least 8 characters"),
        (re.search(r"[A-Z]", password) is not None, "One uppercase letter"),
        (re.search(r"[a-z]", password) is not None, "One lowercase letter"),
        (re.search(r"\d", password) is not None, "One number"),
        (_SPECIAL_CHARS.search(password) is not None, "One special character"),
    )
    score = sum(1 for ok, _ in checks if ok)
    feedback = [hint for ok, hint in checks if not ok]

    if score >= 4:
        color = "green"
    elif score >= 3:
        color = "yellow"
    elif score >= 2:
        color = "orange"
    else:
        color = "red"
    return PasswordStrength(score=score, feedback=feedback, color=color)


def generate_password(length: int = 12) -> str:
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


def _name_error(name: str) -> str | None:
    if not name.strip():
        return "Name is required"
    if len(name.strip()) < MIN_NAME_LENGTH:
        return "Name must be at least 2 characters"
    return None


def _phone_error(phone: str) -> str | None:
    if not phone.strip():
        return "Phone number is required"
    if not PHONE_PATTERN.match(_PHONE_SEPARATORS.sub("", phone)):
        return "Please enter a valid phone number"
    return None


def validate_user_form(data: UserCreate, role_names: set[str]) -> None:
    """Raise a ValidationError carrying every field problem at once."""
    errors: dict[str, str] = {}

    if msg := _name_error(data.name):
        errors["name"] = msg

    if not data.email.strip():
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.match(data.email.strip()):
        errors["email"] = "Please enter a valid email address"

    if not data.password:
        errors["password"] = "Password is required"
    elif len(data.password) < MIN_PASSWORD_LENGTH:
        errors["password"] = "Password must be at least 8 characters"

    if msg := _phone_error(data.phone):
        errors["phone"] = msg

    if not data.role:
        errors["role"] = "Please select a role"
    elif data.role not in role_names:
        errors["role"] = f"Unknown role '{data.role}'"

    if errors:
        raise ValidationError("Invalid user details", errors)


class UserService:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def _role_names(self) -> set[str]:
        return {r["name"] for r in await self.store.query(ROLES) if r.get("name")}

    async def list_users(self) -> list[UserRecord]:
        records = await self.store.query(USERS, order_by="created_at", descending=True)
        return [UserRecord.model_validate(r) for r in records]

    async def get_user(self, user_id: str) -> UserRecord:
        record = await self.store.get(USERS, user_id)
        if record is None:
            raise NotFoundError("User not found")
        return UserRecord.model_validate(record)

    async def authenticate(self, email: str, password: str) -> UserRecord | None:
        """The active user with these credentials, or None."""
        records = await self.store.query(USERS, {"email": email.strip().lower()}, limit=1)
        if not records:
            return None
        user = UserRecord.model_validate(records[0])
        if not user.password_hash or not verify_password(password, user.password_hash):
            logger.warning("Failed login for %s", user.email, extra={"user_id": user.id})
            return None
        if not user.is_active:
            return None
        return user

    async def create_user(self, data: UserCreate) -> UserRecord:
        validate_user_form(data, await self._role_names())

        email = data.email.strip().lower()
        if await self.store.query(USERS, {"email": email}, limit=1):
            raise ValidationError(
                "Invalid user details", {"email": "A user with this email already exists"}
            )

        try:
            user_id = await self.store.create(
                USERS,
                {
                    "name": data.name.strip(),
                    "email": email,
                    "phone": data.phone.strip(),
                    "role": data.role,
                    "password_hash": hash_password(data.password),
                    "is_active": True,
                },
            )
        except PersistenceError:
            logger.exception("Error creating user %s", email)
            raise
        logger.info("Provisioned user %s with role '%s'", email, data.role)
        return await self.get_user(user_id)

    async def update_user(self, user_id: str, data: UserUpdate) -> UserRecord:
        await self.get_user(user_id)
        fields = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

        errors: dict[str, str] = {}
        if "name" in fields and (msg := _name_error(fields["name"])):
            errors["name"] = msg
        if "phone" in fields and (msg := _phone_error(fields["phone"])):
            errors["phone"] = msg
        if "role" in fields and fields["role"] not in await self._role_names():
            errors["role"] = f"Unknown role '{fields['role']}'"
        if errors:
            raise ValidationError("Invalid user details", errors)

        if "name" in fields:
            fields["name"] = fields["name"].strip()
        if "phone" in fields:
            fields["phone"] = fields["phone"].strip()
        fields["updated_at"] = datetime.now(timezone.utc)

        try:
            await self.store.update(USERS, user_id, fields)
        except PersistenceError:
            logger.exception("Error updating user %s", user_id)
            raise
        return await self.get_user(user_id)

    async def delete_user(self, user_id: str, *, actor_id: str) -> None:
        if user_id == actor_id:
            raise PermissionDenied("You cannot delete your own account.")
        await self.get_user(user_id)
        try:
            await self.store.delete(USERS, user_id)
        except PersistenceError:
            logger.exception("Error deleting user %s", user_id)
            raise
