"""Unit tests for user provisioning: form validation, password strength, CRUD."""

from __future__ import annotations

import pytest

from shelter_admin.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from shelter_admin.core.security import verify_password
from shelter_admin.schemas.user import UserCreate, UserUpdate
from shelter_admin.services.user_service import (
    UserService,
    generate_password,
    password_strength,
    validate_user_form,
)

ROLES = {"admin", "doctor"}


def _form(**overrides) -> UserCreate:
    data = {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "password": "Str0ng!pass",
        "phone": "+1 (555) 123-4567",
        "role": "doctor",
    }
    data.update(overrides)
    return UserCreate(**data)


# ---------------------------------------------------------------------------
# Password helpers
# ---------------------------------------------------------------------------


class TestPasswordStrength:
    def test_empty(self):
        result = password_strength("")
        assert (result.score, result.color, result.feedback) == (0, "gray", [])

    def test_all_rules(self):
        result = password_strength("Str0ng!pass")
        assert result.score == 5
        assert result.color == "green"
        assert result.feedback == []

    @pytest.mark.parametrize(
        "password,score,color",
        [
            ("abc", 1, "red"),
            ("abcdefgh", 2, "orange"),
            ("Abcdefgh", 3, "yellow"),
            ("Abcdefg1", 4, "green"),
        ],
    )
    def test_scores(self, password, score, color):
        result = password_strength(password)
        assert result.score == score
        assert result.color == color

    def test_feedback_lists_missing_rules(self):
        assert password_strength("abcdefgh").feedback == [
            "One uppercase letter",
            "One number",
            "One special character",
        ]


class TestGeneratePassword:
    def test_default_length(self):
        assert len(generate_password()) == 12

    def test_custom_length(self):
        assert len(generate_password(20)) == 20

    def test_not_repeated(self):
        assert generate_password() != generate_password()


# ---------------------------------------------------------------------------
# Form validation
# ---------------------------------------------------------------------------


class TestValidateUserForm:
    def test_valid(self):
        validate_user_form(_form(), ROLES)

    def test_collects_every_error(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_user_form(UserCreate(), ROLES)
        assert set(exc_info.value.errors) == {"name", "email", "password", "phone", "role"}

    @pytest.mark.parametrize(
        "field,value,message",
        [
            ("name", "J", "Name must be at least 2 characters"),
            ("email", "not-an-email", "Please enter a valid email address"),
            ("password", "short", "Password must be at least 8 characters"),
            ("phone", "0123", "Please enter a valid phone number"),
            ("phone", "+1 555 abc", "Please enter a valid phone number"),
            ("role", "janitor", "Unknown role 'janitor'"),
        ],
    )
    def test_field_errors(self, field, value, message):
        with pytest.raises(ValidationError) as exc_info:
            validate_user_form(_form(**{field: value}), ROLES)
        assert exc_info.value.errors == {field: message}


# ---------------------------------------------------------------------------
# UserService
# ---------------------------------------------------------------------------


@pytest.fixture
async def service(store, create_role):
    await create_role("doctor", grants={"Dashboard": ["View Dashboard"]})
    return UserService(store)


class TestCreateUser:
    async def test_creates_with_hashed_password(self, service, store):
        user = await service.create_user(_form(email="  Jane@Example.COM "))

        assert user.email == "jane@example.com"
        assert user.is_active is True
        record = await store.get("users", user.id)
        assert record["password_hash"] != "Str0ng!pass"
        assert verify_password("Str0ng!pass", record["password_hash"])

    async def test_duplicate_email(self, service):
        await service.create_user(_form())
        with pytest.raises(ValidationError) as exc_info:
            await service.create_user(_form(email="JANE@example.com"))
        assert "email" in exc_info.value.errors

    async def test_role_must_exist(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_user(_form(role="janitor"))
        assert "role" in exc_info.value.errors


class TestUpdateUser:
    async def test_partial_update(self, service):
        user = await service.create_user(_form())
        updated = await service.update_user(user.id, UserUpdate(name="  Janet  "))
        assert updated.name == "Janet"
        assert updated.phone == user.phone

    async def test_deactivate(self, service):
        user = await service.create_user(_form())
        updated = await service.update_user(user.id, UserUpdate(is_active=False))
        assert updated.is_active is False

    async def test_invalid_role(self, service):
        user = await service.create_user(_form())
        with pytest.raises(ValidationError):
            await service.update_user(user.id, UserUpdate(role="janitor"))

    async def test_missing_user(self, service):
        with pytest.raises(NotFoundError):
            await service.update_user("no-such-id", UserUpdate(name="Janet"))


class TestDeleteUser:
    async def test_cannot_delete_self(self, service):
        user = await service.create_user(_form())
        with pytest.raises(PermissionDenied):
            await service.delete_user(user.id, actor_id=user.id)

    async def test_deletes(self, service, store):
        user = await service.create_user(_form())
        await service.delete_user(user.id, actor_id="someone-else")
        assert await store.get("users", user.id) is None


class TestAuthenticate:
    async def test_valid_credentials(self, service):
        user = await service.create_user(_form())
        authed = await service.authenticate("  JANE@example.com ", "Str0ng!pass")
        assert authed is not None
        assert authed.id == user.id

    async def test_wrong_password(self, service, caplog):
        await service.create_user(_form())
        assert await service.authenticate("jane@example.com", "wrong") is None
        assert "Failed login" in caplog.text

    async def test_unknown_email(self, service):
        assert await service.authenticate("nobody@example.com", "Str0ng!pass") is None

    async def test_inactive_user_refused(self, service):
        user = await service.create_user(_form())
        await service.update_user(user.id, UserUpdate(is_active=False))
        assert await service.authenticate("jane@example.com", "Str0ng!pass") is None
