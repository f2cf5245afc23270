from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from shelter_admin.api.deps import get_current_user, get_user_service, require_permission
from shelter_admin.core.permissions import USER_MANAGEMENT
from shelter_admin.core.rate_limit import limiter
from shelter_admin.schemas.user import (
    PasswordCheck,
    PasswordStrengthResponse,
    UserCreate,
    UserRecord,
    UserResponse,
    UserUpdate,
)
from shelter_admin.services.user_service import UserService, generate_password, password_strength

router = APIRouter(prefix="/users", tags=["users"])


def _user_response(u: UserRecord) -> UserResponse:
    return UserResponse.model_validate(u.model_dump(exclude={"password_hash"}))


@router.get("", response_model=list[UserResponse])
async def list_users(
    service: UserService = Depends(get_user_service),
    user: UserRecord = Depends(require_permission(USER_MANAGEMENT, "View Users")),
):
    return [_user_response(u) for u in await service.list_users()]


@router.post("", status_code=201, response_model=UserResponse)
@limiter.limit("10/minute")
async def create_user(
    request: Request,
    body: UserCreate,
    service: UserService = Depends(get_user_service),
    user: UserRecord = Depends(require_permission(USER_MANAGEMENT, "Create Users")),
):
    return _user_response(await service.create_user(body))


@router.post("/password-strength", response_model=PasswordStrengthResponse)
async def check_password_strength(
    body: PasswordCheck, user: UserRecord = Depends(get_current_user)
):
    strength = password_strength(body.password)
    return PasswordStrengthResponse(
        score=strength.score, feedback=strength.feedback, color=strength.color
    )


@router.get("/generate-password")
async def suggest_password(user: UserRecord = Depends(get_current_user)):
    return {"password": generate_password()}


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    body: UserUpdate,
    service: UserService = Depends(get_user_service),
    user: UserRecord = Depends(require_permission(USER_MANAGEMENT, "Edit Users")),
):
    return _user_response(await service.update_user(user_id, body))


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    service: UserService = Depends(get_user_service),
    user: UserRecord = Depends(require_permission(USER_MANAGEMENT, "Delete Users")),
):
    await service.delete_user(user_id, actor_id=user.id)
