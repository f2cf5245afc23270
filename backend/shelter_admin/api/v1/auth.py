from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from shelter_admin.api.deps import get_user_service
from shelter_admin.core.rate_limit import limiter
from shelter_admin.core.security import create_access_token
from shelter_admin.schemas.user import LoginRequest, TokenResponse
from shelter_admin.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
@limiter.limit("5/minute")
async def login(
    request: Request,
    body: LoginRequest,
    service: UserService = Depends(get_user_service),
):
    user = await service.authenticate(body.email, body.password)
    if user is None:
        raise HTTPException(401, "Invalid email or password")
    return TokenResponse(access_token=create_access_token(user.id))
