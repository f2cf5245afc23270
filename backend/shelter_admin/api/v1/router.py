from fastapi import APIRouter

from shelter_admin.api.v1 import auth, notifications, roles, users

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(roles.router)
api_router.include_router(notifications.router)
api_router.include_router(users.router)
