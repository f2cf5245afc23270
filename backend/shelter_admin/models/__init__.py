from shelter_admin.models.base import Base
from shelter_admin.models.notification import Notification
from shelter_admin.models.role import Role
from shelter_admin.models.user import User

__all__ = ["Base", "Notification", "Role", "User"]
