from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from shelter_admin.models.base import Base, TimestampMixin, UUIDMixin


class Role(Base, UUIDMixin, TimestampMixin):
    """Admin-defined role with a module/action permission list."""

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    # [{"module": str, "actions": [{"name": str, "enabled": bool}]}], catalog order
    permissions: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
