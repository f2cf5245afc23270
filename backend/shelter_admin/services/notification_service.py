"""Notification roster: the per-user inbox, plus helpers that create notifications."""
from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, get_args

import pydantic

from shelter_admin.config import settings
from shelter_admin.core.exceptions import IndexMissingError, PersistenceError, ValidationError
from shelter_admin.core.metrics import notification_fetch_total
from shelter_admin.schemas.notification import NotificationRecord, NotificationType
from shelter_admin.services.document_store import NOTIFICATIONS, DocumentStore

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES: frozenset[str] = frozenset(get_args(NotificationType))


def _valid_records(records: Iterable[dict[str, Any]]) -> list[NotificationRecord]:
    """Parse stored records, dropping any that no longer fit the schema."""
    notifications = []
    for record in records:
        try:
            notifications.append(NotificationRecord.model_validate(record))
        except pydantic.ValidationError:
            logger.warning(
                "Skipping malformed notification %s",
                record.get("id"),
                extra={"user_id": record.get("user_id"), "collection": NOTIFICATIONS},
            )
    return notifications


class RosterSource(str, enum.Enum):
    ORDERED = "ordered"
    CLIENT_SORTED = "client_sorted"
    EMPTY = "empty"


@dataclass(frozen=True)
class NotificationRoster:
    """One user's notifications, newest first, capped."""

    user_id: str
    notifications: tuple[NotificationRecord, ...] = ()
    source: RosterSource = RosterSource.ORDERED

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)

    @property
    def unread(self) -> list[NotificationRecord]:
        return [n for n in self.notifications if not n.read]

    def find(self, notification_id: str) -> NotificationRecord | None:
        for n in self.notifications:
            if n.id == notification_id:
                return n
        return None


@dataclass
class NotificationService:
    store: DocumentStore
    limit: int = field(default_factory=lambda: settings.NOTIFICATION_ROSTER_LIMIT)

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------

    async def fetch(self, user_id: str) -> NotificationRoster:
        """Load the user's roster; never raises on store failures.

        Falls back to an unordered query sorted here when the store lacks the
        (user_id, created_at) index. Any other failure yields an empty roster.
        """
        try:
            records = await self.store.query(
                NOTIFICATIONS,
                {"user_id": user_id},
                order_by="created_at",
                descending=True,
                limit=self.limit,
            )
            roster = NotificationRoster(user_id, tuple(_valid_records(records)))
        except IndexMissingError:
            logger.warning(
                "Notification index missing, using fallback query. "
                "Create the (user_id, created_at) index for better performance."
            )
            roster = await self._fetch_unordered(user_id)
        except PersistenceError:
            logger.exception(
                "Error fetching notifications for user %s",
                user_id,
                extra={"user_id": user_id, "collection": NOTIFICATIONS},
            )
            roster = NotificationRoster(user_id, source=RosterSource.EMPTY)

        notification_fetch_total.labels(outcome=roster.source.value).inc()
        return roster

    async def _fetch_unordered(self, user_id: str) -> NotificationRoster:
        try:
            records = await self.store.query(NOTIFICATIONS, {"user_id": user_id})
        except PersistenceError:
            logger.exception(
                "Fallback notification query also failed for user %s",
                user_id,
                extra={"user_id": user_id, "collection": NOTIFICATIONS},
            )
            return NotificationRoster(user_id, source=RosterSource.EMPTY)
        notifications = sorted(
            _valid_records(records),
            key=lambda n: n.created_at,
            reverse=True,
        )
        return NotificationRoster(
            user_id, tuple(notifications[: self.limit]), RosterSource.CLIENT_SORTED
        )

    async def mark_read(self, roster: NotificationRoster, notification_id: str) -> bool:
        """Persist ``read = True`` for one roster entry.

        Returns False when the id is not part of the roster. The roster itself
        is not updated; fetch again to see the new unread count.
        """
        if roster.find(notification_id) is None:
            return False
        try:
            await self.store.update(NOTIFICATIONS, notification_id, {"read": True})
        except PersistenceError:
            logger.exception("Error marking notification %s as read", notification_id)
            raise
        return True

    async def mark_all_read(self, roster: NotificationRoster) -> int:
        """Mark every unread roster entry read in one atomic batch."""
        unread = roster.unread
        if not unread:
            return 0
        try:
            await self.store.batch_update(
                NOTIFICATIONS, [(n.id, {"read": True}) for n in unread]
            )
        except PersistenceError:
            logger.exception("Error marking all notifications as read for user %s", roster.user_id)
            raise
        return len(unread)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create(
        self,
        *,
        title: str,
        message: str,
        type: NotificationType = "info",
        user_id: str | None = None,
        link: str | None = None,
    ) -> str:
        if type not in NOTIFICATION_TYPES:
            raise ValidationError(
                f"Unknown notification type: {type}",
                {"type": f"Must be one of {', '.join(sorted(NOTIFICATION_TYPES))}"},
            )
        try:
            return await self.store.create(
                NOTIFICATIONS,
                {
                    "title": title,
                    "message": message,
                    "type": type,
                    "user_id": user_id,
                    "link": link,
                    "read": False,
                    "created_at": datetime.now(timezone.utc),
                },
            )
        except PersistenceError:
            logger.exception("Error creating notification '%s'", title)
            raise

    async def notify_inventory_low(
        self, item_name: str, quantity: int, user_id: str | None = None
    ) -> str:
        return await self.create(
            title="Low Inventory Alert",
            message=f"{item_name} is running low ({quantity} remaining)",
            type="warning",
            user_id=user_id,
            link="/inventory",
        )

    async def notify_new_case(
        self, case_number: str, animal_type: str, user_id: str | None = None
    ) -> str:
        return await self.create(
            title="New Case Added",
            message=f"New case {case_number} for {animal_type} has been registered",
            type="info",
            user_id=user_id,
            link=f"/casepaper/{case_number}",
        )

    async def notify_cleaning_due(self, area: str, user_id: str | None = None) -> str:
        return await self.create(
            title="Cleaning Reminder",
            message=f"{area} is due for cleaning",
            type="warning",
            user_id=user_id,
            link="/cleaning",
        )

    async def notify_feeding_due(
        self, animal_id: str, feeding_time: str, user_id: str | None = None
    ) -> str:
        return await self.create(
            title="Feeding Due",
            message=f"Feeding time ({feeding_time}) for animal {animal_id}",
            type="warning",
            user_id=user_id,
            link="/feedingrecord",
        )

    async def notify_password_changed(self, user_id: str) -> str:
        return await self.create(
            title="Password Changed",
            message="Your password has been successfully changed",
            type="success",
            user_id=user_id,
        )

    async def notify_system_update(self, message: str) -> str:
        return await self.create(title="System Update", message=message, type="info")
