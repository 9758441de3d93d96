"""
Notification creation and delivery.

Notifications are written inside the caller's unit of work and pushed over
Socket.IO only after that unit of work commits, so clients never see a
notification for a change that was rolled back.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable
from uuid import uuid4

from homster import config
from homster.api.cloud_tasks import create_alert_expiry_task
from homster.db import UnitOfWork
from homster.models.account import Role
from homster.models.notification import Notification, NotificationType, RelatedType
from homster.realtime import emit_to_account, emit_to_room

logger = logging.getLogger(__name__)


def create_notification(
    uow: UnitOfWork,
    role: Role,
    recipient_id: str,
    type: NotificationType,
    title: str,
    message: str,
    related_id: str | None = None,
    related_type: RelatedType | None = None,
    data: dict[str, Any] | None = None,
) -> Notification:
    """
    Persist a notification for one recipient.

    Args:
        uow: Active unit of work
        role: Recipient role
        recipient_id: Recipient account UUID
        type: Notification type
        title: Short title
        message: Body text
        related_id: ID of the booking, scrap item or account concerned
        related_type: Kind of entity related_id points at
        data: Extra payload for the client

    Returns:
        Stored notification
    """
    notification = Notification(
        id=str(uuid4()),
        recipient_role=role,
        recipient_id=recipient_id,
        type=type,
        title=title,
        message=message,
        related_id=related_id,
        related_type=related_type,
        data=data or {},
    )
    return uow.notifications.create(notification)


def notify_admins(
    uow: UnitOfWork,
    type: NotificationType,
    title: str,
    message: str,
    related_id: str | None = None,
    related_type: RelatedType | None = None,
    data: dict[str, Any] | None = None,
) -> list[Notification]:
    """Persist the same notification for every admin."""
    return [
        create_notification(
            uow,
            Role.ADMIN,
            admin_id,
            type,
            title,
            message,
            related_id=related_id,
            related_type=related_type,
            data=data,
        )
        for admin_id in uow.admins.list_ids()
    ]


async def publish(notifications: Iterable[Notification]) -> int:
    """
    Emit committed notifications to their recipients' rooms.

    Returns:
        Number of notifications handed to the socket server
    """
    delivered = 0
    for notification in notifications:
        ok = await emit_to_account(
            notification.recipient_role,
            notification.recipient_id,
            "notification",
            notification.model_dump(mode="json"),
        )
        if ok:
            delivered += 1
        else:
            logger.info(
                "Notification stored but not pushed",
                extra={"json_fields": {"notification_id": notification.id}},
            )
    return delivered


@dataclass
class Outbox:
    """
    Side effects collected during a unit of work, released after commit.

    Usage:
        outbox = Outbox()
        with UnitOfWork() as uow:
            outbox.notify(uow, Role.USER, user_id, NotificationType.GENERAL, ...)
            outbox.emit("booking_updated", payload, account_room(Role.USER, user_id))
            uow.commit()
        await outbox.flush()
    """

    notifications: list[Notification] = field(default_factory=list)
    events: list[tuple[str, dict, str]] = field(default_factory=list)
    alert_expiries: list[tuple[str, int]] = field(default_factory=list)

    def notify(self, uow: UnitOfWork, role: Role, recipient_id: str, *args, **kwargs) -> Notification:
        notification = create_notification(uow, role, recipient_id, *args, **kwargs)
        self.notifications.append(notification)
        return notification

    def notify_admins(self, uow: UnitOfWork, *args, **kwargs) -> list[Notification]:
        created = notify_admins(uow, *args, **kwargs)
        self.notifications.extend(created)
        return created

    def emit(self, event: str, data: dict, room: str):
        self.events.append((event, data, room))

    def schedule_alert_expiry(self, booking_id: str, wave: int):
        self.alert_expiries.append((booking_id, wave))

    async def flush(self):
        """Deliver everything collected. Call only after the commit succeeded."""
        for event, data, room in self.events:
            await emit_to_room(event, data, room)

        await publish(self.notifications)

        for booking_id, wave in self.alert_expiries:
            try:
                create_alert_expiry_task(booking_id, wave, config.ALERT_WINDOW_SECONDS)
            except Exception:
                # Open alerts still lapse on their expiry time; only the
                # automatic move to the next wave is lost.
                logger.exception(
                    "Failed to schedule alert expiry",
                    extra={"json_fields": {"booking_id": booking_id, "wave": wave}},
                )

        self.events.clear()
        self.notifications.clear()
        self.alert_expiries.clear()
