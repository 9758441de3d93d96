"""
Tests for notification persistence and post-commit delivery.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from homster.models.account import Role
from homster.models.notification import NotificationType, RelatedType
from homster.services.notifications import Outbox, create_notification, notify_admins, publish
from tests.conftest import TEST_USER_ID, TEST_VENDOR_ID


@pytest.fixture
def mock_uow():
    uow = MagicMock()
    uow.notifications.create.side_effect = lambda notification: notification
    return uow


def test_create_notification_persists(mock_uow):
    notification = create_notification(
        mock_uow,
        Role.USER,
        TEST_USER_ID,
        NotificationType.BOOKING_ACCEPTED,
        "Booking accepted",
        "A vendor accepted your booking.",
        related_id="b-1",
        related_type=RelatedType.BOOKING,
    )

    mock_uow.notifications.create.assert_called_once_with(notification)
    assert notification.recipient_role == Role.USER
    assert notification.recipient_id == TEST_USER_ID
    assert notification.data == {}
    assert notification.id


def test_notify_admins_fans_out(mock_uow):
    mock_uow.admins.list_ids.return_value = ["a-1", "a-2"]

    created = notify_admins(
        mock_uow, NotificationType.GENERAL, "New vendor", "Approve me"
    )

    assert [n.recipient_id for n in created] == ["a-1", "a-2"]
    assert all(n.recipient_role == Role.ADMIN for n in created)


class TestPublish:
    @pytest.mark.asyncio
    async def test_counts_delivered(self, mock_uow):
        notes = [
            create_notification(mock_uow, Role.USER, TEST_USER_ID, NotificationType.GENERAL, "a", "b"),
            create_notification(mock_uow, Role.VENDOR, TEST_VENDOR_ID, NotificationType.GENERAL, "c", "d"),
        ]

        with patch(
            "homster.services.notifications.emit_to_account",
            new=AsyncMock(side_effect=[True, False]),
        ) as mock_emit:
            delivered = await publish(notes)

        assert delivered == 1
        role, account_id, event, payload = mock_emit.await_args_list[0].args
        assert (role, account_id, event) == (Role.USER, TEST_USER_ID, "notification")
        assert payload["title"] == "a"


class TestOutbox:
    def test_collects_without_sending(self, mock_uow):
        outbox = Outbox()
        mock_uow.admins.list_ids.return_value = ["a-1"]

        outbox.notify(mock_uow, Role.USER, TEST_USER_ID, NotificationType.GENERAL, "t", "m")
        outbox.notify_admins(mock_uow, NotificationType.GENERAL, "t", "m")
        outbox.emit("booking_updated", {"booking_id": "b-1"}, "user_u-1")
        outbox.schedule_alert_expiry("b-1", 1)

        assert len(outbox.notifications) == 2
        assert outbox.events == [("booking_updated", {"booking_id": "b-1"}, "user_u-1")]
        assert outbox.alert_expiries == [("b-1", 1)]

    @pytest.mark.asyncio
    async def test_flush_delivers_and_clears(self, mock_uow):
        outbox = Outbox()
        outbox.notify(mock_uow, Role.USER, TEST_USER_ID, NotificationType.GENERAL, "t", "m")
        outbox.emit("booking_taken", {"booking_id": "b-1"}, "vendor_v-2")
        outbox.schedule_alert_expiry("b-1", 2)

        with (
            patch(
                "homster.services.notifications.emit_to_room", new=AsyncMock(return_value=True)
            ) as mock_room,
            patch(
                "homster.services.notifications.emit_to_account",
                new=AsyncMock(return_value=True),
            ) as mock_account,
            patch("homster.services.notifications.create_alert_expiry_task") as mock_task,
            patch("homster.services.notifications.config") as mock_config,
        ):
            mock_config.ALERT_WINDOW_SECONDS = 60
            await outbox.flush()

        mock_room.assert_awaited_once_with("booking_taken", {"booking_id": "b-1"}, "vendor_v-2")
        mock_account.assert_awaited_once()
        mock_task.assert_called_once_with("b-1", 2, 60)
        assert outbox.notifications == []
        assert outbox.events == []
        assert outbox.alert_expiries == []

    @pytest.mark.asyncio
    async def test_task_failure_is_logged(self, caplog):
        outbox = Outbox()
        outbox.schedule_alert_expiry("b-1", 1)

        with patch(
            "homster.services.notifications.create_alert_expiry_task",
            side_effect=RuntimeError("queue missing"),
        ):
            await outbox.flush()

        assert "Failed to schedule alert expiry" in caplog.text
        assert outbox.alert_expiries == []
