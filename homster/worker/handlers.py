"""
Task handlers for Cloud Tasks processing.

These handlers contain the business logic for processing different task types.
"""

import logging

from homster.db import DatabaseConnection, UnitOfWork
from homster.models.alert import DispatchOutcome
from homster.services.dispatch import advance
from homster.services.notifications import Outbox

logger = logging.getLogger(__name__)


async def handle_alert_expiry(booking_id: str, wave: int) -> DispatchOutcome:
    """
    Close an alert wave and dispatch the booking onwards.

    Cloud Tasks retries on failure, so a wave that was already handled
    comes back as a skipped outcome rather than an error.

    Args:
        booking_id: Booking whose alerts expired
        wave: Wave the task was scheduled for

    Returns:
        DispatchOutcome describing what happened

    Raises:
        RuntimeError: Database is not initialized
    """
    if not DatabaseConnection.is_initialized():
        raise RuntimeError("Database not available")

    outbox = Outbox()
    with UnitOfWork() as uow:
        outcome = advance(uow, booking_id, wave, outbox)
        uow.commit()

    await outbox.flush()

    logger.info(
        "Alert wave processed",
        extra={
            "json_fields": {
                "booking_id": booking_id,
                "wave": wave,
                "next_wave": outcome.wave,
                "alerted": len(outcome.alerted_vendor_ids),
                "expired_alerts": outcome.expired_alerts,
                "exhausted": outcome.exhausted,
                "skipped": outcome.skipped,
            }
        },
    )
    return outcome
