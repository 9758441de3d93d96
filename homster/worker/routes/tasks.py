"""
Cloud Tasks endpoint handlers for async job processing.

Cloud Tasks sends HTTP POST requests to these endpoints with task payloads.
"""

import logging

from fastapi import APIRouter, HTTPException

from homster.models.task import AlertExpiryTask
from homster.worker.handlers import handle_alert_expiry

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/alert-expiry")
async def alert_expiry_task(task: AlertExpiryTask):
    """
    Process booking alert expiry.

    Cloud Tasks triggers this endpoint when an alert wave's window has
    passed.

    Args:
        task: Alert expiry task payload

    Returns:
        dict: Processing result with the dispatch outcome

    Flow:
        1. Expire the wave's unanswered alerts
        2. If the booking is still unclaimed, alert the next nearest vendors
        3. Cancel the booking when no vendor is left
    """
    try:
        outcome = await handle_alert_expiry(booking_id=task.booking_id, wave=task.wave)

        return {
            "status": "success",
            "booking_id": task.booking_id,
            "result": outcome.model_dump(),
        }

    except Exception as e:
        logger.exception(
            "Alert expiry failed",
            extra={"json_fields": {"booking_id": task.booking_id, "wave": task.wave}},
        )
        raise HTTPException(
            status_code=500,
            detail=f"Alert expiry failed: {str(e)}",
        )
