"""
Cloud Tasks client for scheduling worker callbacks.

Booking alert waves are closed by a task scheduled for the end of the
alert window.
"""

import json
import logging
import os
import time
from typing import Any

from google.cloud import tasks_v2
from google.protobuf import timestamp_pb2

from homster.models.task import AlertExpiryTask
from homster.utils.gcp import get_service_account_email, get_worker_service_url

PROJECT_ID = os.getenv("GOOGLE_CLOUD_PROJECT", "")
LOCATION = os.getenv("GOOGLE_CLOUD_LOCATION", "asia-south1")
QUEUE_NAME = os.getenv("CLOUD_TASKS_QUEUE", "booking-alerts")

logger = logging.getLogger(__name__)


def create_alert_expiry_task(booking_id: str, wave: int, delay_seconds: int) -> str:
    """
    Schedule expiry of one alert wave.

    The task ID is derived from booking and wave, so scheduling the same
    wave twice is rejected by Cloud Tasks instead of running twice.

    Args:
        booking_id: Booking whose alerts are on offer
        wave: Wave number
        delay_seconds: Seconds until the wave expires

    Returns:
        Task name (full resource path)
    """
    payload = AlertExpiryTask(booking_id=booking_id, wave=wave)
    return _create_task(
        endpoint="/tasks/alert-expiry",
        payload=payload.model_dump(),
        task_id=f"alert-expiry-{booking_id}-{wave}",
        delay_seconds=delay_seconds,
    )


def _create_task(
    endpoint: str,
    payload: dict[str, Any],
    task_id: str,
    delay_seconds: int = 0,
) -> str:
    """
    Create a Cloud Task targeting the worker service.

    Without GOOGLE_CLOUD_PROJECT this only logs and returns a local name.

    Args:
        endpoint: Worker service endpoint path
        payload: Task payload dictionary
        task_id: Unique task identifier
        delay_seconds: Delay before task execution

    Returns:
        Task name (full resource path or local name)
    """
    payload_bytes = json.dumps(payload).encode("utf-8")

    if not PROJECT_ID:
        logger.info(
            "Cloud Tasks not configured, skipping task",
            extra={
                "json_fields": {
                    "task_id": task_id,
                    "endpoint": endpoint,
                    "payload": payload,
                    "delay_seconds": delay_seconds,
                }
            },
        )
        return f"local-task/{task_id}"

    client = tasks_v2.CloudTasksClient()
    queue_path = client.queue_path(PROJECT_ID, LOCATION, QUEUE_NAME)
    worker_url = get_worker_service_url()
    service_account = get_service_account_email()

    logger.info(
        "Creating Cloud Task",
        extra={
            "json_fields": {
                "task_id": task_id,
                "endpoint": endpoint,
                "queue_path": queue_path,
                "worker_url": worker_url,
                "delay_seconds": delay_seconds,
            }
        },
    )

    oidc_token = None
    if worker_url.startswith("https://") and service_account:
        oidc_token = tasks_v2.OidcToken(
            service_account_email=service_account,
            audience=worker_url,
        )

    task = tasks_v2.Task(
        name=f"{queue_path}/tasks/{task_id}",
        http_request=tasks_v2.HttpRequest(
            http_method=tasks_v2.HttpMethod.POST,
            url=f"{worker_url}{endpoint}",
            headers={"Content-Type": "application/json"},
            body=payload_bytes,
            oidc_token=oidc_token,
        ),
    )

    if delay_seconds > 0:
        schedule_time = timestamp_pb2.Timestamp()
        schedule_time.FromSeconds(int(time.time()) + delay_seconds)
        task.schedule_time = schedule_time

    try:
        response = client.create_task(
            request=tasks_v2.CreateTaskRequest(parent=queue_path, task=task)
        )
    except Exception:
        logger.exception(
            "Cloud Tasks create_task failed",
            extra={"json_fields": {"task_id": task_id, "queue_path": queue_path}},
        )
        raise

    return response.name
