"""
Tests for scheduling alert expiry tasks.
"""

from unittest.mock import MagicMock, patch

from homster.api.cloud_tasks import create_alert_expiry_task


def test_local_mode_skips_cloud_tasks():
    with (
        patch("homster.api.cloud_tasks.PROJECT_ID", ""),
        patch("homster.api.cloud_tasks.tasks_v2.CloudTasksClient") as mock_client,
    ):
        name = create_alert_expiry_task("b-1", 2, 60)

    assert name == "local-task/alert-expiry-b-1-2"
    mock_client.assert_not_called()


def test_task_targets_worker_with_delay():
    client = MagicMock()
    client.queue_path.return_value = "projects/p/locations/l/queues/booking-alerts"
    client.create_task.return_value.name = "projects/p/locations/l/queues/booking-alerts/tasks/x"

    with (
        patch("homster.api.cloud_tasks.PROJECT_ID", "p"),
        patch("homster.api.cloud_tasks.tasks_v2.CloudTasksClient", return_value=client),
        patch(
            "homster.api.cloud_tasks.get_worker_service_url",
            return_value="https://worker.example.run.app",
        ),
        patch(
            "homster.api.cloud_tasks.get_service_account_email",
            return_value="tasks@p.iam.gserviceaccount.com",
        ),
    ):
        name = create_alert_expiry_task("b-1", 1, 60)

    assert name.endswith("/tasks/x")
    task = client.create_task.call_args.kwargs["request"].task
    assert task.name.endswith("/tasks/alert-expiry-b-1-1")
    assert task.http_request.url == "https://worker.example.run.app/tasks/alert-expiry"
    assert task.http_request.oidc_token.audience == "https://worker.example.run.app"
    assert b'"wave": 1' in task.http_request.body
