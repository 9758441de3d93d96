"""
Google Cloud helpers used to target the worker service from Cloud Tasks.
"""

import os
from functools import lru_cache

import google.auth
from google.auth.exceptions import DefaultCredentialsError
import requests

WORKER_SERVICE_URL = os.getenv("WORKER_SERVICE_URL", "")
WORKER_SERVICE_LOCATION = os.getenv("WORKER_SERVICE_LOCATION", "asia-south1")
WORKER_SERVICE_NAME = os.getenv("WORKER_SERVICE_NAME", "homster-worker")

METADATA_URL = "http://metadata.google.internal/computeMetadata/v1"


def _metadata(path: str) -> str:
    """Read a value from the Cloud Run metadata server, empty when unavailable."""
    try:
        resp = requests.get(
            f"{METADATA_URL}/{path}",
            headers={"Metadata-Flavor": "Google"},
            timeout=2,
        )
    except requests.RequestException:
        return ""
    return resp.text if resp.ok else ""


@lru_cache(maxsize=1)
def get_service_account_email() -> str:
    """Service account the process runs as, used for Cloud Tasks OIDC tokens."""
    try:
        credentials, _ = google.auth.default()
    except DefaultCredentialsError:
        return ""

    email = getattr(credentials, "service_account_email", "")
    # On Cloud Run the credentials report "default" until resolved
    if email == "default":
        email = _metadata("instance/service-accounts/default/email")
    return email


@lru_cache(maxsize=1)
def get_project_number() -> str:
    """Numeric project ID, from the metadata server or Resource Manager."""
    number = _metadata("project/numeric-project-id")
    if number:
        return number

    project = os.getenv("GOOGLE_CLOUD_PROJECT")
    if not project:
        return ""

    from google.cloud import resourcemanager_v3

    client = resourcemanager_v3.ProjectsClient()
    resource = client.get_project(name=f"projects/{project}")
    return resource.name.split("/")[-1]


@lru_cache(maxsize=1)
def get_worker_service_url() -> str:
    """
    Base URL of the worker service.

    WORKER_SERVICE_URL wins when set; otherwise the Cloud Run URL is derived
    as https://{service-name}-{project-number}.{location}.run.app

    Raises:
        ValueError: If the project number cannot be determined
    """
    if WORKER_SERVICE_URL:
        return WORKER_SERVICE_URL.rstrip("/")

    project_number = get_project_number()
    if not project_number:
        raise ValueError(
            "Cannot determine project number. Set WORKER_SERVICE_URL or "
            "GOOGLE_CLOUD_PROJECT with the Resource Manager API enabled."
        )

    return f"https://{WORKER_SERVICE_NAME}-{project_number}.{WORKER_SERVICE_LOCATION}.run.app"
