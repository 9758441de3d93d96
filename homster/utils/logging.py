"""
Logging configuration for the Homster API and worker services.

On Cloud Run, records go to Cloud Logging through google-cloud-logging so
the `json_fields` extra becomes structured payload. Locally, records are
written to stdout with the structured fields appended.
"""

import json
import logging
import os
import sys

_configured_service: str | None = None

# Socket.IO and Engine.IO log every packet at INFO
NOISY_LOGGERS = ("socketio", "engineio", "urllib3")


class LocalFormatter(logging.Formatter):
    """Formatter that appends the `json_fields` extra as indented JSON."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)

        json_fields = getattr(record, "json_fields", None)
        if json_fields:
            message = f"{message}\n{json.dumps(json_fields, indent=2, default=str)}"

        return message


def setup_logging(service_name: str = "homster-api"):
    """
    Configure root logging once per process.

    Args:
        service_name: Name of the service, used in the startup log line
    """
    global _configured_service

    if _configured_service is not None:
        return

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

    if os.getenv("K_SERVICE"):
        _setup_cloud_logging(service_name, level)
    else:
        _setup_local_logging(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured_service = service_name


def _setup_cloud_logging(service_name: str, level: int):
    """Attach the Cloud Logging handler to the root logger."""
    try:
        import google.cloud.logging

        client = google.cloud.logging.Client()
        client.setup_logging(log_level=level)
        logging.info(f"Cloud Logging configured for service: {service_name}")
    except Exception as e:
        _setup_local_logging(level)
        logging.warning(f"Failed to setup Cloud Logging, using local logging: {e}")


def _setup_local_logging(level: int):
    """Write log records to stdout."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        LocalFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
