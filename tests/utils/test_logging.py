"""Tests for the local log formatter."""

import logging

from homster.utils.logging import LocalFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("homster.test", logging.INFO, __file__, 1, "Booking claimed", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_appends_json_fields():
    formatter = LocalFormatter("%(levelname)s %(message)s")

    output = formatter.format(_record(json_fields={"booking_id": "b-1", "wave": 2}))

    assert output.startswith("INFO Booking claimed\n")
    assert '"booking_id": "b-1"' in output


def test_plain_message_without_fields():
    formatter = LocalFormatter("%(message)s")

    assert formatter.format(_record()) == "Booking claimed"
