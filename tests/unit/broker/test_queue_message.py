"""Tests for the queue envelope."""

from __future__ import annotations

import json
import re

import pytest
from pydantic import ValidationError

from qa_notify.broker.message import QueueMessage, new_message_id, queue_priority


@pytest.mark.parametrize(
    ("priority", "expected"),
    [
        ("urgent", 10),
        ("HIGH", 8),
        ("normal", 5),
        ("low", 1),
        ("whenever", 1),
        (None, 1),
    ],
)
def test_queue_priority(priority: str | None, expected: int) -> None:
    assert queue_priority(priority) == expected


def test_message_id_format() -> None:
    first = new_message_id()

    assert re.fullmatch(r"notification_\d{13,}_[0-9a-f]{10}", first)
    assert new_message_id() != first


def test_defaults() -> None:
    message = QueueMessage()

    assert message.type == "notification"
    assert message.retry_count == 0
    assert message.priority == 1
    assert message.id.startswith("notification_")


def test_retry_count_uses_camel_case_on_the_wire() -> None:
    message = QueueMessage(data={"channel": "email"}, retry_count=2)

    encoded = json.loads(message.to_bytes())

    assert encoded["retryCount"] == 2
    assert "retry_count" not in encoded
    assert QueueMessage.from_bytes(message.to_bytes()) == message


def test_accepts_either_field_name() -> None:
    assert QueueMessage.model_validate({"retryCount": 3}).retry_count == 3
    assert QueueMessage.model_validate({"retry_count": 4}).retry_count == 4


def test_rejects_foreign_message_type() -> None:
    with pytest.raises(ValidationError):
        _ = QueueMessage.from_bytes(b'{"type": "invoice"}')


def test_rejects_non_json() -> None:
    with pytest.raises(ValidationError):
        _ = QueueMessage.from_bytes(b"not json")
