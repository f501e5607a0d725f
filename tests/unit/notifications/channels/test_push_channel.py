"""Tests for the HTTP push gateway channel."""

from __future__ import annotations

import json

import httpx
import pytest

from qa_notify.config.models import PushConfig
from qa_notify.notifications.channels import PushChannel
from qa_notify.notifications.exceptions import ChannelDeliveryError, ConfigurationError
from qa_notify.notifications.models import NotificationPayload


class GatewayStub:
    """Records requests and answers with a fixed status."""

    def __init__(self, status: int = 200, error: Exception | None = None) -> None:
        self.status: int = status
        self.error: Exception | None = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status, json={"ok": self.status < 400})


def make_channel(gateway: GatewayStub, threshold: int = 5) -> PushChannel:
    config = PushConfig(
        enabled=True,
        gateway_url="https://push.example.com/send",
        api_key="push-key",
        circuit_breaker_threshold=threshold,
    )
    return PushChannel(config, transport=httpx.MockTransport(gateway))


def test_requires_gateway_and_key() -> None:
    with pytest.raises(ConfigurationError, match="Push gateway"):
        _ = PushChannel(PushConfig(enabled=True, gateway_url="https://push.example.com"))


def test_validate_config_rechecks_credentials() -> None:
    config = PushConfig(enabled=True, gateway_url="https://push.example.com/send", api_key="push-key")
    channel = PushChannel(config)
    config.api_key = None

    with pytest.raises(ConfigurationError, match="Push gateway"):
        channel.validate_config()


async def test_send_uses_endpoint_validated_at_construction() -> None:
    gateway = GatewayStub()
    config = PushConfig(enabled=True, gateway_url="https://push.example.com/send", api_key="push-key")
    channel = PushChannel(config, transport=httpx.MockTransport(gateway))
    config.gateway_url = None

    await channel.send(NotificationPayload(channel="push", to="device-1", message="Body"))

    [request] = gateway.requests
    assert request.url == "https://push.example.com/send"
    assert request.headers["Authorization"] == "Bearer push-key"


async def test_posts_to_gateway() -> None:
    gateway = GatewayStub()
    channel = make_channel(gateway)

    await channel.send(
        NotificationPayload(
            channel="push",
            to="device-1",
            subject="Title",
            message="Body",
            data={"priority": "urgent"},
        ),
    )

    [request] = gateway.requests
    assert request.url == "https://push.example.com/send"
    assert request.headers["Authorization"] == "Bearer push-key"
    body = json.loads(request.content)
    assert body["to"] == "device-1"
    assert body["title"] == "Title"
    assert body["priority"] == "high"


def test_normal_priority_body() -> None:
    body = PushChannel.build_body(NotificationPayload(channel="push", to="d", message="Body"))

    assert body["priority"] == "normal"


async def test_empty_token() -> None:
    gateway = GatewayStub()
    channel = make_channel(gateway)

    with pytest.raises(ChannelDeliveryError, match="device token is empty"):
        await channel.send(NotificationPayload(channel="push", message="Body"))

    assert gateway.requests == []


async def test_error_status() -> None:
    channel = make_channel(GatewayStub(status=503))

    with pytest.raises(ChannelDeliveryError, match="status 503"):
        await channel.send(NotificationPayload(channel="push", to="device-1", message="Body"))


async def test_network_error() -> None:
    gateway = GatewayStub(error=httpx.ConnectError("connection refused"))
    channel = make_channel(gateway)

    with pytest.raises(ChannelDeliveryError, match="gateway unreachable"):
        await channel.send(NotificationPayload(channel="push", to="device-1", message="Body"))


async def test_open_circuit_skips_gateway() -> None:
    gateway = GatewayStub(status=500)
    channel = make_channel(gateway, threshold=1)
    payload = NotificationPayload(channel="push", to="device-1", message="Body")

    with pytest.raises(ChannelDeliveryError):
        await channel.send(payload)
    with pytest.raises(ChannelDeliveryError, match="is open"):
        await channel.send(payload)

    assert len(gateway.requests) == 1
