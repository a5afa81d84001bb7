"""Tests for event publishing over Redis Pub/Sub"""

import json
from unittest.mock import AsyncMock

import pytest

from tenant_platform.infrastructure.messaging.event_publisher import (
    EventPublisher,
    TenantEventPublisher,
)


@pytest.fixture
def redis_client():
    return AsyncMock()


@pytest.fixture
def publisher(redis_client):
    return EventPublisher(redis_client=redis_client)


@pytest.mark.asyncio
async def test_publish_sends_json_to_topic_channel(publisher, redis_client):
    result = await publisher.publish("tenant-events", "tenant.created", {"id": "t-1"})

    assert result is True
    channel, message = redis_client.publish.call_args[0]
    assert channel == "tenant-events:tenant.created"
    assert json.loads(message) == {"id": "t-1"}


@pytest.mark.asyncio
async def test_publish_without_connection_returns_false():
    publisher = EventPublisher()

    assert publisher.is_available() is False
    assert await publisher.publish("topic", "rk", {}) is False


@pytest.mark.asyncio
async def test_publish_error_returns_false(publisher, redis_client):
    redis_client.publish.side_effect = ConnectionError("broken pipe")

    assert await publisher.publish("topic", "rk", {"id": "t-1"}) is False


@pytest.mark.asyncio
async def test_tenant_events_wrap_payload_with_timestamp(publisher, redis_client):
    events = TenantEventPublisher(publisher, topic="tenant-events")
    tenant = {"id": "t-1", "name": "Acme", "domain": "acme", "status": "active"}

    assert await events.publish_tenant_created(tenant) is True

    channel, message = redis_client.publish.call_args[0]
    body = json.loads(message)
    assert channel == "tenant-events:tenant.created"
    assert body["tenant"] == tenant
    assert "timestamp" in body


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,routing_key",
    [
        ("publish_tenant_updated", "tenant.updated"),
        ("publish_tenant_provisioned", "tenant.provisioned"),
        ("publish_tenant_deprovisioned", "tenant.deprovisioned"),
    ],
)
async def test_tenant_event_routing_keys(publisher, redis_client, method, routing_key):
    events = TenantEventPublisher(publisher, topic="tenant-events")

    await getattr(events, method)({"id": "t-1"})

    assert redis_client.publish.call_args[0][0] == f"tenant-events:{routing_key}"


@pytest.mark.asyncio
async def test_tenant_deleted_carries_only_the_id(publisher, redis_client):
    events = TenantEventPublisher(publisher, topic="tenant-events")

    await events.publish_tenant_deleted("t-1")

    channel, message = redis_client.publish.call_args[0]
    assert channel == "tenant-events:tenant.deleted"
    assert json.loads(message)["tenant_id"] == "t-1"


@pytest.mark.asyncio
async def test_disconnect_closes_client(publisher, redis_client):
    await publisher.disconnect()

    redis_client.aclose.assert_awaited_once()
    assert publisher.is_available() is False
