# This project was developed with assistance from AI tools.
"""Tests for the in-process policy event bus."""

import logging
from unittest.mock import AsyncMock

import pytest
from db.enums import ActorRole

from src.services.events import ActorInformationCompleted, PolicyEventBus, event_bus
from src.services.lifecycle import coordinator

EVENT = ActorInformationCompleted(policy_id=10, role=ActorRole.TENANT, actor_id=2)


async def test_publish_returns_handler_results_in_order():
    bus = PolicyEventBus()
    session = AsyncMock()
    first = AsyncMock(return_value="first")
    second = AsyncMock(return_value=None)
    bus.subscribe(ActorInformationCompleted, first)
    bus.subscribe(ActorInformationCompleted, second)

    assert await bus.publish(session, EVENT) == ["first", None]
    first.assert_awaited_once_with(session, EVENT)
    second.assert_awaited_once_with(session, EVENT)


async def test_subscribe_is_idempotent():
    bus = PolicyEventBus()
    handler = AsyncMock(return_value=1)
    bus.subscribe(ActorInformationCompleted, handler)
    bus.subscribe(ActorInformationCompleted, handler)

    assert await bus.publish(AsyncMock(), EVENT) == [1]


async def test_unsubscribe_stops_delivery():
    bus = PolicyEventBus()
    handler = AsyncMock()
    bus.subscribe(ActorInformationCompleted, handler)
    bus.unsubscribe(ActorInformationCompleted, handler)

    assert await bus.publish(AsyncMock(), EVENT) == []
    handler.assert_not_awaited()


async def test_events_are_routed_by_type():
    bus = PolicyEventBus()
    handler = AsyncMock()
    bus.subscribe(str, handler)

    await bus.publish(AsyncMock(), EVENT)
    handler.assert_not_awaited()


async def test_publish_without_handlers_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="src.services.events"):
        assert await PolicyEventBus().publish(AsyncMock(), EVENT) == []
    assert "No handlers subscribed for ActorInformationCompleted" in caplog.text


async def test_handler_errors_reach_the_publisher():
    bus = PolicyEventBus()
    bus.subscribe(ActorInformationCompleted, AsyncMock(side_effect=LookupError("gone")))

    with pytest.raises(LookupError, match="gone"):
        await bus.publish(AsyncMock(), EVENT)


def test_lifecycle_coordinator_listens_on_module_bus():
    handlers = event_bus.handlers_for(ActorInformationCompleted)
    assert coordinator.on_actor_information_completed in handlers
