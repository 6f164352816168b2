# This project was developed with assistance from AI tools.
"""In-process policy event bus.

Actor services publish domain events here instead of calling the lifecycle
engine. Handlers run sequentially inside the publisher's session, so the
actor write, the re-evaluation and any resulting status change commit (or
roll back) together.
"""

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from db.enums import ActorRole, PerformedByType
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActorInformationCompleted:
    """An actor's information was marked complete."""

    policy_id: int
    role: ActorRole
    actor_id: int
    performed_by_type: PerformedByType = PerformedByType.ACTOR
    performed_by_id: str | None = None
    ip_address: str | None = None


Handler = Callable[[AsyncSession, object], Awaitable[object]]


class PolicyEventBus:
    """Type-keyed publish/subscribe registry."""

    def __init__(self):
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: Handler) -> None:
        if handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)

    def handlers_for(self, event_type: type) -> list[Handler]:
        return list(self._handlers.get(event_type, ()))

    async def publish(self, session: AsyncSession, event) -> list:
        """Deliver ``event`` to every subscriber and return their results.

        Handler exceptions propagate to the publisher so the surrounding
        unit of work rolls back.
        """
        handlers = self.handlers_for(type(event))
        if not handlers:
            logger.warning("No handlers subscribed for %s", type(event).__name__)
        results = []
        for handler in handlers:
            results.append(await handler(session, event))
        return results


event_bus = PolicyEventBus()


def get_event_bus() -> PolicyEventBus:
    return event_bus
