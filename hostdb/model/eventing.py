"""hostdb model: Lifecycle events.

Handlers are coroutines.  A subscription may be scoped to one resource, in
which case it only sees events whose ``resource`` is that object.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from hostdb.logging import get_logger

if TYPE_CHECKING:
    from hostdb.model.application import DistributedApplication
    from hostdb.model.resources import Resource

log = get_logger(__name__)


@dataclass
class BeforeStartEvent:
    app: "DistributedApplication"


@dataclass
class ConnectionStringAvailableEvent:
    """Published once a resource's connection string can be resolved."""

    resource: "Resource"
    app: "DistributedApplication"


Handler = Callable[[Any], Awaitable[None]]


@dataclass
class EventSubscription:
    event_type: type
    handler: Handler
    resource: "Resource | None" = None

    def matches(self, event: object) -> bool:
        if not isinstance(event, self.event_type):
            return False
        return self.resource is None or getattr(event, "resource", None) is self.resource


class Eventing:
    def __init__(self) -> None:
        self._subscriptions: list[EventSubscription] = []

    def subscribe(
        self,
        event_type: type,
        handler: Handler,
        resource: "Resource | None" = None,
    ) -> EventSubscription:
        subscription = EventSubscription(event_type, handler, resource)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: EventSubscription) -> None:
        self._subscriptions.remove(subscription)

    def subscriptions_for(self, event: object) -> list[EventSubscription]:
        return [s for s in self._subscriptions if s.matches(event)]

    async def publish(self, event: object) -> None:
        """Await matching handlers in subscription order.  Errors propagate."""
        for subscription in self.subscriptions_for(event):
            log.debug(
                "event_dispatched",
                event_type=type(event).__name__,
                resource=getattr(getattr(event, "resource", None), "name", None),
            )
            await subscription.handler(event)
