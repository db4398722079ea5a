"""In-memory event bus implementation."""

from __future__ import annotations

from typing import Dict, List, Type

import structlog

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    """In-process event bus.

    Handlers subscribed to a base class also receive its subclasses, so a
    handler on ``DomainEvent`` sees every event.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def publish(self, event: DomainEvent) -> None:
        delivered = 0
        for event_class in type(event).__mro__:
            for handler in self._handlers.get(event_class, []):
                handler.handle(event)
                delivered += 1
        logger.debug(
            "event_bus.published", event_name=event.event_name, handlers=delivered
        )


# Global bus instance (singleton)

event_bus = InMemoryEventBus()
