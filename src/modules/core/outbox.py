"""Outbox helpers: persist aggregate events and relay them to the bus."""

from __future__ import annotations

import json
from dataclasses import asdict, fields
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Tuple
from uuid import UUID

import structlog
from django.db import transaction

from modules.core.models import OutboxEvent
from shared.domain.bus import IEventBus
from shared.domain.events import DomainEvent, event_class_registry

logger = structlog.get_logger(__name__)


def record_domain_events(entity: Any, topic: str) -> int:
    """Store the entity's pending domain events and clear them.

    Must run inside the transaction that persists ``entity``.
    """
    events = entity.domain_events if hasattr(entity, "domain_events") else []
    for event in events:
        OutboxEvent.objects.create(
            event_type=event.event_name,
            aggregate_id=str(event.aggregate_id),
            payload=serialize_event(event),
            topic=topic,
        )
    if hasattr(entity, "clear_domain_events"):
        entity.clear_domain_events()
    return len(events)


def serialize_event(event: DomainEvent) -> Dict[str, Any]:
    return json.loads(json.dumps(_normalize_for_json(asdict(event))))


def deserialize_event(event_type: str, payload: Dict[str, Any]) -> DomainEvent:
    """Rebuild a domain event from its outbox payload.

    Raises:
        LookupError: no loaded ``DomainEvent`` subclass has this name.
    """
    event_class = event_class_registry().get(event_type)
    if event_class is None:
        raise LookupError(f"Unknown event type {event_type!r}.")
    init_fields = {f.name for f in fields(event_class) if f.init}
    kwargs = {key: value for key, value in payload.items() if key in init_fields}
    kwargs["aggregate_id"] = UUID(kwargs["aggregate_id"])
    if "event_id" in kwargs:
        kwargs["event_id"] = UUID(kwargs["event_id"])
    if "occurred_on" in kwargs:
        kwargs["occurred_on"] = datetime.fromisoformat(kwargs["occurred_on"])
    return event_class(**kwargs)


def relay_pending_events(bus: IEventBus, batch_size: int = 100) -> Tuple[int, int]:
    """Publish relayable outbox rows; returns ``(published, failed)``."""
    published = failed = 0
    with transaction.atomic():
        batch = list(OutboxEvent.relayable().select_for_update()[:batch_size])
        for outbox_event in batch:
            log = logger.bind(
                outbox_id=str(outbox_event.id), event_type=outbox_event.event_type
            )
            try:
                with transaction.atomic():
                    bus.publish(
                        deserialize_event(
                            outbox_event.event_type, outbox_event.payload
                        )
                    )
            except Exception as exc:
                outbox_event.mark_as_failed(str(exc))
                log.warning("outbox.relay_failed", error=str(exc))
                failed += 1
                continue
            outbox_event.mark_as_published()
            published += 1
    if batch:
        logger.info("outbox.relayed", published=published, failed=failed)
    return published, failed


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
