"""Asynchronous tasks of the core module."""

import structlog
from celery import shared_task

from modules.core.outbox import relay_pending_events
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size: int = 100):
    """Publish pending outbox events to the in-process event bus."""
    published, failed = relay_pending_events(event_bus, batch_size=batch_size)
    return {"published": published, "failed": failed}
