"""
Event Bus implementations

The bus is an injected dependency with an explicit start/stop lifecycle.
Producers call ``publish``; consumers are registered by name with
``subscribe``. Neither implementation invokes subscribers from ``publish``.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, List, Optional

from sqlalchemy import event as sa_event

from catalog_inventory.database import db
from catalog_inventory.events.envelope import EventEnvelope, encode_payload
from catalog_inventory.events.registry import SubscriberRegistry
from catalog_inventory.models import OutboxEvent, OutboxStatus
from catalog_inventory.repositories import OutboxRepository

logger = logging.getLogger(__name__)


class EventBus(ABC):
    """Abstract base class for event buses"""

    def __init__(self, registry: Optional[SubscriberRegistry] = None):
        self.registry = registry or SubscriberRegistry()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self):
        self._running = True
        logger.info(f"{self.__class__.__name__} started")

    def stop(self):
        self._running = False
        logger.info(f"{self.__class__.__name__} stopped")

    def subscribe(self, event_type: str, name: str, handler: Callable):
        self.registry.subscribe(event_type, name, handler)
        logger.debug(f"Consumer {name} subscribed to {event_type}")

    def _ensure_running(self):
        if not self._running:
            raise RuntimeError(f"{self.__class__.__name__} is not running")

    @abstractmethod
    def publish(self, envelope: EventEnvelope):
        pass


class OutboxEventBus(EventBus):
    """
    Transactional outbox bus.

    ``publish`` stages an outbox row in the caller's session so the event is
    committed (or rolled back) together with the state change that produced
    it. A dispatcher delivers committed rows later. Publish listeners are
    called after the publishing transaction commits so an in-process
    dispatcher can run without waiting for its next poll.
    """

    def __init__(self, registry: Optional[SubscriberRegistry] = None,
                 outbox_repo: Optional[OutboxRepository] = None):
        super().__init__(registry)
        self.outbox_repo = outbox_repo or OutboxRepository()
        self._publish_listeners: List[Callable[[], None]] = []

    def add_publish_listener(self, callback: Callable[[], None]):
        self._publish_listeners.append(callback)

    def publish(self, envelope: EventEnvelope) -> OutboxEvent:
        self._ensure_running()

        row = OutboxEvent(
            event_id=envelope.event_id,
            event_type=envelope.event_type,
            schema_version=envelope.schema_version,
            aggregate_type=envelope.aggregate_type,
            aggregate_id=envelope.aggregate_id,
            correlation_id=envelope.correlation_id,
            payload=encode_payload(envelope),
            status=OutboxStatus.PENDING,
            attempts=0,
            next_retry_at=envelope.occurred_at,
            delivered_to=[],
            occurred_at=envelope.occurred_at
        )
        self.outbox_repo.add(row)

        if self._publish_listeners:
            self._notify_after_commit(db.session())

        logger.info(
            f"Staged {envelope.event_type} event {envelope.event_id} for {envelope.aggregate_type} {envelope.aggregate_id}",
            extra={"eventId": envelope.event_id, "correlationId": envelope.correlation_id}
        )
        return row

    def _notify_after_commit(self, session):
        """Wake listeners once when the session's current transaction commits"""
        hooked = session.info.setdefault('outbox_hooked_buses', set())
        if id(self) not in hooked:
            sa_event.listen(session, 'after_commit', self._after_commit)
            sa_event.listen(session, 'after_rollback', self._after_rollback)
            hooked.add(id(self))
        session.info.setdefault('outbox_pending_buses', set()).add(id(self))

    def _after_commit(self, session):
        pending = session.info.get('outbox_pending_buses', set())
        if id(self) in pending:
            pending.discard(id(self))
            self._notify_listeners()

    def _after_rollback(self, session):
        # Staged rows were discarded with the transaction
        session.info.get('outbox_pending_buses', set()).discard(id(self))

    def _notify_listeners(self):
        # Runs after commit; the publishing request has already succeeded
        for callback in list(self._publish_listeners):
            try:
                callback()
            except Exception as e:
                logger.error(f"Publish listener {callback!r} failed: {e}")


class InMemoryEventBus(EventBus):
    """
    Process-local bus for tests and single-process tooling.

    Events queue up on ``publish`` and are delivered by ``drain``. A failing
    consumer leaves its event at the head of the queue, so the next drain
    redelivers it with the same event id.
    """

    def __init__(self, registry: Optional[SubscriberRegistry] = None):
        super().__init__(registry)
        self.pending = deque()
        self.delivered: List[EventEnvelope] = []
        self._acked = {}

    def publish(self, envelope: EventEnvelope) -> EventEnvelope:
        self._ensure_running()
        self.pending.append(envelope)
        return envelope

    def drain(self) -> int:
        """Deliver every queued event; returns the number delivered"""
        self._ensure_running()
        count = 0
        while self.pending:
            envelope = self.pending[0]
            acked = self._acked.setdefault(envelope.event_id, set())
            for name, handler in self.registry.get_subscribers(envelope.event_type):
                if name in acked:
                    continue
                handler(envelope)
                acked.add(name)
            self.pending.popleft()
            self._acked.pop(envelope.event_id, None)
            self.delivered.append(envelope)
            count += 1
        return count
