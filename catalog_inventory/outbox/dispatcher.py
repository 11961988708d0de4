"""
Outbox Dispatcher

Claims committed outbox rows and delivers them to subscribed consumers.

Row lifecycle:
    PENDING --claim--> CLAIMED --all consumers ok--> DELIVERED
                       CLAIMED --retryable error--> PENDING (next_retry_at = now + backoff)
                       CLAIMED --attempts exhausted / non-retryable--> FAILED (dead-letter)
    CLAIMED with an expired lease is claimable again, so a crashed
    dispatcher only ever causes redelivery.
"""

import logging
import os
import socket
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional

from catalog_inventory.events.envelope import envelope_from_outbox
from catalog_inventory.events.registry import SubscriberRegistry
from catalog_inventory.outbox.backoff import ExponentialBackoff
from catalog_inventory.repositories import OutboxRepository
from catalog_inventory.utils.clock import utcnow
from catalog_inventory.utils.exceptions import (
    TerminalDeliveryError,
    TransientInfraError,
    UnknownEventTypeError,
    ValidationError,
)

logger = logging.getLogger(__name__)

NON_RETRYABLE_ERRORS = (ValidationError, UnknownEventTypeError)

DELIVERED = 'delivered'
RETRY_SCHEDULED = 'retry_scheduled'
DEAD_LETTERED = 'dead_lettered'
LEASE_LOST = 'lease_lost'


def default_worker_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}-{uuid.uuid4().hex[:8]}"


@dataclass
class DispatchSummary:
    claimed: int = 0
    delivered: int = 0
    retried: int = 0
    dead_lettered: int = 0
    lost: int = 0
    skipped: int = 0

    def record(self, outcome: str):
        if outcome == DELIVERED:
            self.delivered += 1
        elif outcome == RETRY_SCHEDULED:
            self.retried += 1
        elif outcome == DEAD_LETTERED:
            self.dead_lettered += 1
        elif outcome == LEASE_LOST:
            self.lost += 1

    def to_dict(self):
        return {
            'claimed': self.claimed,
            'delivered': self.delivered,
            'retried': self.retried,
            'deadLettered': self.dead_lettered,
            'lost': self.lost,
            'skipped': self.skipped,
        }


class OutboxDispatcher:
    """Delivers outbox rows to the consumers in a SubscriberRegistry"""

    def __init__(self, registry: SubscriberRegistry,
                 outbox_repo: Optional[OutboxRepository] = None,
                 worker_id: Optional[str] = None,
                 batch_size: int = 50,
                 lease_seconds: int = 30,
                 max_attempts: int = 8,
                 backoff: Optional[ExponentialBackoff] = None,
                 dispatch_timeout: Optional[float] = None,
                 clock: Callable = utcnow,
                 app=None):
        if max_attempts < 1:
            raise ValueError('max_attempts must be at least 1')
        self.registry = registry
        self.outbox_repo = outbox_repo or OutboxRepository()
        self.worker_id = worker_id or default_worker_id()
        self.batch_size = batch_size
        self.lease_seconds = lease_seconds
        self.max_attempts = max_attempts
        self.backoff = backoff or ExponentialBackoff()
        self.dispatch_timeout = dispatch_timeout
        self.clock = clock
        self.app = app
        self._executor = None

    @classmethod
    def from_app(cls, app, registry: SubscriberRegistry, **overrides):
        """Build a dispatcher from the app configuration"""
        options = dict(
            batch_size=app.config['OUTBOX_BATCH_SIZE'],
            lease_seconds=app.config['OUTBOX_LEASE_SECONDS'],
            max_attempts=app.config['OUTBOX_MAX_ATTEMPTS'],
            backoff=ExponentialBackoff(
                base_seconds=app.config['OUTBOX_BACKOFF_BASE_SECONDS'],
                cap_seconds=app.config['OUTBOX_BACKOFF_CAP_SECONDS']
            ),
            dispatch_timeout=app.config.get('OUTBOX_DISPATCH_TIMEOUT_SECONDS'),
            app=app
        )
        options.update(overrides)
        return cls(registry, **options)

    def run_once(self) -> DispatchSummary:
        """Claim and dispatch one batch of ready rows"""
        summary = DispatchSummary()
        row_ids = self.outbox_repo.find_claimable_ids(self.clock(), self.batch_size)

        for row_id in row_ids:
            if not self.outbox_repo.claim(row_id, self.worker_id, self.clock(), self.lease_seconds):
                # Another dispatcher claimed it between the scan and the claim
                summary.skipped += 1
                continue
            summary.claimed += 1
            summary.record(self.dispatch_claimed(row_id))

        if summary.claimed:
            logger.info(f"Outbox dispatch cycle: {summary.to_dict()}")
        return summary

    def dispatch_claimed(self, row_id: int) -> str:
        """Deliver a row this dispatcher has claimed; returns the outcome"""
        row = self.outbox_repo.get_by_id(row_id)
        event_id = row.event_id
        attempts = row.attempts
        acknowledged = set(row.delivered_to or [])
        extra = {"eventId": event_id, "correlationId": row.correlation_id}

        if attempts > self.max_attempts:
            # Earlier claims all lapsed without recording an outcome
            terminal = TerminalDeliveryError(event_id, attempts - 1, 'lease expired without an outcome')
            return self._dead_letter(row_id, event_id, attempts, terminal, extra)

        try:
            envelope = envelope_from_outbox(row)
        except NON_RETRYABLE_ERRORS as e:
            return self._dead_letter(row_id, event_id, attempts, e, extra)

        for name, handler in self.registry.get_subscribers(envelope.event_type):
            if name in acknowledged:
                continue
            try:
                self._invoke(handler, envelope)
            except NON_RETRYABLE_ERRORS as e:
                self.outbox_repo.rollback()
                return self._dead_letter(row_id, event_id, attempts, e, extra, consumer=name)
            except Exception as e:
                self.outbox_repo.rollback()
                return self._fail(row_id, event_id, attempts, e, extra, consumer=name)

            if not self.outbox_repo.record_consumer_ack(row_id, self.worker_id, name, self.clock()):
                logger.warning(f"Lease on event {event_id} lost before {name} could be acknowledged", extra=extra)
                return LEASE_LOST

        if not self.outbox_repo.mark_delivered(row_id, self.worker_id, self.clock()):
            logger.warning(f"Lease on event {event_id} lost before delivery was recorded", extra=extra)
            return LEASE_LOST

        logger.info(f"Delivered {envelope.event_type} event {event_id} (attempt {attempts})", extra=extra)
        return DELIVERED

    def _invoke(self, handler, envelope):
        if not self.dispatch_timeout:
            return handler(envelope)

        future = self._get_executor().submit(self._run_in_app_context, handler, envelope)
        try:
            return future.result(timeout=self.dispatch_timeout)
        except FutureTimeoutError:
            future.cancel()
            raise TransientInfraError(
                f"Consumer timed out after {self.dispatch_timeout}s on event {envelope.event_id}"
            )

    def _run_in_app_context(self, handler, envelope):
        if self.app is None:
            return handler(envelope)
        with self.app.app_context():
            return handler(envelope)

    def _get_executor(self):
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix='outbox-consumer')
        return self._executor

    def _fail(self, row_id, event_id, attempts, error, extra, consumer=None) -> str:
        description = self._describe(error, consumer)

        if attempts >= self.max_attempts:
            terminal = TerminalDeliveryError(event_id, attempts, description)
            logger.error(f"{terminal.message}; dead-lettering. Last error: {description}", extra=extra)
            if self.outbox_repo.mark_dead_lettered(row_id, self.worker_id, description, self.clock()):
                return DEAD_LETTERED
            return LEASE_LOST

        now = self.clock()
        delay = self.backoff.delay(attempts)
        next_retry_at = now + timedelta(seconds=delay)
        logger.warning(
            f"Delivery of event {event_id} failed (attempt {attempts}/{self.max_attempts}): {description}. "
            f"Retrying in {delay:.2f}s",
            extra=extra
        )
        if self.outbox_repo.mark_for_retry(row_id, self.worker_id, next_retry_at, description, now):
            return RETRY_SCHEDULED
        return LEASE_LOST

    def _dead_letter(self, row_id, event_id, attempts, error, extra, consumer=None) -> str:
        description = self._describe(error, consumer)
        logger.error(f"Event {event_id} cannot be delivered, dead-lettering: {description}", extra=extra)
        if self.outbox_repo.mark_dead_lettered(row_id, self.worker_id, description, self.clock()):
            return DEAD_LETTERED
        return LEASE_LOST

    @staticmethod
    def _describe(error, consumer=None) -> str:
        prefix = f"[{consumer}] " if consumer else ''
        return f"{prefix}{error.__class__.__name__}: {error}"

    def shutdown(self):
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
