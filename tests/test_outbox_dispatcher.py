import random
import threading
from datetime import timedelta

import pytest
from unittest.mock import MagicMock

from catalog_inventory.database import db
from catalog_inventory.events import PRODUCT_CREATED, ProductCreated, SubscriberRegistry, new_envelope
from catalog_inventory.models import InventoryItem, OutboxEvent, OutboxStatus
from catalog_inventory.outbox import ExponentialBackoff, OutboxDispatcher
from catalog_inventory.repositories import OutboxRepository
from catalog_inventory.services import CatalogService, OutboxService
from catalog_inventory.utils.exceptions import TransientInfraError, ValidationError
from tests.conftest import widget_payload


def stage(event_bus, product_id=1, variation_ids=(1,)):
    """Commit one product.created outbox row"""
    envelope = new_envelope(
        ProductCreated(product_id=product_id, variation_ids=tuple(variation_ids), merchant_id=1),
        aggregate_type='product',
        aggregate_id=product_id
    )
    event_bus.publish(envelope)
    db.session.commit()
    return envelope


def row_for(envelope):
    db.session.expire_all()
    return OutboxEvent.query.filter_by(event_id=envelope.event_id).one()


def make_dispatcher(app, clock, consumers, **overrides):
    registry = SubscriberRegistry()
    for name, handler in consumers:
        registry.subscribe(PRODUCT_CREATED, name, handler)
    options = dict(
        worker_id='test-worker',
        lease_seconds=30,
        max_attempts=3,
        backoff=ExponentialBackoff(base_seconds=1.0, cap_seconds=8.0, jitter=False),
        clock=clock,
        app=app
    )
    options.update(overrides)
    return OutboxDispatcher(registry, **options)


class TestDelivery:
    """Test successful delivery."""

    def test_delivers_to_inventory_initializer(self, db_session, dispatcher):
        """Test a created product ends with inventory after one dispatch cycle."""
        product = CatalogService().create_product(widget_payload(), merchant_id=1)

        summary = dispatcher.run_once()

        assert summary.claimed == 1
        assert summary.delivered == 1
        row = OutboxEvent.query.one()
        assert row.status == OutboxStatus.DELIVERED
        assert row.delivered_to == ['inventory-initializer']
        assert row.delivered_at is not None
        assert row.claimed_by is None
        item = InventoryItem.query.one()
        assert item.product_variation_id == product.variations[0].id
        assert item.quantity == 0

    def test_delivered_rows_not_dispatched_again(self, db_session, dispatcher):
        CatalogService().create_product(widget_payload(), merchant_id=1)
        dispatcher.run_once()

        assert dispatcher.run_once().claimed == 0
        assert InventoryItem.query.count() == 1

    def test_from_app_reads_config(self, app):
        dispatcher = app.extensions['outbox_dispatcher']

        assert dispatcher.max_attempts == app.config['OUTBOX_MAX_ATTEMPTS']
        assert dispatcher.lease_seconds == app.config['OUTBOX_LEASE_SECONDS']
        assert dispatcher.dispatch_timeout is None


class TestRetry:
    """Test retry scheduling and dead-lettering."""

    def test_transient_failure_schedules_retry_with_backoff(self, app, db_session, event_bus, clock):
        handler = MagicMock(side_effect=TransientInfraError('database unavailable'))
        dispatcher = make_dispatcher(app, clock, [('flaky', handler)])
        envelope = stage(event_bus)
        before = clock()

        summary = dispatcher.run_once()

        assert summary.retried == 1
        row = row_for(envelope)
        assert row.status == OutboxStatus.PENDING
        assert row.attempts == 1
        assert 'TransientInfraError' in row.last_error
        assert timedelta(seconds=0.9) < row.next_retry_at - before < timedelta(seconds=1.5)

        # Not ready until the backoff elapses
        assert dispatcher.run_once().claimed == 0
        clock.advance(1.5)
        dispatcher.run_once()

        row = row_for(envelope)
        assert row.attempts == 2
        assert row.next_retry_at - clock() > timedelta(seconds=1.5)

    def test_retry_succeeds_with_same_event_id(self, app, db_session, event_bus, clock):
        handler = MagicMock(side_effect=[RuntimeError('boom'), None])
        dispatcher = make_dispatcher(app, clock, [('flaky', handler)])
        envelope = stage(event_bus)

        dispatcher.run_once()
        clock.advance(2)
        summary = dispatcher.run_once()

        assert summary.delivered == 1
        assert [call.args[0].event_id for call in handler.call_args_list] == [envelope.event_id] * 2
        assert row_for(envelope).status == OutboxStatus.DELIVERED

    def test_dead_lettered_after_max_attempts(self, app, db_session, event_bus, clock):
        handler = MagicMock(side_effect=TransientInfraError('still down'))
        dispatcher = make_dispatcher(app, clock, [('flaky', handler)])
        envelope = stage(event_bus)

        for _ in range(3):
            dispatcher.run_once()
            clock.advance(10)

        row = row_for(envelope)
        assert row.status == OutboxStatus.FAILED
        assert row.attempts == 3
        assert handler.call_count == 3
        assert dispatcher.run_once().claimed == 0

    def test_requeued_dead_letter_is_delivered(self, app, db_session, event_bus, clock):
        handler = MagicMock(side_effect=TransientInfraError('still down'))
        dispatcher = make_dispatcher(app, clock, [('flaky', handler)], max_attempts=1)
        envelope = stage(event_bus)
        dispatcher.run_once()
        assert row_for(envelope).status == OutboxStatus.FAILED

        requeued = OutboxService().requeue(envelope.event_id)
        assert requeued.status == OutboxStatus.PENDING
        assert requeued.attempts == 0

        handler.side_effect = None
        clock.advance(1)
        assert dispatcher.run_once().delivered == 1

    def test_validation_error_dead_letters_immediately(self, app, db_session, event_bus, clock):
        handler = MagicMock(side_effect=ValidationError('bad payload'))
        dispatcher = make_dispatcher(app, clock, [('strict', handler)])
        envelope = stage(event_bus)

        summary = dispatcher.run_once()

        assert summary.dead_lettered == 1
        row = row_for(envelope)
        assert row.status == OutboxStatus.FAILED
        assert row.attempts == 1
        assert '[strict] ValidationError' in row.last_error

    def test_unknown_event_type_dead_lettered(self, app, db_session, clock):
        handler = MagicMock()
        dispatcher = make_dispatcher(app, clock, [('consumer', handler)])
        now = clock()
        db_session.add(OutboxEvent(
            event_id='evt-unknown',
            event_type='product.renamed',
            schema_version=1,
            aggregate_type='product',
            aggregate_id='1',
            payload={},
            status=OutboxStatus.PENDING,
            delivered_to=[],
            occurred_at=now,
            next_retry_at=now
        ))
        db_session.commit()

        dispatcher.run_once()

        assert OutboxEvent.query.one().status == OutboxStatus.FAILED
        handler.assert_not_called()

    def test_consumer_timeout_is_retryable(self, app, db_session, event_bus, clock):
        release = threading.Event()
        dispatcher = make_dispatcher(
            app, clock, [('slow', lambda envelope: release.wait(2))], dispatch_timeout=0.05
        )
        envelope = stage(event_bus)

        try:
            summary = dispatcher.run_once()
        finally:
            release.set()
            dispatcher.shutdown()

        assert summary.retried == 1
        assert 'timed out' in row_for(envelope).last_error


class TestClaimAndLease:
    """Test exclusive claims and lease expiry."""

    def test_only_one_claim_succeeds(self, db_session, event_bus, clock):
        envelope = stage(event_bus)
        row_id = row_for(envelope).id
        repo = OutboxRepository()

        assert repo.claim(row_id, 'worker-a', clock(), 30) is True
        assert repo.claim(row_id, 'worker-b', clock(), 30) is False
        assert row_for(envelope).claimed_by == 'worker-a'

    def test_crashed_dispatcher_redelivered_after_lease_expiry(self, db_session, event_bus, dispatcher, clock):
        """Test a claim abandoned by a crash is delivered once the lease runs out."""
        product = CatalogService().create_product(widget_payload(), merchant_id=1)
        row_id = OutboxEvent.query.one().id
        repo = OutboxRepository()
        assert repo.claim(row_id, 'crashed-worker', clock(), 30)

        assert dispatcher.run_once().claimed == 0
        clock.advance(31)
        summary = dispatcher.run_once()

        assert summary.delivered == 1
        row = db_session.get(OutboxEvent, row_id)
        assert row.status == OutboxStatus.DELIVERED
        assert row.attempts == 2
        assert InventoryItem.query.one().product_variation_id == product.variations[0].id
        # The crashed dispatcher can no longer change the row
        assert repo.mark_delivered(row_id, 'crashed-worker', clock()) is False

    def test_repeated_crashes_dead_letter_the_row(self, app, db_session, event_bus, clock):
        """Test a row whose claims keep lapsing is dead-lettered instead of claimed forever."""
        handler = MagicMock()
        dispatcher = make_dispatcher(app, clock, [('initializer', handler)])
        envelope = stage(event_bus)
        row_id = row_for(envelope).id
        repo = OutboxRepository()

        for n in range(dispatcher.max_attempts):
            assert repo.claim(row_id, f'crashed-worker-{n}', clock(), 30)
            clock.advance(31)

        summary = dispatcher.run_once()

        assert summary.dead_lettered == 1
        row = row_for(envelope)
        assert row.status == OutboxStatus.FAILED
        assert row.attempts == dispatcher.max_attempts + 1
        assert 'TerminalDeliveryError' in row.last_error
        handler.assert_not_called()

        clock.advance(3600)
        assert dispatcher.run_once().claimed == 0

    def test_acknowledged_consumers_skipped_on_redelivery(self, app, db_session, event_bus, clock):
        first = MagicMock()
        second = MagicMock(side_effect=[TransientInfraError('blip'), None])
        dispatcher = make_dispatcher(app, clock, [('first', first), ('second', second)])
        envelope = stage(event_bus)

        dispatcher.run_once()
        assert row_for(envelope).delivered_to == ['first']
        clock.advance(2)
        dispatcher.run_once()

        row = row_for(envelope)
        assert row.status == OutboxStatus.DELIVERED
        assert row.delivered_to == ['first', 'second']
        assert first.call_count == 1
        assert second.call_count == 2


class TestOrdering:
    """Test per-aggregate delivery order."""

    def test_later_event_waits_for_earlier_one(self, app, db_session, event_bus, clock):
        delivered = []
        failing = set()

        def handler(envelope):
            if envelope.event_id in failing:
                raise TransientInfraError('not yet')
            delivered.append(envelope.event_id)

        dispatcher = make_dispatcher(app, clock, [('recorder', handler)])
        first = stage(event_bus, product_id=1)
        second = stage(event_bus, product_id=1)
        other = stage(event_bus, product_id=2)
        failing.add(first.event_id)

        dispatcher.run_once()
        assert delivered == [other.event_id]
        assert row_for(second).attempts == 0

        failing.clear()
        clock.advance(2)
        dispatcher.run_once()
        dispatcher.run_once()

        assert delivered == [other.event_id, first.event_id, second.event_id]

    def test_dead_letter_does_not_block_aggregate(self, app, db_session, event_bus, clock):
        delivered = []
        poison = set()

        def handler(envelope):
            if envelope.event_id in poison:
                raise ValidationError('poison')
            delivered.append(envelope.event_id)

        dispatcher = make_dispatcher(app, clock, [('recorder', handler)])
        first = stage(event_bus, product_id=1)
        second = stage(event_bus, product_id=1)
        poison.add(first.event_id)

        dispatcher.run_once()
        dispatcher.run_once()

        assert row_for(first).status == OutboxStatus.FAILED
        assert delivered == [second.event_id]


class TestExponentialBackoff:
    """Test the retry delay policy."""

    def test_ceiling_doubles_until_cap(self):
        backoff = ExponentialBackoff(base_seconds=0.5, cap_seconds=4.0, jitter=False)

        assert [backoff.delay(n) for n in range(1, 7)] == [0.5, 1.0, 2.0, 4.0, 4.0, 4.0]
        assert backoff.ceiling(0) == 0.5
        assert backoff.ceiling(500) == 4.0

    def test_jitter_within_upper_half(self):
        backoff = ExponentialBackoff(base_seconds=1.0, cap_seconds=60.0, rng=random.Random(7))

        for attempt in range(1, 10):
            ceiling = backoff.ceiling(attempt)
            assert ceiling / 2 <= backoff.delay(attempt) <= ceiling

    @pytest.mark.parametrize('base,cap', [(0, 1), (-1, 1), (2, 1)])
    def test_invalid_bounds(self, base, cap):
        with pytest.raises(ValueError):
            ExponentialBackoff(base_seconds=base, cap_seconds=cap)
