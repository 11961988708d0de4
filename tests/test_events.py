import pytest
from unittest.mock import MagicMock

from catalog_inventory.database import db
from catalog_inventory.events import (
    PRODUCT_CREATED, InMemoryEventBus, OutboxEventBus, ProductCreated, SubscriberRegistry, new_envelope
)
from catalog_inventory.events.envelope import decode_payload, encode_payload, envelope_from_outbox
from catalog_inventory.models import Category, OutboxEvent, OutboxStatus
from catalog_inventory.utils.exceptions import UnknownEventTypeError, ValidationError


def make_envelope(product_id=1, variation_ids=(10, 11)):
    return new_envelope(
        ProductCreated(product_id=product_id, variation_ids=tuple(variation_ids), merchant_id=1),
        aggregate_type='product',
        aggregate_id=product_id,
        correlation_id='corr-1'
    )


class TestEnvelope:
    """Test event envelopes and payload schemas."""

    def test_new_envelope(self):
        envelope = make_envelope()

        assert envelope.event_type == PRODUCT_CREATED
        assert envelope.schema_version == 1
        assert envelope.aggregate_id == '1'
        assert envelope.event_id != make_envelope().event_id

    def test_payload_survives_storage(self):
        envelope = make_envelope()

        payload = encode_payload(envelope)

        assert payload == {'productId': 1, 'variationIds': [10, 11], 'merchantId': 1}
        assert decode_payload(PRODUCT_CREATED, 1, payload) == envelope.data

    def test_unknown_event_type(self):
        with pytest.raises(UnknownEventTypeError):
            decode_payload('product.renamed', 1, {})

    def test_unknown_schema_version(self):
        with pytest.raises(UnknownEventTypeError):
            decode_payload(PRODUCT_CREATED, 2, {'productId': 1, 'variationIds': [], 'merchantId': 1})

    def test_malformed_payload(self):
        with pytest.raises(ValidationError):
            decode_payload(PRODUCT_CREATED, 1, {'productId': 'one', 'variationIds': [1]})


class TestSubscriberRegistry:
    """Test consumer registration."""

    def test_subscribers_in_registration_order(self):
        registry = SubscriberRegistry()
        first, second = MagicMock(), MagicMock()
        registry.subscribe(PRODUCT_CREATED, 'first', first)
        registry.subscribe(PRODUCT_CREATED, 'second', second)

        assert registry.get_subscribers(PRODUCT_CREATED) == [('first', first), ('second', second)]
        assert PRODUCT_CREATED in registry
        assert 'product.deleted' not in registry

    def test_duplicate_name_rejected(self):
        registry = SubscriberRegistry()
        registry.subscribe(PRODUCT_CREATED, 'consumer', MagicMock())

        with pytest.raises(ValueError):
            registry.subscribe(PRODUCT_CREATED, 'consumer', MagicMock())


class TestInMemoryEventBus:
    """Test the process-local bus."""

    def test_publish_requires_start(self):
        bus = InMemoryEventBus()

        with pytest.raises(RuntimeError):
            bus.publish(make_envelope())

    def test_publish_does_not_invoke_consumers(self):
        bus = InMemoryEventBus()
        handler = MagicMock()
        bus.subscribe(PRODUCT_CREATED, 'consumer', handler)
        bus.start()

        bus.publish(make_envelope())

        handler.assert_not_called()
        assert bus.drain() == 1
        handler.assert_called_once()

    def test_failed_consumer_redelivered_without_repeating_acked_ones(self):
        bus = InMemoryEventBus()
        first = MagicMock()
        second = MagicMock(side_effect=[RuntimeError('db down'), None])
        bus.subscribe(PRODUCT_CREATED, 'first', first)
        bus.subscribe(PRODUCT_CREATED, 'second', second)
        bus.start()
        envelope = make_envelope()
        bus.publish(envelope)

        with pytest.raises(RuntimeError):
            bus.drain()
        assert len(bus.pending) == 1

        bus.drain()

        assert first.call_count == 1
        assert second.call_count == 2
        assert second.call_args_list[1].args[0].event_id == envelope.event_id
        assert bus.delivered == [envelope]

    def test_stopped_bus_rejects_publish(self):
        bus = InMemoryEventBus()
        bus.start()
        bus.stop()

        with pytest.raises(RuntimeError):
            bus.publish(make_envelope())


class TestOutboxEventBus:
    """Test the transactional outbox bus."""

    def test_publish_stages_row_in_caller_transaction(self, db_session):
        bus = OutboxEventBus(SubscriberRegistry())
        bus.start()
        envelope = make_envelope()

        bus.publish(envelope)
        db.session.rollback()

        assert OutboxEvent.query.count() == 0

        bus.publish(envelope)
        db.session.commit()

        row = OutboxEvent.query.one()
        assert row.event_id == envelope.event_id
        assert row.status == OutboxStatus.PENDING
        assert row.correlation_id == 'corr-1'
        assert envelope_from_outbox(row).data == envelope.data

    def test_listeners_notified_after_commit_only(self, db_session):
        bus = OutboxEventBus(SubscriberRegistry())
        listener = MagicMock()
        bus.add_publish_listener(listener)
        bus.start()

        bus.publish(make_envelope())
        listener.assert_not_called()
        db.session.commit()

        listener.assert_called_once()

    def test_listeners_notified_once_per_transaction(self, db_session):
        bus = OutboxEventBus(SubscriberRegistry())
        listener = MagicMock()
        bus.add_publish_listener(listener)
        bus.start()

        bus.publish(make_envelope(product_id=1))
        bus.publish(make_envelope(product_id=2))
        db.session.commit()

        listener.assert_called_once()

    def test_rolled_back_publish_does_not_notify_later_commit(self, db_session):
        bus = OutboxEventBus(SubscriberRegistry())
        listener = MagicMock()
        bus.add_publish_listener(listener)
        bus.start()

        bus.publish(make_envelope())
        db.session.rollback()
        db.session.add(Category(id=99, name='Toys'))
        db.session.commit()

        listener.assert_not_called()

        bus.publish(make_envelope())
        db.session.commit()

        listener.assert_called_once()

    def test_publish_requires_start(self, db_session):
        bus = OutboxEventBus(SubscriberRegistry())

        with pytest.raises(RuntimeError):
            bus.publish(make_envelope())
