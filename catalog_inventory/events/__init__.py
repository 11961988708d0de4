"""
Event envelope, subscriber registry and bus implementations
"""

from catalog_inventory.events.envelope import (
    PRODUCT_CREATED,
    PRODUCT_VARIATIONS_ADDED,
    EventEnvelope,
    ProductCreated,
    ProductVariationsAdded,
    new_envelope,
)
from catalog_inventory.events.registry import SubscriberRegistry
from catalog_inventory.events.bus import EventBus, InMemoryEventBus, OutboxEventBus

__all__ = [
    'PRODUCT_CREATED',
    'PRODUCT_VARIATIONS_ADDED',
    'EventEnvelope',
    'ProductCreated',
    'ProductVariationsAdded',
    'new_envelope',
    'SubscriberRegistry',
    'EventBus',
    'InMemoryEventBus',
    'OutboxEventBus',
]
