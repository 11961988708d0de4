"""
Outbox delivery: claiming, retry scheduling and dead-lettering
"""

from catalog_inventory.outbox.backoff import ExponentialBackoff
from catalog_inventory.outbox.dispatcher import (
    DEAD_LETTERED,
    DELIVERED,
    LEASE_LOST,
    RETRY_SCHEDULED,
    DispatchSummary,
    OutboxDispatcher,
)

__all__ = [
    'ExponentialBackoff',
    'OutboxDispatcher',
    'DispatchSummary',
    'DELIVERED',
    'RETRY_SCHEDULED',
    'DEAD_LETTERED',
    'LEASE_LOST',
]
