"""
Inventory Initialization Consumer
Initializes inventory for newly created product variations
"""

import logging
from typing import Iterable, Optional

from catalog_inventory.events.envelope import PRODUCT_CREATED, PRODUCT_VARIATIONS_ADDED, EventEnvelope
from catalog_inventory.services.inventory_service import InventoryService, normalize_country_code
from catalog_inventory.utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_COUNTRY_CODES = ('US',)


class InventoryInitializationConsumer:
    """
    Creates one zero-quantity inventory record per variation and country.

    The handler returns only after every record for the event exists. Any
    failure propagates, leaving the event unacknowledged so the whole batch
    is redelivered; records that already exist are left as they are.
    """

    name = 'inventory-initializer'
    event_types = (PRODUCT_CREATED, PRODUCT_VARIATIONS_ADDED)

    def __init__(self, inventory_service: Optional[InventoryService] = None,
                 country_codes: Optional[Iterable[str]] = None):
        self.inventory_service = inventory_service or InventoryService()
        codes = list(country_codes) if country_codes else list(DEFAULT_COUNTRY_CODES)
        # Preserve configured order, drop duplicates
        self.country_codes = list(dict.fromkeys(normalize_country_code(code) for code in codes))

    def subscribe(self, bus):
        for event_type in self.event_types:
            bus.subscribe(event_type, self.name, self.handle)

    def handle(self, envelope: EventEnvelope) -> dict:
        """
        Handle product.created / product.variations_added

        Args:
            envelope: Event envelope whose data lists the variation ids
        """
        event = envelope.data
        extra = {"eventId": envelope.event_id, "correlationId": envelope.correlation_id}

        logger.info(
            f"Initializing inventory for product {event.product_id}: "
            f"{len(event.variation_ids)} variation(s) x {len(self.country_codes)} country(ies)",
            extra=extra
        )

        initialized = 0
        skipped = []
        for variation_id in event.variation_ids:
            for country_code in self.country_codes:
                try:
                    self.inventory_service.ensure_initialized(variation_id, country_code)
                except NotFoundError:
                    # Product deleted before the event was dispatched
                    logger.warning(
                        f"Variation {variation_id} of product {event.product_id} no longer exists, skipping",
                        extra=extra
                    )
                    skipped.append(variation_id)
                    break
                initialized += 1

        logger.info(
            f"Inventory ready for product {event.product_id}: {initialized} record(s), "
            f"{len(skipped)} variation(s) skipped",
            extra=extra
        )
        return {'status': 'success', 'initialized': initialized, 'skipped': skipped}
