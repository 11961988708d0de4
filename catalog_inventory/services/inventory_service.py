"""
Inventory Service - Business logic for inventory records
"""

import logging
import re
from typing import List, Optional

from flask import current_app

from catalog_inventory.models import InventoryItem
from catalog_inventory.repositories import InventoryRepository
from catalog_inventory.utils.exceptions import NotFoundError, TransientInfraError, ValidationError

logger = logging.getLogger(__name__)

COUNTRY_CODE_PATTERN = re.compile(r'^[A-Z]{2}$')


def normalize_country_code(country_code) -> str:
    """Upper-case ISO-3166 alpha-2 code, or ValidationError"""
    if not isinstance(country_code, str):
        raise ValidationError('countryCode must be a string', details={'countryCode': country_code})
    normalized = country_code.strip().upper()
    if not COUNTRY_CODE_PATTERN.match(normalized):
        raise ValidationError(
            f"Invalid country code: {country_code!r}",
            details={'countryCode': ['Must be a two-letter ISO country code.']}
        )
    return normalized


class InventoryService:
    """Business logic for inventory initialization and stock levels"""

    def __init__(self, inventory_repo: Optional[InventoryRepository] = None):
        self.inventory_repo = inventory_repo or InventoryRepository()

    def ensure_initialized(self, product_variation_id: int, country_code: str) -> InventoryItem:
        """
        Make sure one inventory record exists for the variation in the country.

        Safe to call any number of times: an existing record is returned
        untouched, quantity included.

        Raises:
            ValidationError: malformed country code
            NotFoundError: the variation does not exist
        """
        country_code = normalize_country_code(country_code)

        if not self.inventory_repo.variation_exists(product_variation_id):
            raise NotFoundError(f"Product variation {product_variation_id} not found")

        created = self.inventory_repo.insert_if_absent(product_variation_id, country_code)
        item = self.inventory_repo.get_by_variation_and_country(product_variation_id, country_code)

        if item is None:
            # Row vanished between insert and read: the variation was deleted concurrently
            raise TransientInfraError(
                f"Inventory for variation {product_variation_id}/{country_code} disappeared after upsert"
            )

        if created:
            logger.info(f"Initialized inventory for variation {product_variation_id} in {country_code}")
        else:
            logger.debug(f"Inventory for variation {product_variation_id} in {country_code} already initialized")
        return item

    def update_stock(self, item_id: int, quantity) -> InventoryItem:
        """
        Set the stock quantity of an inventory item

        Raises:
            ValidationError: quantity is not a non-negative integer
            NotFoundError: no item with that id
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError('Quantity must be an integer', details={'quantity': ['Not a valid integer.']})
        if quantity < 0:
            raise ValidationError(
                'Quantity cannot be negative',
                details={'quantity': ['Must be greater than or equal to 0.']}
            )

        if not self.inventory_repo.update_quantity(item_id, quantity):
            raise NotFoundError(f"Inventory item {item_id} not found")

        logger.info(f"Stock for inventory item {item_id} set to {quantity}")
        return self.inventory_repo.get_by_id(item_id)

    def list_all(self) -> List[InventoryItem]:
        """All inventory items, oldest first"""
        return self.inventory_repo.get_all_ordered()

    def get_by_variation(self, product_variation_id: int, country_code: Optional[str] = None) -> InventoryItem:
        """Item for a variation in one country; defaults to the first configured country"""
        if country_code is None:
            country_code = current_app.config['INVENTORY_COUNTRY_CODES'][0]
        country_code = normalize_country_code(country_code)
        item = self.inventory_repo.get_by_variation_and_country(product_variation_id, country_code)
        if not item:
            raise NotFoundError(
                f"Inventory for variation {product_variation_id} in {country_code} not found"
            )
        return item
