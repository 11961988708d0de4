"""
Models package
"""

from catalog_inventory.database import db
from catalog_inventory.models.enums import VariationType, OutboxStatus
from catalog_inventory.models.category import Category
from catalog_inventory.models.product import Product, ProductVariation
from catalog_inventory.models.inventory_item import InventoryItem
from catalog_inventory.models.outbox import OutboxEvent

__all__ = [
    'db',
    'VariationType',
    'OutboxStatus',
    'Category',
    'Product',
    'ProductVariation',
    'InventoryItem',
    'OutboxEvent',
]
