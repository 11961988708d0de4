"""
Repository package
"""

from .catalog_repository import CategoryRepository, ProductRepository
from .inventory_repository import InventoryRepository
from .outbox_repository import OutboxRepository

__all__ = [
    'CategoryRepository',
    'ProductRepository',
    'InventoryRepository',
    'OutboxRepository',
]
