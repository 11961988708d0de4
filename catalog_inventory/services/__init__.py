"""
Services package
"""

from .inventory_service import InventoryService
from .catalog_service import CatalogService
from .outbox_service import OutboxService

__all__ = ['InventoryService', 'CatalogService', 'OutboxService']
