"""
Event consumers
"""

from .inventory_initializer import InventoryInitializationConsumer

__all__ = ['InventoryInitializationConsumer']
