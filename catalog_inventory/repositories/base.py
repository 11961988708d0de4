"""
Base Repository Interface - Abstract base classes
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from catalog_inventory.models import Category, InventoryItem, OutboxEvent, OutboxStatus, Product


class CategoryRepositoryInterface(ABC):
    """Abstract base class for category repository"""

    @abstractmethod
    def get_by_id(self, category_id: int) -> Optional[Category]:
        pass

    @abstractmethod
    def get_all(self) -> List[Category]:
        pass


class ProductRepositoryInterface(ABC):
    """Abstract base class for product repository"""

    @abstractmethod
    def get_by_id(self, product_id: int) -> Optional[Product]:
        pass

    @abstractmethod
    def get_by_code(self, code: str) -> Optional[Product]:
        pass

    @abstractmethod
    def get_all(self) -> List[Product]:
        pass

    @abstractmethod
    def add(self, product: Product) -> Product:
        pass

    @abstractmethod
    def delete(self, product: Product) -> None:
        pass


class InventoryRepositoryInterface(ABC):
    """Abstract base class for inventory repository"""

    @abstractmethod
    def insert_if_absent(self, product_variation_id: int, country_code: str) -> bool:
        pass

    @abstractmethod
    def get_by_id(self, item_id: int) -> Optional[InventoryItem]:
        pass

    @abstractmethod
    def get_by_variation_and_country(self, product_variation_id: int, country_code: str) -> Optional[InventoryItem]:
        pass

    @abstractmethod
    def get_all_ordered(self) -> List[InventoryItem]:
        pass

    @abstractmethod
    def update_quantity(self, item_id: int, quantity: int) -> bool:
        pass

    @abstractmethod
    def variation_exists(self, product_variation_id: int) -> bool:
        pass


class OutboxRepositoryInterface(ABC):
    """Abstract base class for outbox repository"""

    @abstractmethod
    def add(self, row: OutboxEvent) -> OutboxEvent:
        pass

    @abstractmethod
    def find_claimable_ids(self, now: datetime, limit: int) -> List[int]:
        pass

    @abstractmethod
    def claim(self, row_id: int, worker_id: str, now: datetime, lease_seconds: int) -> bool:
        pass

    @abstractmethod
    def record_consumer_ack(self, row_id: int, worker_id: str, consumer_name: str, now: datetime) -> bool:
        pass

    @abstractmethod
    def mark_delivered(self, row_id: int, worker_id: str, now: datetime) -> bool:
        pass

    @abstractmethod
    def mark_for_retry(self, row_id: int, worker_id: str, next_retry_at: datetime, error: str, now: datetime) -> bool:
        pass

    @abstractmethod
    def mark_dead_lettered(self, row_id: int, worker_id: str, error: str, now: datetime) -> bool:
        pass

    @abstractmethod
    def count_by_status(self) -> Dict[OutboxStatus, int]:
        pass
