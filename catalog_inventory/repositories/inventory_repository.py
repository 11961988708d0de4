"""
Inventory Repository Implementation
"""

from typing import List, Optional

from sqlalchemy import insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from catalog_inventory.database import db
from catalog_inventory.models import InventoryItem, ProductVariation
from catalog_inventory.utils.clock import utcnow
from .base import InventoryRepositoryInterface

UNIQUE_KEY = ('product_variation_id', 'country_code')


class InventoryRepository(InventoryRepositoryInterface):
    """Concrete implementation of inventory repository"""

    def _insert_ignore_statement(self, values):
        table = InventoryItem.__table__
        dialect = db.session.get_bind().dialect.name

        if dialect == 'postgresql':
            return postgresql.insert(table).values(**values).on_conflict_do_nothing(index_elements=UNIQUE_KEY)
        if dialect == 'sqlite':
            return sqlite.insert(table).values(**values).on_conflict_do_nothing(index_elements=UNIQUE_KEY)
        if dialect in ('mysql', 'mariadb'):
            return insert(table).values(**values).prefix_with('IGNORE')
        return None

    def insert_if_absent(self, product_variation_id: int, country_code: str) -> bool:
        """
        Insert a zero-quantity row unless one exists for the pair.

        A single statement keyed on the unique constraint, so concurrent
        callers for the same pair end with exactly one row.

        Returns:
            bool: True if this call created the row
        """
        now = utcnow()
        values = {
            'product_variation_id': product_variation_id,
            'country_code': country_code,
            'quantity': 0,
            'created_at': now,
            'updated_at': now,
        }

        statement = self._insert_ignore_statement(values)
        if statement is None:
            # Dialects without an upsert clause: rely on the unique constraint
            try:
                db.session.execute(insert(InventoryItem.__table__).values(**values))
                db.session.commit()
                return True
            except IntegrityError:
                db.session.rollback()
                return False

        try:
            inserted = db.session.execute(statement).rowcount == 1
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return inserted

    def get_by_id(self, item_id: int) -> Optional[InventoryItem]:
        return db.session.get(InventoryItem, item_id)

    def get_by_variation_and_country(self, product_variation_id: int, country_code: str) -> Optional[InventoryItem]:
        return InventoryItem.query.filter_by(
            product_variation_id=product_variation_id,
            country_code=country_code
        ).first()

    def get_all_ordered(self) -> List[InventoryItem]:
        """All items, oldest first, with variation and product loaded"""
        return InventoryItem.query.options(
            joinedload(InventoryItem.product_variation).joinedload(ProductVariation.product)
        ).order_by(InventoryItem.created_at.asc(), InventoryItem.id.asc()).all()

    def update_quantity(self, item_id: int, quantity: int) -> bool:
        """Set quantity in one UPDATE; returns False when the item does not exist"""
        try:
            count = InventoryItem.query.filter_by(id=item_id).update(
                {'quantity': quantity, 'updated_at': utcnow()},
                synchronize_session=False
            )
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return count == 1

    def variation_exists(self, product_variation_id: int) -> bool:
        return db.session.query(
            ProductVariation.query.filter_by(id=product_variation_id).exists()
        ).scalar()
