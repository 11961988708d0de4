"""
Catalog Repository Implementations
"""

from typing import List, Optional

from catalog_inventory.database import db
from catalog_inventory.models import Category, Product
from .base import CategoryRepositoryInterface, ProductRepositoryInterface

DEFAULT_CATEGORIES = (
    (1, 'Computers'),
    (2, 'Fashion'),
)


class CategoryRepository(CategoryRepositoryInterface):
    """Concrete implementation of category repository"""

    def get_by_id(self, category_id: int) -> Optional[Category]:
        return db.session.get(Category, category_id)

    def get_all(self) -> List[Category]:
        return Category.query.order_by(Category.id).all()

    def seed_defaults(self) -> int:
        """Insert the default categories that are missing; returns how many were added"""
        added = 0
        for category_id, name in DEFAULT_CATEGORIES:
            if db.session.get(Category, category_id) is None:
                db.session.add(Category(id=category_id, name=name))
                added += 1
        db.session.commit()
        return added


class ProductRepository(ProductRepositoryInterface):
    """
    Concrete implementation of product repository.

    Writes are flushed but not committed; the catalog service commits the
    product together with its outbox row.
    """

    def get_by_id(self, product_id: int) -> Optional[Product]:
        return db.session.get(Product, product_id)

    def get_by_code(self, code: str) -> Optional[Product]:
        return Product.query.filter_by(code=code).first()

    def get_all(self) -> List[Product]:
        return Product.query.order_by(Product.created_at.asc(), Product.id.asc()).all()

    def add(self, product: Product) -> Product:
        """Stage product and flush so identities are assigned"""
        db.session.add(product)
        db.session.flush()
        return product

    def flush(self):
        db.session.flush()

    def delete(self, product: Product) -> None:
        db.session.delete(product)

    def commit(self):
        db.session.commit()

    def rollback(self):
        db.session.rollback()
