"""
Inventory Item Model
"""

from catalog_inventory.database import db
from catalog_inventory.utils.clock import utcnow


class InventoryItem(db.Model):
    """Stock level of one product variation in one country"""
    __tablename__ = 'inventory_items'
    __table_args__ = (
        db.UniqueConstraint('product_variation_id', 'country_code', name='uq_inventory_variation_country'),
        db.CheckConstraint('quantity >= 0', name='ck_inventory_quantity_non_negative'),
    )

    id = db.Column(db.Integer, primary_key=True)
    product_variation_id = db.Column(
        db.Integer,
        db.ForeignKey('product_variations.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    country_code = db.Column(db.String(2), nullable=False)
    quantity = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    product_variation = db.relationship('ProductVariation', back_populates='inventory_items')

    def __repr__(self):
        return f'<InventoryItem {self.product_variation_id}/{self.country_code}>'

    @property
    def is_awaiting_stock(self):
        """Initialized but never stocked"""
        return self.quantity == 0

    def to_dict(self, include_variation=True):
        """Convert to dictionary"""
        data = {
            'id': self.id,
            'productVariationId': self.product_variation_id,
            'countryCode': self.country_code,
            'quantity': self.quantity,
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat()
        }
        if include_variation and self.product_variation is not None:
            data['productVariation'] = self.product_variation.to_dict(include_product=True)
        return data
