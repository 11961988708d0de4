"""
Product and ProductVariation Models
"""

from catalog_inventory.database import db
from catalog_inventory.models.enums import VariationType
from catalog_inventory.utils.clock import utcnow


class Product(db.Model):
    """Catalog product owned by a merchant"""
    __tablename__ = 'products'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(100), unique=True, nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    about = db.Column(db.JSON, nullable=False, default=list)
    details = db.Column(db.JSON, nullable=True)
    variation_type = db.Column(db.Enum(VariationType), default=VariationType.NONE, nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=False, index=True)
    merchant_id = db.Column(db.Integer, nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    category = db.relationship('Category', lazy='joined')
    variations = db.relationship(
        'ProductVariation',
        back_populates='product',
        cascade='all, delete-orphan',
        order_by='ProductVariation.id',
        lazy=True
    )

    def __repr__(self):
        return f'<Product {self.code}>'

    def to_dict(self, include_variations=False):
        data = {
            'id': self.id,
            'code': self.code,
            'title': self.title,
            'description': self.description,
            'about': self.about or [],
            'details': self.details,
            'variationType': self.variation_type.value,
            'isActive': self.is_active,
            'merchantId': self.merchant_id,
            'categoryId': self.category_id,
            'category': self.category.to_dict() if self.category else None,
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat()
        }
        if include_variations:
            data['variations'] = [variation.to_dict() for variation in self.variations]
        return data


class ProductVariation(db.Model):
    """A sellable variation of a product (size and/or color)"""
    __tablename__ = 'product_variations'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey('products.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    size_code = db.Column(db.String(20), nullable=True)
    color_name = db.Column(db.String(50), nullable=True)
    image_urls = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    product = db.relationship('Product', back_populates='variations')
    inventory_items = db.relationship(
        'InventoryItem',
        back_populates='product_variation',
        cascade='all, delete-orphan',
        lazy=True
    )

    def __repr__(self):
        return f'<ProductVariation {self.id} of product {self.product_id}>'

    def to_dict(self, include_product=False):
        data = {
            'id': self.id,
            'productId': self.product_id,
            'sizeCode': self.size_code,
            'colorName': self.color_name,
            'imageUrls': self.image_urls or [],
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat()
        }
        if include_product and self.product is not None:
            data['product'] = self.product.to_dict()
        return data
