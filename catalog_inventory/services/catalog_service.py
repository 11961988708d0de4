"""
Catalog Service - Business logic for products and their variations

Product writes and the events describing them are committed in one
transaction. The catalog only knows the event bus, never its consumers.
"""

import logging
from typing import Any, Dict, List, Optional

from flask import current_app
from marshmallow import ValidationError as SchemaValidationError
from sqlalchemy.exc import IntegrityError

from catalog_inventory.events import EventBus, ProductCreated, ProductVariationsAdded, new_envelope
from catalog_inventory.models import Category, Product, ProductVariation, VariationType
from catalog_inventory.repositories import CategoryRepository, ProductRepository
from catalog_inventory.utils.exceptions import ConflictError, NotFoundError, ValidationError
from catalog_inventory.utils.schemas import ProductCreateRequestSchema, VariationsAddRequestSchema

logger = logging.getLogger(__name__)

product_create_schema = ProductCreateRequestSchema()
variations_add_schema = VariationsAddRequestSchema()

PRODUCT_AGGREGATE = 'product'


def _load(schema, data):
    try:
        return schema.load(data if data is not None else {})
    except SchemaValidationError as e:
        raise ValidationError('Request data validation failed', details=e.messages)


def validate_variation(variation_type: VariationType, variation: Dict[str, Any], index: int = 0):
    """Check that the populated dimensions match the product's variation type"""
    errors = {}
    size_code = variation.get('size_code')
    color_name = variation.get('color_name')

    if variation_type.requires_size and not size_code:
        errors['sizeCode'] = [f"Required for variationType {variation_type.value}."]
    if not variation_type.requires_size and size_code:
        errors['sizeCode'] = [f"Not allowed for variationType {variation_type.value}."]
    if variation_type.requires_color and not color_name:
        errors['colorName'] = [f"Required for variationType {variation_type.value}."]
    if not variation_type.requires_color and color_name:
        errors['colorName'] = [f"Not allowed for variationType {variation_type.value}."]

    if errors:
        raise ValidationError(
            f"Variation {index} does not match variationType {variation_type.value}",
            details={'variations': {index: errors}}
        )


class CatalogService:
    """Business logic for catalog management"""

    def __init__(self, event_bus: Optional[EventBus] = None,
                 product_repo: Optional[ProductRepository] = None,
                 category_repo: Optional[CategoryRepository] = None):
        self.event_bus = event_bus or current_app.extensions['event_bus']
        self.product_repo = product_repo or ProductRepository()
        self.category_repo = category_repo or CategoryRepository()

    def _build_variations(self, variation_type: VariationType, requested: Optional[List[Dict[str, Any]]],
                          existing: Optional[List[ProductVariation]] = None) -> List[ProductVariation]:
        existing = existing or []
        seen = {(v.size_code, v.color_name) for v in existing}

        if not requested:
            # A product without dimensions is sold through one implicit variation
            if variation_type == VariationType.NONE and not existing:
                return [ProductVariation(image_urls=[])]
            return []

        if variation_type == VariationType.NONE and len(existing) + len(requested) > 1:
            raise ValidationError(
                'A product with variationType NONE has exactly one variation',
                details={'variations': ['At most one variation is allowed for variationType NONE.']}
            )

        variations = []
        for index, data in enumerate(requested):
            validate_variation(variation_type, data, index)
            key = (data.get('size_code'), data.get('color_name'))
            if key in seen:
                raise ValidationError(
                    f"Duplicate variation {key}",
                    details={'variations': {index: ['Duplicate size/color combination.']}}
                )
            seen.add(key)
            variations.append(ProductVariation(
                size_code=data.get('size_code'),
                color_name=data.get('color_name'),
                image_urls=data.get('image_urls') or []
            ))
        return variations

    def create_product(self, data: Dict[str, Any], merchant_id: int,
                       correlation_id: Optional[str] = None) -> Product:
        """
        Create a product with its initial variations and emit product.created

        Args:
            data: Request body (camelCase keys)
            merchant_id: Owning merchant, passed through unchanged
            correlation_id: Request correlation id stamped onto the event

        Raises:
            ValidationError: malformed input or unknown category
            ConflictError: product code already taken
        """
        payload = _load(product_create_schema, data)
        variation_type = VariationType(payload['variation_type'])
        variations = self._build_variations(variation_type, payload['variations'])

        if not self.category_repo.get_by_id(payload['category_id']):
            raise ValidationError(
                f"Category {payload['category_id']} does not exist",
                details={'categoryId': ['Must reference an existing category.']}
            )

        if self.product_repo.get_by_code(payload['code']):
            raise ConflictError(f"Product with code {payload['code']} already exists")

        product = Product(
            code=payload['code'],
            title=payload['title'],
            description=payload['description'],
            about=payload['about'],
            details=payload['details'],
            variation_type=variation_type,
            category_id=payload['category_id'],
            merchant_id=merchant_id,
            is_active=payload['is_active'],
            variations=variations
        )

        try:
            self.product_repo.add(product)
            envelope = new_envelope(
                ProductCreated(
                    product_id=product.id,
                    variation_ids=tuple(v.id for v in product.variations),
                    merchant_id=merchant_id
                ),
                aggregate_type=PRODUCT_AGGREGATE,
                aggregate_id=product.id,
                correlation_id=correlation_id
            )
            self.event_bus.publish(envelope)
            self.product_repo.commit()
        except IntegrityError:
            # Lost a race with a concurrent insert of the same code
            self.product_repo.rollback()
            raise ConflictError(f"Product with code {payload['code']} already exists")
        except Exception:
            self.product_repo.rollback()
            raise

        logger.info(
            f"Created product {product.id} ({product.code}) with {len(product.variations)} variation(s)",
            extra={"correlationId": correlation_id}
        )
        return product

    def add_variations(self, product_id: int, data: Dict[str, Any],
                       correlation_id: Optional[str] = None) -> List[ProductVariation]:
        """
        Add variations to an existing product and emit product.variations_added

        Raises:
            NotFoundError: product does not exist
            ValidationError: variations do not match the product's type
        """
        product = self.get_product(product_id)
        payload = _load(variations_add_schema, data)
        variations = self._build_variations(product.variation_type, payload['variations'], product.variations)

        try:
            product.variations.extend(variations)
            self.product_repo.flush()
            envelope = new_envelope(
                ProductVariationsAdded(
                    product_id=product.id,
                    variation_ids=tuple(v.id for v in variations),
                    merchant_id=product.merchant_id
                ),
                aggregate_type=PRODUCT_AGGREGATE,
                aggregate_id=product.id,
                correlation_id=correlation_id
            )
            self.event_bus.publish(envelope)
            self.product_repo.commit()
        except Exception:
            self.product_repo.rollback()
            raise

        logger.info(
            f"Added {len(variations)} variation(s) to product {product.id}",
            extra={"correlationId": correlation_id}
        )
        return variations

    def delete_product(self, product_id: int) -> None:
        """Delete a product along with its variations and their inventory"""
        product = self.get_product(product_id)
        try:
            self.product_repo.delete(product)
            self.product_repo.commit()
        except Exception:
            self.product_repo.rollback()
            raise
        logger.info(f"Deleted product {product_id}")

    def get_product(self, product_id: int) -> Product:
        product = self.product_repo.get_by_id(product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def list_products(self) -> List[Product]:
        return self.product_repo.get_all()

    def list_categories(self) -> List[Category]:
        return self.category_repo.get_all()
