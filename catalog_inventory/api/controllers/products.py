"""
Product Controller - Catalog operations
"""

from flask import current_app, request
from flask_restx import Namespace, Resource, fields

from catalog_inventory.api.middlewares.correlation_id import get_correlation_id
from catalog_inventory.services import CatalogService
from catalog_inventory.utils.exceptions import ServiceError, ValidationError
import logging

logger = logging.getLogger(__name__)

MERCHANT_HEADER = 'X-Merchant-Id'

products_ns = Namespace('products', path='/products', description='Product catalog operations')

variation_model = products_ns.model('Variation', {
    'sizeCode': fields.String(description='Size code, for OnlySize and SizeAndColor products'),
    'colorName': fields.String(description='Color name, for OnlyColor and SizeAndColor products'),
    'imageUrls': fields.List(fields.String, description='Image URLs'),
})

product_create_model = products_ns.model('ProductCreate', {
    'title': fields.String(required=True),
    'code': fields.String(required=True, description='Unique product code'),
    'description': fields.String,
    'about': fields.List(fields.String),
    'details': fields.Raw,
    'variationType': fields.String(enum=['NONE', 'OnlySize', 'OnlyColor', 'SizeAndColor'], default='NONE'),
    'categoryId': fields.Integer(required=True),
    'isActive': fields.Boolean(default=True),
    'variations': fields.List(fields.Nested(variation_model)),
})

variations_add_model = products_ns.model('VariationsAdd', {
    'variations': fields.List(fields.Nested(variation_model), required=True),
})


def resolve_merchant_id() -> int:
    """Merchant id from the request header, else the configured default"""
    raw = request.headers.get(MERCHANT_HEADER)
    if raw is None or not raw.strip():
        return current_app.config['DEFAULT_MERCHANT_ID']
    try:
        merchant_id = int(raw)
    except ValueError:
        raise ValidationError(
            f"Invalid {MERCHANT_HEADER} header",
            details={MERCHANT_HEADER: ['Must be a positive integer.']}
        )
    if merchant_id < 1:
        raise ValidationError(
            f"Invalid {MERCHANT_HEADER} header",
            details={MERCHANT_HEADER: ['Must be a positive integer.']}
        )
    return merchant_id


@products_ns.route('')
class ProductList(Resource):
    @products_ns.doc('list_products')
    def get(self):
        """List products with their variations"""
        try:
            products = CatalogService().list_products()
            return [product.to_dict(include_variations=True) for product in products], 200
        except ServiceError as e:
            return e.to_dict(), e.status_code
        except Exception as e:
            logger.error(f"Error listing products: {e}")
            return {'error': 'Internal Server Error', 'message': 'Failed to list products'}, 500

    @products_ns.doc('create_product')
    @products_ns.expect(product_create_model)
    def post(self):
        """Create a product; inventory is initialized asynchronously"""
        try:
            merchant_id = resolve_merchant_id()
            product = CatalogService().create_product(
                request.get_json(silent=True),
                merchant_id=merchant_id,
                correlation_id=get_correlation_id()
            )
            return product.to_dict(include_variations=True), 201
        except ServiceError as e:
            return e.to_dict(), e.status_code
        except Exception as e:
            logger.error(f"Error creating product: {e}")
            return {'error': 'Internal Server Error', 'message': 'Failed to create product'}, 500


@products_ns.route('/<int:product_id>')
class ProductItem(Resource):
    @products_ns.doc('get_product')
    def get(self, product_id):
        """Get a product by id"""
        try:
            product = CatalogService().get_product(product_id)
            return product.to_dict(include_variations=True), 200
        except ServiceError as e:
            return e.to_dict(), e.status_code
        except Exception as e:
            logger.error(f"Error getting product {product_id}: {e}")
            return {'error': 'Internal Server Error', 'message': 'Failed to get product'}, 500

    @products_ns.doc('delete_product')
    def delete(self, product_id):
        """Delete a product, its variations and their inventory"""
        try:
            CatalogService().delete_product(product_id)
            return '', 204
        except ServiceError as e:
            return e.to_dict(), e.status_code
        except Exception as e:
            logger.error(f"Error deleting product {product_id}: {e}")
            return {'error': 'Internal Server Error', 'message': 'Failed to delete product'}, 500


@products_ns.route('/<int:product_id>/variations')
class ProductVariations(Resource):
    @products_ns.doc('add_variations')
    @products_ns.expect(variations_add_model)
    def post(self, product_id):
        """Add variations to a product"""
        try:
            variations = CatalogService().add_variations(
                product_id,
                request.get_json(silent=True),
                correlation_id=get_correlation_id()
            )
            return [variation.to_dict() for variation in variations], 201
        except ServiceError as e:
            return e.to_dict(), e.status_code
        except Exception as e:
            logger.error(f"Error adding variations to product {product_id}: {e}")
            return {'error': 'Internal Server Error', 'message': 'Failed to add variations'}, 500
