"""
Inventory Controller - Inventory listing and stock management
"""

from flask import request
from flask_restx import Namespace, Resource, fields
from marshmallow import ValidationError

from catalog_inventory.services import InventoryService
from catalog_inventory.utils.exceptions import ServiceError
from catalog_inventory.utils.schemas import InventoryLookupSchema, StockUpdateRequestSchema
import logging

logger = logging.getLogger(__name__)

stock_update_schema = StockUpdateRequestSchema()
inventory_lookup_schema = InventoryLookupSchema()

inventory_ns = Namespace('inventory', path='/inventory', description='Inventory operations')

stock_update_model = inventory_ns.model('StockUpdate', {
    'quantity': fields.Integer(required=True, min=0, description='New stock quantity'),
})


@inventory_ns.route('')
class InventoryList(Resource):
    @inventory_ns.doc('list_inventory')
    def get(self):
        """All inventory items with their variation and product"""
        try:
            items = InventoryService().list_all()
            return [item.to_dict() for item in items], 200
        except Exception as e:
            logger.error(f"Error listing inventory: {e}")
            return {'error': 'Internal Server Error', 'message': 'Failed to list inventory'}, 500


@inventory_ns.route('/<int:product_variation_id>')
class InventoryByVariation(Resource):
    @inventory_ns.doc('get_inventory', params={'countryCode': 'Two-letter country code'})
    def get(self, product_variation_id):
        """Inventory of a variation in one country"""
        try:
            args = inventory_lookup_schema.load(request.args.to_dict())
            item = InventoryService().get_by_variation(product_variation_id, args.get('country_code'))
            return item.to_dict(), 200
        except ValidationError as e:
            return {'error': 'Validation Error', 'message': 'Invalid query parameters', 'details': e.messages}, 400
        except ServiceError as e:
            return e.to_dict(), e.status_code
        except Exception as e:
            logger.error(f"Error getting inventory for variation {product_variation_id}: {e}")
            return {'error': 'Internal Server Error', 'message': 'Failed to get inventory'}, 500


@inventory_ns.route('/<int:item_id>/stock')
class InventoryStock(Resource):
    @inventory_ns.doc('update_stock')
    @inventory_ns.expect(stock_update_model)
    def patch(self, item_id):
        """Set the stock quantity of an inventory item"""
        try:
            data = stock_update_schema.load(request.get_json(silent=True) or {})
            item = InventoryService().update_stock(item_id, data['quantity'])
            return item.to_dict(), 200
        except ValidationError as e:
            return {'error': 'Validation Error', 'message': 'Request data validation failed', 'details': e.messages}, 400
        except ServiceError as e:
            return e.to_dict(), e.status_code
        except Exception as e:
            logger.error(f"Error updating stock for inventory item {item_id}: {e}")
            return {'error': 'Internal Server Error', 'message': 'Failed to update stock'}, 500
