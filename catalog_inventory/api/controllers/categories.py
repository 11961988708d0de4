"""
Category Controller
"""

from flask_restx import Namespace, Resource

from catalog_inventory.services import CatalogService
import logging

logger = logging.getLogger(__name__)

categories_ns = Namespace('categories', path='/categories', description='Product categories')


@categories_ns.route('')
class CategoryList(Resource):
    @categories_ns.doc('list_categories')
    def get(self):
        """List all categories"""
        try:
            return [category.to_dict() for category in CatalogService().list_categories()], 200
        except Exception as e:
            logger.error(f"Error listing categories: {e}")
            return {'error': 'Internal Server Error', 'message': 'Failed to list categories'}, 500
