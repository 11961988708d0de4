"""
Controllers package initialization - Sets up Flask-RESTX API with all namespaces
"""

from flask import Blueprint
from flask_restx import Api
from catalog_inventory.api.controllers.categories import categories_ns
from catalog_inventory.api.controllers.inventory import inventory_ns
from catalog_inventory.api.controllers.operational import operational_ns
from catalog_inventory.api.controllers.outbox import outbox_ns
from catalog_inventory.api.controllers.products import products_ns

# Create Blueprint
api_bp = Blueprint('api', __name__)
api = Api(api_bp, version='1.0', title='Catalog & Inventory Service API',
          description='Product catalog with event-driven inventory initialization',
          doc='/docs/')

api.add_namespace(categories_ns)
api.add_namespace(products_ns)
api.add_namespace(inventory_ns)
api.add_namespace(outbox_ns)
api.add_namespace(operational_ns)


def register_routes(app):
    """Register all routes with the Flask app"""
    app.register_blueprint(api_bp)
