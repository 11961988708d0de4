#!/usr/bin/env python3
"""
Catalog & Inventory Service
Flask-based service for the product catalog and event-driven inventory initialization.
"""

import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import application factory
from catalog_inventory import create_app, init_database

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    """Main application entry point."""
    # Get environment
    env = os.environ.get('FLASK_ENV', 'production')

    logger.info(f"Starting Catalog & Inventory Service in {env} mode")

    # Create Flask application
    app = create_app(env)

    # Initialize database tables and seed categories
    init_database(app)

    # Get host and port from environment
    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', 5000))
    debug = env == 'development'

    logger.info(f"Starting Catalog & Inventory Service on {host}:{port}")

    # The reloader would start a second embedded outbox worker
    app.run(
        host=host,
        port=port,
        debug=debug,
        use_reloader=False,
        threaded=True
    )


if __name__ == '__main__':
    main()
