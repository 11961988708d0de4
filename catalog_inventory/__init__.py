from flask import Flask
from flask_cors import CORS
import atexit
import click
import logging


def create_app(config_name='default'):
    """Application factory pattern"""
    # Load environment variables before the config classes are read
    from dotenv import load_dotenv
    load_dotenv()

    app = Flask(__name__)

    # Load configuration
    from config import config, get_database_uri
    app.config.from_object(config[config_name])
    if not app.config.get('SQLALCHEMY_DATABASE_URI'):
        app.config['SQLALCHEMY_DATABASE_URI'] = get_database_uri()

    # Configure logging
    if not app.testing:
        logging.basicConfig(
            level=getattr(logging, app.config['LOG_LEVEL'].upper()),
            format='%(asctime)s %(levelname)s %(name)s: %(message)s'
        )

    from catalog_inventory.validators.config_validator import validate_config
    validate_config(app)

    # Initialize correlation ID middleware
    from catalog_inventory.api.middlewares.correlation_id import (
        CorrelationIdMiddleware, init_correlation_id_logging
    )
    CorrelationIdMiddleware(app)
    if not app.testing:
        init_correlation_id_logging(app)

    # Initialize database
    from catalog_inventory.database import init_db
    init_db(app)

    # CORS setup
    CORS(app, origins=app.config.get('CORS_ORIGINS', ['*']))

    init_event_bus(app)

    # Register routes
    from catalog_inventory.api.controllers import register_routes
    register_routes(app)
    app.logger.info("Controllers registered successfully")

    # Register error handlers
    from catalog_inventory.utils.error_handlers import register_error_handlers
    register_error_handlers(app)

    register_commands(app)

    if app.config.get('OUTBOX_EMBEDDED_WORKER'):
        start_embedded_worker(app)

    # Database tables creation is deferred to init_database() function
    return app


def init_event_bus(app):
    """Wire the outbox bus, its consumers and the dispatcher into app.extensions"""
    from catalog_inventory.events import OutboxEventBus, SubscriberRegistry
    from catalog_inventory.events.consumers import InventoryInitializationConsumer
    from catalog_inventory.outbox import OutboxDispatcher

    registry = SubscriberRegistry()
    bus = OutboxEventBus(registry)

    consumer = InventoryInitializationConsumer(country_codes=app.config['INVENTORY_COUNTRY_CODES'])
    consumer.subscribe(bus)

    bus.start()
    app.extensions['event_bus'] = bus
    app.extensions['outbox_dispatcher'] = OutboxDispatcher.from_app(app, registry)
    return bus


def start_embedded_worker(app):
    """Run the outbox worker on a background thread of this process"""
    from catalog_inventory.worker import OutboxWorker

    worker = OutboxWorker(app, app.extensions['outbox_dispatcher'])
    app.extensions['event_bus'].add_publish_listener(worker.wake)
    app.extensions['outbox_worker'] = worker
    worker.start_in_background()
    atexit.register(worker.stop_background)
    app.logger.info("Embedded outbox worker started")
    return worker


def register_commands(app):
    """Flask CLI commands for seeding and outbox maintenance"""

    @app.cli.command('seed-categories')
    def seed_categories():
        """Create tables and insert the default categories"""
        init_database(app)

    @app.cli.command('outbox-dispatch')
    @click.option('--batches', default=1, show_default=True, help='Number of dispatch cycles to run')
    def outbox_dispatch(batches):
        """Run dispatch cycles in the foreground"""
        dispatcher = app.extensions['outbox_dispatcher']
        for _ in range(batches):
            summary = dispatcher.run_once()
            click.echo(summary.to_dict())
            if not summary.claimed:
                break

    @app.cli.command('outbox-purge')
    @click.option('--retention-hours', type=int, default=None, help='Keep delivered rows newer than this')
    def outbox_purge(retention_hours):
        """Delete delivered outbox rows past the retention window"""
        from catalog_inventory.services import OutboxService
        hours = retention_hours or app.config['OUTBOX_RETENTION_HOURS']
        click.echo(f"Purged {OutboxService().purge_delivered(hours)} delivered event(s)")


def init_database(app):
    """Initialize database tables and seed categories - call this explicitly when ready"""
    from catalog_inventory.database import db
    from catalog_inventory.repositories import CategoryRepository
    with app.app_context():
        try:
            # Only create tables if database connection is successful
            from sqlalchemy import text
            db.session.execute(text('SELECT 1'))  # Test connection
            db.create_all()
            added = CategoryRepository().seed_defaults()
            app.logger.info(f"Database tables created successfully, {added} categor(ies) seeded")
            return True
        except Exception as e:
            app.logger.error(f"Failed to initialize database: {e}")
            if not app.debug:
                # Outside development, fail fast
                raise
            app.logger.warning("Continuing without database connection in development mode")
            return False
