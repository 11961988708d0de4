"""
Outbox Controller - Delivery inspection and dead-letter recovery
"""

from flask import request
from flask_restx import Namespace, Resource
from marshmallow import ValidationError

from catalog_inventory.services import OutboxService
from catalog_inventory.utils.exceptions import ServiceError
from catalog_inventory.utils.schemas import DeadLetterQuerySchema
import logging

logger = logging.getLogger(__name__)

dead_letter_query_schema = DeadLetterQuerySchema()

outbox_ns = Namespace('outbox', path='/outbox', description='Event delivery operations')


@outbox_ns.route('/stats')
class OutboxStats(Resource):
    @outbox_ns.doc('outbox_stats')
    def get(self):
        """Outbox row counts by status"""
        try:
            return OutboxService().get_stats(), 200
        except Exception as e:
            logger.error(f"Error reading outbox stats: {e}")
            return {'error': 'Internal Server Error', 'message': 'Failed to read outbox stats'}, 500


@outbox_ns.route('/dead-letters')
class DeadLetters(Resource):
    @outbox_ns.doc('list_dead_letters', params={'limit': 'Maximum number of events (1-500)'})
    def get(self):
        """Events whose delivery was abandoned"""
        try:
            args = dead_letter_query_schema.load(request.args.to_dict())
            rows = OutboxService().list_dead_letters(args['limit'])
            return [row.to_dict() for row in rows], 200
        except ValidationError as e:
            return {'error': 'Validation Error', 'message': 'Invalid query parameters', 'details': e.messages}, 400
        except Exception as e:
            logger.error(f"Error listing dead letters: {e}")
            return {'error': 'Internal Server Error', 'message': 'Failed to list dead letters'}, 500


@outbox_ns.route('/<string:event_id>/requeue')
class Requeue(Resource):
    @outbox_ns.doc('requeue_event')
    def post(self, event_id):
        """Send a dead-lettered event back for delivery"""
        try:
            row = OutboxService().requeue(event_id)
            return row.to_dict(), 200
        except ServiceError as e:
            return e.to_dict(), e.status_code
        except Exception as e:
            logger.error(f"Error requeueing event {event_id}: {e}")
            return {'error': 'Internal Server Error', 'message': 'Failed to requeue event'}, 500
