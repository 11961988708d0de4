"""
Operational/Infrastructure endpoints
These endpoints are used by monitoring systems and load balancers
"""

from flask_restx import Resource, Namespace
from datetime import datetime
import os
import logging
from catalog_inventory.utils.health_checks import perform_readiness_check, perform_liveness_check

logger = logging.getLogger(__name__)

SERVICE_NAME = 'catalog-inventory-service'

# Create namespace for operational endpoints
operational_ns = Namespace('health', path='/health', description='Operational endpoints')


@operational_ns.route('')
class Health(Resource):
    def get(self):
        """Main health check endpoint"""
        return {
            'status': 'healthy',
            'service': SERVICE_NAME,
            'timestamp': datetime.utcnow().isoformat() + 'Z',
            'version': os.environ.get('API_VERSION', '1.0.0'),
            'environment': os.environ.get('FLASK_ENV', 'development'),
        }, 200


@operational_ns.route('/ready')
class Readiness(Resource):
    def get(self):
        """Readiness probe - checks if service is ready to handle traffic"""
        try:
            readiness_result = perform_readiness_check()

            logger.info('Readiness check performed', extra={
                'status': readiness_result['status'],
                'total_check_time': readiness_result['total_check_time'],
            })

            status_code = 200 if readiness_result['status'] == 'ready' else 503
            return {'service': SERVICE_NAME, **readiness_result}, status_code

        except Exception as e:
            logger.error('Readiness check failed', extra={'error': str(e)})
            return {
                'status': 'not ready',
                'service': SERVICE_NAME,
                'timestamp': datetime.utcnow().isoformat() + 'Z',
                'error': 'Readiness check failed',
                'details': str(e),
            }, 503


@operational_ns.route('/live')
class Liveness(Resource):
    def get(self):
        """Liveness probe - checks if service is alive and responsive"""
        liveness_result = perform_liveness_check()

        if liveness_result['status'] != 'alive':
            logger.warning('Liveness check failed', extra={'checks': liveness_result['checks']})

        status_code = 200 if liveness_result['status'] == 'alive' else 503
        return {'service': SERVICE_NAME, **liveness_result}, status_code
