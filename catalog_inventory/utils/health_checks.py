"""
Health Check Utilities
Database and outbox checks used by the readiness and liveness probes
"""

import time
from datetime import datetime
from flask import current_app
from sqlalchemy import text
from catalog_inventory.database import db
from catalog_inventory.models import OutboxStatus
from catalog_inventory.repositories import OutboxRepository
import logging

logger = logging.getLogger(__name__)

STARTED_AT = time.time()


def check_database_health():
    """Check database connectivity"""
    try:
        start_time = time.time()
        db.session.execute(text('SELECT 1'))
        db.session.commit()
        response_time = (time.time() - start_time) * 1000

        return {
            'status': 'healthy',
            'message': 'Database connection is healthy',
            'response_time': round(response_time, 2),
            'details': {'dialect': db.engine.dialect.name},
        }
    except Exception as e:
        db.session.rollback()
        return {
            'status': 'unhealthy',
            'message': f'Database health check failed: {str(e)}',
            'response_time': 0,
            'details': {
                'error': str(e),
                'database_url': db.engine.url.render_as_string(hide_password=True),
            },
        }


def check_outbox_health():
    """Report the delivery backlog; dead letters degrade but do not fail readiness"""
    try:
        counts = OutboxRepository().count_by_status()
        pending = counts[OutboxStatus.PENDING] + counts[OutboxStatus.CLAIMED]
        failed = counts[OutboxStatus.FAILED]
        return {
            'status': 'degraded' if failed else 'healthy',
            'message': f'{pending} event(s) awaiting delivery, {failed} dead-lettered',
            'details': {'pending': pending, 'failed': failed},
        }
    except Exception as e:
        db.session.rollback()
        return {
            'status': 'unhealthy',
            'message': f'Outbox health check failed: {str(e)}',
            'details': {'error': str(e)},
        }


def perform_readiness_check():
    """Perform readiness check"""
    checks = {}
    check_start_time = time.time()

    logger.debug('Performing database health check')
    checks['database'] = check_database_health()
    overall_healthy = checks['database']['status'] == 'healthy'

    if overall_healthy:
        checks['outbox'] = check_outbox_health()
        overall_healthy = checks['outbox']['status'] in ['healthy', 'degraded']

    return {
        'status': 'ready' if overall_healthy else 'not ready',
        'timestamp': datetime.utcnow().isoformat() + 'Z',
        'total_check_time': round((time.time() - check_start_time) * 1000, 2),
        'checks': checks,
    }


def perform_liveness_check():
    """Perform liveness check (should be fast and not check external dependencies)"""
    checks = {}
    worker = current_app.extensions.get('outbox_worker')
    if worker is not None:
        alive = worker.is_running
        checks['outbox_worker'] = {
            'status': 'alive' if alive else 'stopped',
            'worker_id': worker.dispatcher.worker_id,
        }
    else:
        alive = True
        checks['outbox_worker'] = {'status': 'skipped', 'message': 'Worker runs out of process'}

    return {
        'status': 'alive' if alive else 'unhealthy',
        'timestamp': datetime.utcnow().isoformat() + 'Z',
        'uptime': round(time.time() - STARTED_AT, 2),
        'checks': checks,
    }
