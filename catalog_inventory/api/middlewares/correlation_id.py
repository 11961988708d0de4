"""
Correlation ID middleware for Flask application
Carries a request's correlation ID into the events it emits, so consumer
logs can be joined with the originating request.
"""
import uuid
import logging
from contextvars import ContextVar
from typing import Optional
from flask import Response, g, request, current_app, has_request_context

CORRELATION_ID_HEADER = 'X-Correlation-ID'

# Context variable to store correlation ID outside a request (worker threads)
correlation_id_context: ContextVar[str] = ContextVar('correlation_id', default='')


class CorrelationIdMiddleware:
    """
    Flask middleware for handling correlation IDs
    """

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize the middleware with Flask app"""
        app.before_request(self.before_request)
        app.after_request(self.after_request)

    def before_request(self):
        """Extract or generate correlation ID before request processing"""
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())

        g.correlation_id = correlation_id
        correlation_id_context.set(correlation_id)

        current_app.logger.debug(
            f"[{correlation_id}] {request.method} {request.path} - Processing request"
        )

    def after_request(self, response: Response) -> Response:
        """Add correlation ID to response headers"""
        correlation_id = getattr(g, 'correlation_id', None)
        if correlation_id:
            response.headers[CORRELATION_ID_HEADER] = correlation_id

        current_app.logger.info(
            f"[{correlation_id}] {request.method} {request.path} - "
            f"Response: {response.status_code}"
        )
        return response


def get_correlation_id() -> Optional[str]:
    """Current correlation ID, or None outside any request"""
    if has_request_context() and hasattr(g, 'correlation_id'):
        return g.correlation_id
    return correlation_id_context.get() or None


class CorrelationIdFilter(logging.Filter):
    """Adds ``correlation_id`` to every record passing through a handler"""

    def filter(self, record):
        if not hasattr(record, 'correlation_id'):
            record.correlation_id = getattr(record, 'correlationId', None) or get_correlation_id() or '-'
        return True


def init_correlation_id_logging(app):
    """
    Initialize correlation ID logging configuration
    """
    formatter = logging.Formatter(
        '%(asctime)s [%(correlation_id)s] %(levelname)s in %(name)s: %(message)s'
    )
    for handler in app.logger.handlers + logging.getLogger().handlers:
        handler.addFilter(CorrelationIdFilter())
        handler.setFormatter(formatter)
