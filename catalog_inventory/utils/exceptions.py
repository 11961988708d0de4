"""
Service error taxonomy

Synchronous catalog/inventory errors carry an HTTP status code and are
translated into 4xx responses. Delivery errors stay on the event path and
never reach the HTTP caller.
"""


class ServiceError(Exception):
    """Base class for errors raised by the service layer"""
    status_code = 500
    error = 'Internal Server Error'

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        body = {'error': self.error, 'message': self.message}
        if self.details:
            body['details'] = self.details
        return body


class ValidationError(ServiceError):
    """Malformed input; never retried"""
    status_code = 400
    error = 'Validation Error'


class NotFoundError(ServiceError):
    status_code = 404
    error = 'Not Found'


class ConflictError(ServiceError):
    """Uniqueness violation"""
    status_code = 409
    error = 'Conflict'


class TransientInfraError(ServiceError):
    """Storage or network hiccup during dispatch; retried with backoff"""
    status_code = 503
    error = 'Service Unavailable'


class TerminalDeliveryError(ServiceError):
    """Delivery attempts exhausted; the event is dead-lettered"""

    def __init__(self, event_id, attempts, last_error=None):
        super().__init__(
            f"Delivery of event {event_id} failed after {attempts} attempts",
            details={'eventId': event_id, 'attempts': attempts, 'lastError': last_error}
        )
        self.event_id = event_id
        self.attempts = attempts
        self.last_error = last_error


class UnknownEventTypeError(ServiceError):
    """No schema registered for an event type/version pair"""
    status_code = 400
    error = 'Unknown Event Type'
