"""
Configuration Validator
Validates the resolved application configuration at startup and fails fast
when a value is missing or out of range.
"""

import logging
import re

logger = logging.getLogger(__name__)

COUNTRY_CODE_RE = re.compile(r'^[A-Za-z]{2}$')


class ConfigurationError(Exception):
    """Raised when the application configuration is invalid"""

    def __init__(self, errors):
        super().__init__('Invalid configuration: ' + '; '.join(errors))
        self.errors = errors


def is_positive_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def is_valid_log_level(level) -> bool:
    """Validates log level"""
    valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    return isinstance(level, str) and level.upper() in valid_levels


def is_valid_country_list(codes) -> bool:
    return bool(codes) and all(isinstance(c, str) and COUNTRY_CODE_RE.match(c.strip()) for c in codes)


# Configuration validation rules
VALIDATION_RULES = {
    'SQLALCHEMY_DATABASE_URI': {
        'required': True,
        'validator': lambda v: isinstance(v, str) and '://' in v,
        'error_message': 'SQLALCHEMY_DATABASE_URI must be a database URL',
    },
    'LOG_LEVEL': {
        'required': False,
        'validator': is_valid_log_level,
        'error_message': 'LOG_LEVEL must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL',
    },
    'DEFAULT_MERCHANT_ID': {
        'required': True,
        'validator': is_positive_int,
        'error_message': 'DEFAULT_MERCHANT_ID must be a positive integer',
    },
    'INVENTORY_COUNTRY_CODES': {
        'required': True,
        'validator': is_valid_country_list,
        'error_message': 'INVENTORY_COUNTRY_CODES must be a non-empty list of two-letter country codes',
    },
    'OUTBOX_POLL_INTERVAL_SECONDS': {
        'required': True,
        'validator': is_positive_number,
        'error_message': 'OUTBOX_POLL_INTERVAL_SECONDS must be a positive number',
    },
    'OUTBOX_BATCH_SIZE': {
        'required': True,
        'validator': is_positive_int,
        'error_message': 'OUTBOX_BATCH_SIZE must be a positive integer',
    },
    'OUTBOX_LEASE_SECONDS': {
        'required': True,
        'validator': is_positive_int,
        'error_message': 'OUTBOX_LEASE_SECONDS must be a positive integer',
    },
    'OUTBOX_MAX_ATTEMPTS': {
        'required': True,
        'validator': is_positive_int,
        'error_message': 'OUTBOX_MAX_ATTEMPTS must be a positive integer',
    },
    'OUTBOX_BACKOFF_BASE_SECONDS': {
        'required': True,
        'validator': is_positive_number,
        'error_message': 'OUTBOX_BACKOFF_BASE_SECONDS must be a positive number',
    },
    'OUTBOX_BACKOFF_CAP_SECONDS': {
        'required': True,
        'validator': is_positive_number,
        'error_message': 'OUTBOX_BACKOFF_CAP_SECONDS must be a positive number',
    },
    'OUTBOX_DISPATCH_TIMEOUT_SECONDS': {
        'required': False,
        'validator': is_positive_number,
        'error_message': 'OUTBOX_DISPATCH_TIMEOUT_SECONDS must be a positive number if set',
    },
    'OUTBOX_RETENTION_HOURS': {
        'required': True,
        'validator': is_positive_int,
        'error_message': 'OUTBOX_RETENTION_HOURS must be a positive integer',
    },
}


def validate_config(app):
    """
    Validates app.config according to the rules

    Raises:
        ConfigurationError: listing every invalid key
    """
    errors = []

    for key, rule in VALIDATION_RULES.items():
        value = app.config.get(key)

        if value is None:
            if rule['required']:
                errors.append(f"{key} is required but not set")
            continue

        if not rule['validator'](value):
            errors.append(f"{key}: {rule['error_message']}")

    backoff_base = app.config.get('OUTBOX_BACKOFF_BASE_SECONDS')
    backoff_cap = app.config.get('OUTBOX_BACKOFF_CAP_SECONDS')
    if is_positive_number(backoff_base) and is_positive_number(backoff_cap) and backoff_cap < backoff_base:
        errors.append('OUTBOX_BACKOFF_CAP_SECONDS must not be smaller than OUTBOX_BACKOFF_BASE_SECONDS')

    if errors:
        for error in errors:
            logger.error(f"[CONFIG] {error}")
        raise ConfigurationError(errors)

    logger.debug('[CONFIG] Configuration is valid')
