import os


def get_database_uri():
    """
    Resolve the database URI from the environment.
    DATABASE_URL wins; otherwise a MySQL URI is built from the MYSQL_* variables.
    """
    database_url = os.environ.get('DATABASE_URL')
    if database_url:
        return database_url

    user = os.environ.get('MYSQL_USER', 'admin')
    password = os.environ.get('MYSQL_PASSWORD', 'admin123')
    host = os.environ.get('DATABASE_HOST', 'localhost')
    port = os.environ.get('DATABASE_PORT', '3306')
    database = os.environ.get('MYSQL_DATABASE', 'catalog_inventory_db')
    return f"mysql+pymysql://{user}:{password}@{host}:{port}/{database}"


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_list(name, default):
    value = os.environ.get(name)
    if not value:
        return list(default)
    return [part.strip() for part in value.split(',') if part.strip()]


class Config:
    """Base configuration"""

    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database - resolved at app creation time
    SQLALCHEMY_DATABASE_URI = None
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    CORS_ORIGINS = _env_list('CORS_ORIGINS', ['*'])

    # Catalog
    DEFAULT_MERCHANT_ID = int(os.environ.get('DEFAULT_MERCHANT_ID', 1))

    # Inventory initialization: one record per variation and country
    INVENTORY_COUNTRY_CODES = _env_list('INVENTORY_COUNTRY_CODES', ['US'])

    # Outbox dispatch
    OUTBOX_POLL_INTERVAL_SECONDS = float(os.environ.get('OUTBOX_POLL_INTERVAL_SECONDS', 1.0))
    OUTBOX_BATCH_SIZE = int(os.environ.get('OUTBOX_BATCH_SIZE', 50))
    OUTBOX_LEASE_SECONDS = int(os.environ.get('OUTBOX_LEASE_SECONDS', 30))
    OUTBOX_MAX_ATTEMPTS = int(os.environ.get('OUTBOX_MAX_ATTEMPTS', 8))
    OUTBOX_BACKOFF_BASE_SECONDS = float(os.environ.get('OUTBOX_BACKOFF_BASE_SECONDS', 0.5))
    OUTBOX_BACKOFF_CAP_SECONDS = float(os.environ.get('OUTBOX_BACKOFF_CAP_SECONDS', 60.0))
    OUTBOX_DISPATCH_TIMEOUT_SECONDS = float(os.environ.get('OUTBOX_DISPATCH_TIMEOUT_SECONDS', 10.0))
    OUTBOX_RETENTION_HOURS = int(os.environ.get('OUTBOX_RETENTION_HOURS', 72))
    OUTBOX_EMBEDDED_WORKER = _env_bool('OUTBOX_EMBEDDED_WORKER', False)

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_LEVEL = 'DEBUG'
    OUTBOX_EMBEDDED_WORKER = _env_bool('OUTBOX_EMBEDDED_WORKER', True)


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    # Use in-memory SQLite for testing
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    INVENTORY_COUNTRY_CODES = ['US']
    OUTBOX_EMBEDDED_WORKER = False
    # Consumers run inline so tests share the single in-memory connection
    OUTBOX_DISPATCH_TIMEOUT_SECONDS = None
    OUTBOX_BACKOFF_BASE_SECONDS = 1.0
    OUTBOX_BACKOFF_CAP_SECONDS = 8.0
    OUTBOX_MAX_ATTEMPTS = 3


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
