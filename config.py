"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default='0'):
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def _database_url():
    """DATABASE_URL wins; otherwise assemble it from DB_* or POSTGRES_* parts."""
    url = os.getenv('DATABASE_URL')
    if url:
        return url

    def part(short, long, default):
        return os.getenv(f'DB_{short}') or os.getenv(f'POSTGRES_{long}', default)

    return 'postgresql://{user}:{password}@{host}:{port}/{name}'.format(
        user=part('USER', 'USER', 'orders'),
        password=part('PASSWORD', 'PASSWORD', 'orders'),
        host=part('HOST', 'HOST', 'localhost'),
        port=part('PORT', 'PORT', '5432'),
        name=part('NAME', 'DB', 'orders'),
    )


class Config:
    """Settings read from the environment (and .env)."""

    SECRET_KEY = os.getenv('SECRET_KEY', 'change-me')
    DEBUG = _env_flag('FLASK_DEBUG')
    ENV = os.getenv('FLASK_ENV', 'development')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_ECHO = _env_flag('SQLALCHEMY_ECHO')

    # Fallbacks when the lookup table has no TAX_RATES/DEFAULT_VAT entry
    DEFAULT_TAX_RATE = os.getenv('DEFAULT_TAX_RATE', '18')
    CURRENCY_SYMBOL = os.getenv('CURRENCY_SYMBOL', '₺')

    # reject | clamp | allow
    STOCK_POLICY = os.getenv('STOCK_POLICY', 'reject').lower()

    # Printed order header; COMPANY_INFO lookups take precedence
    BUSINESS_NAME = os.getenv('BUSINESS_NAME', 'My Business')
    BUSINESS_ADDRESS = os.getenv('BUSINESS_ADDRESS', '')
    BUSINESS_PHONE = os.getenv('BUSINESS_PHONE', '')
    BUSINESS_EMAIL = os.getenv('BUSINESS_EMAIL', '')

    DEFAULT_PAGE_SIZE = int(os.getenv('DEFAULT_PAGE_SIZE', '10'))

    # Only the yearly financial report is cached
    REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    CACHE_ENABLED = _env_flag('CACHE_ENABLED', 'true')
    CACHE_DEFAULT_TTL = int(os.getenv('CACHE_DEFAULT_TTL', '60'))
    CACHE_REPORTS_TTL = int(os.getenv('CACHE_REPORTS_TTL', '300'))
    CACHE_KEY_PREFIX = os.getenv('CACHE_KEY_PREFIX', 'orders')

    SENTRY_DSN = os.getenv('SENTRY_DSN')


class TestingConfig(Config):
    """In-memory SQLite, no cache, no Sentry."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
    CACHE_ENABLED = False
    STOCK_POLICY = 'reject'
    SENTRY_DSN = None
