"""
Database configuration for the community portal.

Resolution order:
- DATABASE_URL (postgres:// or postgresql://)
- DB_HOST / DB_NAME / DB_USER / DB_PASSWORD / DB_PORT
- SQLite file in BASE_DIR for development and tests
"""
import os
from pathlib import Path
from urllib.parse import unquote, urlparse

POSTGRES_ENGINE = 'django.db.backends.postgresql'


def get_database_config(base_dir: Path) -> dict:
    """Returns the default database configuration for the environment."""
    database_url = os.getenv('DATABASE_URL', '')

    if database_url.startswith(('postgres://', 'postgresql://')):
        config = _parse_database_url(database_url)
    elif os.getenv('DB_HOST'):
        config = _get_env_config()
    else:
        return {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': base_dir / 'db.sqlite3',
        }

    return _apply_lambda_tuning(config)


def _parse_database_url(url: str) -> dict:
    """Parse a PostgreSQL DATABASE_URL into Django config."""
    parsed = urlparse(url)
    name = parsed.path.lstrip('/')

    if not parsed.hostname or not name:
        raise ValueError("Invalid DATABASE_URL: host and database name are required")

    return {
        'ENGINE': POSTGRES_ENGINE,
        'NAME': unquote(name),
        'USER': unquote(parsed.username or ''),
        'PASSWORD': unquote(parsed.password or ''),
        'HOST': parsed.hostname,
        'PORT': str(parsed.port or 5432),
    }


def _get_env_config() -> dict:
    """Build config from individual environment variables."""
    config = {
        'ENGINE': POSTGRES_ENGINE,
        'NAME': os.getenv('DB_NAME', 'costa_beach'),
        'USER': os.getenv('DB_USER', 'postgres'),
        'HOST': os.getenv('DB_HOST', 'localhost'),
        'PORT': os.getenv('DB_PORT', '5432'),
    }

    password = os.getenv('DB_PASSWORD')
    if password:
        config['PASSWORD'] = password

    if os.getenv('DB_SSL_REQUIRE', '').lower() == 'true':
        config['OPTIONS'] = {'sslmode': 'require'}

    return config


def _apply_lambda_tuning(config: dict) -> dict:
    """Short-lived connections with tight timeouts when running in Lambda."""
    if os.getenv('AWS_LAMBDA_FUNCTION_NAME'):
        config['CONN_MAX_AGE'] = 0
        options = config.setdefault('OPTIONS', {})
        options['connect_timeout'] = 5
        options['options'] = '-c statement_timeout=30000'
    return config
