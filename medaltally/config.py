"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

import os


def _get_int(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_bool(key: str, default: bool) -> bool:
    """Get boolean from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    return value.lower() in ('true', '1', 'yes')


def _get_str(key: str, default: str) -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default)


def _get_list(key: str, default: str) -> list:
    """Get comma separated list from environment variable."""
    raw = os.environ.get(key, default)
    return [item.strip() for item in raw.split(',') if item.strip()]


def get_data_dir() -> str:
    """
    Resolve the data directory at call time.

    Priority: DATA_DIR > /app/data (container) > data (local)
    """
    return (
        os.environ.get('DATA_DIR') or
        ('/app/data' if os.path.exists('/app') else 'data')
    )


# =============================================================================
# SERVER SETTINGS
# =============================================================================
PORT = _get_int('PORT', 8000)
HOST = _get_str('HOST', '0.0.0.0')
CORS_ORIGINS = _get_list('CORS_ORIGINS', '*')

# =============================================================================
# STORAGE SETTINGS
# =============================================================================
DB_TYPE = _get_str('DB_TYPE', 'sqlite')
DATA_DIR = get_data_dir()
DB_FILENAME = _get_str('DB_FILENAME', 'medaltally.db')

# =============================================================================
# SCORING DEFAULTS
# =============================================================================
# Used to seed the score settings row the first time the schema is created.
# Afterwards the values live in the database and are edited through the API.
DEFAULT_GOLD_POINTS = _get_int('DEFAULT_GOLD_POINTS', 10)
DEFAULT_SILVER_POINTS = _get_int('DEFAULT_SILVER_POINTS', 7)
DEFAULT_BRONZE_POINTS = _get_int('DEFAULT_BRONZE_POINTS', 5)
DEFAULT_NON_WINNER_POINTS = _get_int('DEFAULT_NON_WINNER_POINTS', 1)

# Upper bound on NON_WINNER units one team can receive in a single submission
MAX_NON_WINNER_UNITS = _get_int('MAX_NON_WINNER_UNITS', 1000)

# =============================================================================
# CACHE SETTINGS
# =============================================================================
# Upper bound on how long computed standings are served from memory.
# Every ledger or roster write clears the cache before this expires.
STANDINGS_CACHE_TTL_SECONDS = _get_int('STANDINGS_CACHE_TTL_SECONDS', 30)

# =============================================================================
# MAINTENANCE
# =============================================================================
MAINTENANCE_HEALTH_MINUTES = _get_int('MAINTENANCE_HEALTH_MINUTES', 15)
MAINTENANCE_ENABLED = _get_bool('MAINTENANCE_ENABLED', True)

# =============================================================================
# LOGGING
# =============================================================================
LOG_LEVEL = _get_str('LOG_LEVEL', 'INFO')
