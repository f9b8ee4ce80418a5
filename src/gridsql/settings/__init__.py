"""Settings for gridsql built on Pydantic Settings.

Configuration Sources (precedence order):
    1. Explicit keyword arguments
    2. Environment variables
    3. ``.env`` file
    4. Default values in code

Environment Variable Naming:
    - Credentials: ``GRIDSQL_DB_TYPE``, ``GRIDSQL_DB_USER``, ``GRIDSQL_DB_PASSWORD``,
      ``GRIDSQL_DB_HOST``, ``GRIDSQL_DB_PORT``, ``GRIDSQL_DB_DATABASE``, ``GRIDSQL_DB_DSN``
    - Runtime: ``GRIDSQL_LOG_LEVEL``, ``GRIDSQL_JOIN_BATCH_THRESHOLD``

Quick Start:
    >>> from gridsql.settings import get_settings
    >>> settings = get_settings()
    >>> settings.database.type
"""

from .base import GridBaseSettings
from .database import DatabaseSettings
from .main import _Settings, _reload_settings, get_settings

__all__ = [
    "GridBaseSettings",
    "DatabaseSettings",
    "_Settings",
    "get_settings",
    "_reload_settings",
]
