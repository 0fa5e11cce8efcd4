"""
Core module - Configuration, database, Redis, scheduling and utilities.
"""

from admission_portal.core.config import get_settings, settings
from admission_portal.core.database import Base, close_db, get_db, init_db
from admission_portal.core.errors import PortalServiceError
from admission_portal.core.redis import close_redis, get_redis, init_redis

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Redis
    "get_redis",
    "init_redis",
    "close_redis",
    # Errors
    "PortalServiceError",
]
