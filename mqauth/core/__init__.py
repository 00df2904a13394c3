"""Core app configuration, security and database plumbing."""

from mqauth.core.config import get_settings, settings
from mqauth.core.database import check_db_connected, create_db_engine

__all__ = ["check_db_connected", "create_db_engine", "get_settings", "settings"]
