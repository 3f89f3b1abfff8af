"""
Database access over named connection strings.

Connection strings come from settings (``FRAMEWORK_CONNECTION_STRINGS``);
engines are SQLAlchemy's, with pymysql (mysql) and psycopg (postgres) drivers.
"""

from .factory import DRIVERS, ConnectionFactory, get_connection_factory
from .helper import DbHelper, GridReader, get_db_helper
from .models import CommandType, ConnectionSetting, ProviderEnum, TransactionContext
from .settings import (
    DEFAULT_CONNECTION_NAME,
    ConnectionSettingResolver,
    build_connection_settings,
    load_connection_strings,
)

__all__ = [
    "DEFAULT_CONNECTION_NAME",
    "DRIVERS",
    "CommandType",
    "ConnectionFactory",
    "ConnectionSetting",
    "ConnectionSettingResolver",
    "DbHelper",
    "GridReader",
    "ProviderEnum",
    "TransactionContext",
    "build_connection_settings",
    "get_connection_factory",
    "get_db_helper",
    "load_connection_strings",
]
