"""
Value types shared by the db helpers: providers, connection settings, command kinds.
"""

from dataclasses import dataclass
from enum import Enum

from sqlalchemy.engine import Connection, Transaction


class ProviderEnum(str, Enum):
    """Supported database providers (mysql via pymysql, postgres via psycopg)."""

    MYSQL = "mysql"
    POSTGRES = "postgres"


class CommandType(str, Enum):
    """How the SQL text is interpreted: plain statement or stored procedure name."""

    TEXT = "text"
    STORED_PROCEDURE = "stored_procedure"


@dataclass(frozen=True, slots=True)
class ConnectionSetting:
    """A named connection profile resolved from configuration."""

    name: str
    provider: str
    connection_string: str

    def __repr__(self) -> str:
        # connection strings usually carry credentials
        return f"ConnectionSetting(name={self.name!r}, provider={self.provider!r})"


@dataclass(frozen=True, slots=True)
class TransactionContext:
    """An open connection plus its running transaction, owned by one unit of work."""

    connection: Connection
    transaction: Transaction

    @property
    def is_active(self) -> bool:
        return self.transaction.is_active


__all__ = [
    "CommandType",
    "ConnectionSetting",
    "ProviderEnum",
    "TransactionContext",
]
