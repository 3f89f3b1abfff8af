"""Shared fixtures data for db tests: the ``user`` table and its row type."""

from dataclasses import dataclass

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from framework_common.db import ConnectionSetting

USER_DDL = "CREATE TABLE user (Id INTEGER PRIMARY KEY, Name VARCHAR(50))"
INSERT_USER = "INSERT INTO user (Id, Name) VALUES (:Id, :Name)"
COUNT_USERS = "SELECT COUNT(Id) FROM user"


@dataclass
class User:
    """Row of the ``user`` table (primary key is not auto-increment)."""

    Id: int
    Name: str | None = None


def sqlite_engine(setting: ConnectionSetting) -> Engine:
    return create_engine(setting.connection_string)
