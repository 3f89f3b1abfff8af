from collections.abc import Generator
from pathlib import Path

import pytest

from framework_common.core.config import ConnectionStringConfig, get_settings
from framework_common.db import ConnectionFactory, ConnectionSettingResolver, DbHelper
from tests.utils import USER_DDL, sqlite_engine


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep cached Settings from leaking between tests."""
    monkeypatch.delenv("FRAMEWORK_CONNECTION_STRINGS", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sqlite_factory(tmp_path: Path) -> Generator[ConnectionFactory, None, None]:
    """ConnectionFactory with a file-backed SQLite database as the default connection."""
    entries = [
        ConnectionStringConfig(
            name="default",
            provider_name="sqlite",
            connection_string=f"sqlite:///{tmp_path / 'test.db'}",
        ),
        ConnectionStringConfig(
            name="reporting",
            provider_name="sqlite",
            connection_string=f"sqlite:///{tmp_path / 'reporting.db'}",
        ),
    ]
    resolver = ConnectionSettingResolver(
        lambda: entries, providers=("sqlite",), default_name="default"
    )
    factory = ConnectionFactory(resolver, drivers={"sqlite": sqlite_engine})
    yield factory
    factory.dispose()


@pytest.fixture
def db(sqlite_factory: ConnectionFactory) -> DbHelper:
    """DbHelper over an empty ``user`` table."""
    helper = DbHelper(sqlite_factory)
    helper.execute(USER_DDL)
    return helper
