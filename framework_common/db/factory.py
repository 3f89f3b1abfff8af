"""
Connection factory: ConnectionSetting -> SQLAlchemy engine -> Connection.

One engine per connection name, created on first use by the driver factory
registered for the setting's provider. Pooling, pre-ping and timeouts are the
engine's; this module only picks the driver and hands over pool settings.
"""

import logging
import threading
from collections.abc import Callable, Mapping

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Connection, Engine, make_url
from sqlalchemy.exc import ArgumentError

from framework_common.core.exceptions import ConfigurationError

from .models import ConnectionSetting, ProviderEnum
from .settings import ConnectionSettingResolver, load_settings

_log = logging.getLogger(__name__)

DriverFactory = Callable[[ConnectionSetting], Engine]


def _parse_url(setting: ConnectionSetting, drivername: str) -> URL:
    """Parse the connection string; apply *drivername* when no driver is given."""
    try:
        url = make_url(setting.connection_string)
    except ArgumentError as e:
        raise ConfigurationError(
            f"Invalid connection string for {setting.name!r}: {e}"
        ) from e
    if "+" not in url.drivername:
        url = url.set(drivername=drivername)
    return url


def _pooled_engine(url: URL) -> Engine:
    config = load_settings()
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_recycle=config.DB_POOL_RECYCLE_SEC,
        connect_args={"connect_timeout": config.DB_CONNECT_TIMEOUT},
    )


def mysql_engine(setting: ConnectionSetting) -> Engine:
    """Engine for MySQL through pymysql."""
    return _pooled_engine(_parse_url(setting, "mysql+pymysql"))


def postgres_engine(setting: ConnectionSetting) -> Engine:
    """Engine for PostgreSQL through psycopg (``postgres://`` is accepted too)."""
    return _pooled_engine(_parse_url(setting, "postgresql+psycopg"))


DRIVERS: dict[str, DriverFactory] = {
    ProviderEnum.MYSQL.value: mysql_engine,
    ProviderEnum.POSTGRES.value: postgres_engine,
}


class ConnectionFactory:
    """Hands out connections for named connection settings."""

    def __init__(
        self,
        resolver: ConnectionSettingResolver | None = None,
        *,
        drivers: Mapping[str, DriverFactory] | None = None,
    ) -> None:
        self._resolver = resolver or ConnectionSettingResolver()
        self._drivers: dict[str, DriverFactory] = dict(DRIVERS)
        if drivers:
            self._drivers.update(drivers)
        self._engines: dict[str, Engine] = {}
        self._lock = threading.Lock()

    @property
    def resolver(self) -> ConnectionSettingResolver:
        return self._resolver

    def get_engine(self, name: str | None = None) -> Engine:
        """Return the engine for *name*, creating it on first use."""
        setting = self._resolver.resolve(name)
        engine = self._engines.get(setting.name)
        if engine is not None:
            return engine
        with self._lock:
            engine = self._engines.get(setting.name)
            if engine is None:
                driver = self._drivers.get(setting.provider)
                if driver is None:
                    raise ConfigurationError(
                        f"No driver registered for provider {setting.provider!r}"
                    )
                engine = driver(setting)
                self._engines[setting.name] = engine
                _log.debug("Created engine for %r (%s)", setting.name, setting.provider)
        return engine

    def get_connection(self, name: str | None = None) -> Connection:
        """Check out a connection for *name*; the caller must close it."""
        return self.get_engine(name).connect()

    def dispose(self) -> None:
        """Dispose every engine (closes pooled connections)."""
        with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
        for engine in engines:
            engine.dispose()


_factory: ConnectionFactory | None = None
_factory_lock = threading.Lock()


def get_connection_factory() -> ConnectionFactory:
    """Return the process-wide ConnectionFactory (thread-safe double-checked locking)."""
    global _factory
    if _factory is None:
        with _factory_lock:
            if _factory is None:
                _factory = ConnectionFactory()
    return _factory
