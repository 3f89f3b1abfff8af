"""
Connection setting resolution: configured entries -> usable ConnectionSettings.

The configured list is read once per resolver, filtered by the provider
allow-list and kept for the resolver's lifetime. Lookup is by name, falling
back to the default connection name.
"""

import logging
import threading
from collections.abc import Callable, Iterable, Sequence

from pydantic import ValidationError
from pydantic_settings import SettingsError

from framework_common.core.config import ConnectionStringConfig, Settings, get_settings
from framework_common.core.exceptions import ConfigurationError

from .models import ConnectionSetting, ProviderEnum

_log = logging.getLogger(__name__)

DEFAULT_CONNECTION_NAME = "default"

ConnectionStringLoader = Callable[[], Sequence[ConnectionStringConfig]]


def load_settings() -> Settings:
    """``get_settings()`` with bad configuration surfacing as ConfigurationError."""
    try:
        return get_settings()
    except (ValidationError, SettingsError) as e:
        raise ConfigurationError(f"Invalid framework configuration: {e}") from e


def load_connection_strings() -> Sequence[ConnectionStringConfig]:
    """Read the configured connection entries."""
    return load_settings().CONNECTION_STRINGS


def build_connection_settings(
    entries: Sequence[ConnectionStringConfig],
    providers: Iterable[str],
) -> tuple[ConnectionSetting, ...]:
    """
    Turn configured entries into ConnectionSettings.

    - No entries at all -> ConfigurationError.
    - An entry without a name -> ConfigurationError.
    - An entry whose provider is not in *providers* is skipped.
    """
    if not entries:
        raise ConfigurationError("No database connection strings configured")

    allowed = {p.strip().lower() for p in providers}
    result: list[ConnectionSetting] = []
    for entry in entries:
        if not entry.name:
            raise ConfigurationError("A database connection string has no name")

        provider = (entry.provider_name or "").strip().lower()
        if provider not in allowed:
            _log.debug(
                "Skipping connection %r: unsupported provider %r",
                entry.name,
                entry.provider_name,
            )
            continue

        result.append(
            ConnectionSetting(
                name=entry.name,
                provider=provider,
                connection_string=(entry.connection_string or "").strip(),
            )
        )
    return tuple(result)


class ConnectionSettingResolver:
    """Resolves connection names to settings; builds the settings set once."""

    def __init__(
        self,
        loader: ConnectionStringLoader | None = None,
        *,
        providers: Iterable[str] | None = None,
        default_name: str | None = None,
    ) -> None:
        self._loader = loader or load_connection_strings
        self._providers = tuple(providers or (p.value for p in ProviderEnum))
        self._default_name = default_name
        self._settings: tuple[ConnectionSetting, ...] | None = None
        self._lock = threading.Lock()

    @property
    def default_name(self) -> str:
        if self._default_name is None:
            self._default_name = (
                load_settings().DEFAULT_CONNECTION_NAME or DEFAULT_CONNECTION_NAME
            )
        return self._default_name

    def settings(self) -> tuple[ConnectionSetting, ...]:
        """Return the settings set, building it on first use (thread-safe)."""
        if self._settings is None:
            with self._lock:
                if self._settings is None:
                    self._settings = build_connection_settings(
                        self._loader(), self._providers
                    )
                    _log.debug(
                        "Loaded %d connection setting(s): %s",
                        len(self._settings),
                        ", ".join(s.name for s in self._settings),
                    )
        return self._settings

    def resolve(self, name: str | None = None) -> ConnectionSetting:
        """Return the first setting named *name* (default name when empty)."""
        name = name or self.default_name
        for setting in self.settings():
            if setting.name == name:
                return setting
        raise ConfigurationError(f"No database connection string found for {name!r}")
