from .config import ConnectionStringConfig, Settings, get_settings
from .exceptions import ConfigurationError, ExecutionError
from .logging import configure_logging

__all__ = [
    "ConfigurationError",
    "ConnectionStringConfig",
    "ExecutionError",
    "Settings",
    "configure_logging",
    "get_settings",
]
