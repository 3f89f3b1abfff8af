"""
Error types raised by framework_common.

Errors from the SQL engine and DB drivers are not wrapped: they reach the
caller as ``sqlalchemy.exc`` exceptions. ``ExecutionError`` names their common
base so callers can catch them without importing SQLAlchemy.
"""

from sqlalchemy.exc import SQLAlchemyError


class ConfigurationError(RuntimeError):
    """Raised when connection settings are missing, unnamed or not found."""


ExecutionError = SQLAlchemyError

__all__ = ["ConfigurationError", "ExecutionError"]
