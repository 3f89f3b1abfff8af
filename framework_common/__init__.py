"""Common utilities: typed class lists, JSON shortcuts and a database helper."""

__version__ = "0.1.0"
