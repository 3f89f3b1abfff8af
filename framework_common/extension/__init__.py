from .json_ext import (
    DATE_FORMAT,
    deserialize_utf8,
    deserialize_utf8_json,
    from_json,
    serialize_utf8,
    serialize_utf8_json,
    to_json,
)

__all__ = [
    "DATE_FORMAT",
    "deserialize_utf8",
    "deserialize_utf8_json",
    "from_json",
    "serialize_utf8",
    "serialize_utf8_json",
    "to_json",
]
