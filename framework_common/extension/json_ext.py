"""
JSON shortcuts: object <-> text and their UTF-8 byte variants.

Output is compact; datetimes use DATE_FORMAT. Dataclasses, pydantic models,
Enums, Decimal, UUID, sets, tuples and plain objects are converted to JSON
data first. ``ignore_null=True`` drops None-valued fields of objects and
mappings (list items are kept). Typed decoding goes through pydantic.

Bytes are written as URL-safe base64 and read back the same way. Fields of a
pydantic model follow the model's own ``val_json_bytes`` setting instead, since
pydantic validates them with the model's config.
"""

import base64
import json
from dataclasses import fields, is_dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, TypeAdapter

T = TypeVar("T")

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DAY_FORMAT = "%Y-%m-%d"

_BYTES_MODE = "base64"

_JSON_CONFIG = ConfigDict(val_json_bytes=_BYTES_MODE)


def _encode_bytes(data: bytes, mode: str) -> str:
    if mode == "base64":
        return base64.urlsafe_b64encode(data).decode("ascii")
    if mode == "hex":
        return data.hex()
    return data.decode("utf-8")


def _plain(obj: Any, ignore_null: bool, bytes_mode: str = _BYTES_MODE) -> Any:
    """Convert *obj* to JSON-native data (dict, list, str, number, bool, None)."""
    if isinstance(obj, Enum):
        return _plain(obj.value, ignore_null, bytes_mode)
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, datetime):
        return obj.strftime(DATE_FORMAT)
    if isinstance(obj, date):
        return obj.strftime(DAY_FORMAT)
    if isinstance(obj, time):
        return obj.isoformat()
    if isinstance(obj, (Decimal, UUID)):
        return str(obj)
    if isinstance(obj, (bytes, bytearray)):
        return _encode_bytes(bytes(obj), bytes_mode)
    if isinstance(obj, BaseModel):
        # nested dataclasses inherit the model's config, nested models bring their own
        mode = obj.model_config.get("val_json_bytes", "utf8")
        return _plain_mapping(
            {name: getattr(obj, name) for name in type(obj).model_fields},
            ignore_null,
            mode,
        )
    if is_dataclass(obj) and not isinstance(obj, type):
        return _plain_mapping(
            {f.name: getattr(obj, f.name) for f in fields(obj)}, ignore_null, bytes_mode
        )
    if isinstance(obj, dict):
        return _plain_mapping(obj, ignore_null, bytes_mode)
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [_plain(item, ignore_null, bytes_mode) for item in obj]
    if hasattr(obj, "__dict__"):
        return _plain_mapping(
            {k: v for k, v in vars(obj).items() if not k.startswith("_")},
            ignore_null,
            bytes_mode,
        )
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _plain_mapping(data: dict, ignore_null: bool, bytes_mode: str) -> dict[str, Any]:
    return {
        str(k): _plain(v, ignore_null, bytes_mode)
        for k, v in data.items()
        if not (ignore_null and v is None)
    }


@lru_cache(maxsize=256)
def _adapter(type_: Any) -> TypeAdapter:
    # a one-item tuple carries the config; dataclasses and models reject it directly
    return TypeAdapter(tuple[type_], config=_JSON_CONFIG)


def to_json(obj: Any, ignore_null: bool = False) -> str | None:
    """Serialize *obj* to compact JSON text; None stays None."""
    if obj is None:
        return None
    return json.dumps(
        _plain(obj, ignore_null), ensure_ascii=False, separators=(",", ":")
    )


def from_json(text: str | None, type_: type[T] | Any = None) -> T | Any:
    """
    Parse JSON *text*; empty or None text gives None.

    Without *type_* the plain JSON data is returned. With *type_* (a class,
    dataclass, pydantic model or typing form such as ``list[User]``) the data
    is validated into that type by pydantic.
    """
    if not text:
        return None
    if type_ is None:
        return json.loads(text)
    return _adapter(type_).validate_json(f"[{text}]")[0]


def serialize_utf8(text: str | None) -> bytes | None:
    return None if text is None else text.encode("utf-8")


def deserialize_utf8(data: bytes | None) -> str | None:
    return None if data is None else bytes(data).decode("utf-8")


def serialize_utf8_json(obj: Any, ignore_null: bool = False) -> bytes | None:
    """``to_json`` followed by UTF-8 encoding."""
    return serialize_utf8(to_json(obj, ignore_null=ignore_null))


def deserialize_utf8_json(data: bytes | None, type_: type[T] | Any = None) -> T | Any:
    """UTF-8 decoding followed by ``from_json``; None or empty input gives None."""
    if data is None:
        return None
    return from_json(deserialize_utf8(data), type_)
