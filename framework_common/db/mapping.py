"""
Parameter shaping and row mapping around SQLAlchemy ``text()`` statements.

- to_params: mapping / dataclass / pydantic model / plain object (or a list of
  them) -> dict (or list of dicts) for named ``:placeholders``.
- map_row: Row -> dict, pydantic model, dataclass, scalar or any class.
- coerce_scalar: first-column values -> requested scalar type.
- split_statements: quote-aware ``;`` splitting for multi-result queries.
"""

import re
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.engine import Row
from sqlalchemy.sql.expression import TextClause

from .models import CommandType

_DOLLAR_TAG = re.compile(r"\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$")

SCALAR_TYPES: tuple[type, ...] = (
    str,
    int,
    float,
    bool,
    Decimal,
    datetime,
    date,
    time,
    timedelta,
    UUID,
    bytes,
)

# Value returned for a NULL scalar; types not listed default to None.
_SCALAR_DEFAULTS: dict[type, Any] = {
    int: 0,
    float: 0.0,
    bool: False,
    Decimal: Decimal(0),
}


def is_scalar_type(tp: Any) -> bool:
    """True for primitive/value types and Enums."""
    if not isinstance(tp, type):
        return False
    return issubclass(tp, Enum) or tp in SCALAR_TYPES


def scalar_default(tp: Any) -> Any:
    return _SCALAR_DEFAULTS.get(tp)


def coerce_scalar(value: Any, as_type: type | None) -> Any:
    """Convert a single column value to *as_type* (None -> the type's default)."""
    if as_type is None:
        return value
    if value is None:
        return scalar_default(as_type)
    if type(value) is as_type:
        return value
    if issubclass(as_type, Enum):
        return as_type(value)
    if as_type is str:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value).decode("utf-8")
        return str(value)
    if as_type is bytes:
        return value.encode("utf-8") if isinstance(value, str) else bytes(value)
    if as_type is Decimal:
        return Decimal(str(value))
    if as_type is UUID:
        if isinstance(value, (bytes, bytearray)) and len(value) == 16:
            return UUID(bytes=bytes(value))
        return UUID(str(value))
    if as_type is datetime:
        if isinstance(value, str):
            return datetime.fromisoformat(value)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
    if as_type is date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str):
            return date.fromisoformat(value)
    if as_type is time and isinstance(value, str):
        return time.fromisoformat(value)
    return as_type(value)


def _object_params(obj: Any) -> dict[str, Any]:
    if isinstance(obj, Mapping):
        return dict(obj)
    if isinstance(obj, BaseModel):
        return obj.model_dump()
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in fields(obj)}
    if hasattr(obj, "__dict__"):
        return {k: v for k, v in vars(obj).items() if not k.startswith("_")}
    raise TypeError(f"Unsupported SQL parameter object: {type(obj).__name__}")


def to_params(params: Any) -> dict[str, Any] | list[dict[str, Any]] | None:
    """Shape a parameter object for ``Connection.execute``; lists mean executemany."""
    if params is None:
        return None
    if isinstance(params, (list, tuple)):
        return [_object_params(p) for p in params]
    return _object_params(params)


def procedure_call(name: str, params: dict | list | None) -> str:
    """Render ``CALL name(:a, :b)`` with one bind per parameter key."""
    first = params[0] if isinstance(params, list) and params else params
    keys = list(first) if isinstance(first, dict) else []
    binds = ", ".join(f":{k}" for k in keys)
    return f"CALL {name.strip()}({binds})"


def build_statement(
    sql: str,
    params: Any = None,
    command_type: CommandType | None = None,
) -> tuple[TextClause, dict[str, Any] | list[dict[str, Any]] | None]:
    """Return the ``text()`` clause and shaped parameters for one call."""
    shaped = to_params(params)
    if command_type == CommandType.STORED_PROCEDURE:
        sql = procedure_call(sql, shaped)
    return text(sql), shaped


def map_row(row: Row | Mapping[str, Any], row_type: Any = None) -> Any:
    """Map one result row (SQLAlchemy Row or column mapping) to *row_type* (dict when None)."""
    data = dict(row._mapping) if isinstance(row, Row) else dict(row)
    if row_type is None or row_type is dict:
        return data
    if is_scalar_type(row_type):
        return coerce_scalar(next(iter(data.values()), None), row_type)
    if isinstance(row_type, type) and issubclass(row_type, BaseModel):
        return row_type.model_validate(data)
    if is_dataclass(row_type):
        names = {f.name for f in fields(row_type) if f.init}
        return row_type(**{k: v for k, v in data.items() if k in names})
    return row_type(**data)


def split_statements(sql: str) -> list[str]:
    """
    Split *sql* on ``;`` outside quotes, dollar-quoted bodies (``$$...$$``,
    ``$tag$...$tag$``) and comments; empty statements are dropped.
    """
    stmts: list[str] = []
    current: list[str] = []
    i = 0
    n = len(sql)
    while i < n:
        ch = sql[i]
        if ch in ("'", '"', "`"):
            end = i + 1
            while end < n:
                if sql[end] == "\\" and ch != "`":
                    end += 2
                    continue
                if sql[end] == ch:
                    # doubled quote is an escaped quote
                    if end + 1 < n and sql[end + 1] == ch:
                        end += 2
                        continue
                    break
                end += 1
            current.append(sql[i : end + 1])
            i = end + 1
            continue
        if ch == "$" and not (i and (sql[i - 1].isalnum() or sql[i - 1] == "_")):
            tag = _DOLLAR_TAG.match(sql, i)
            if tag:
                end = sql.find(tag.group(), tag.end())
                end = n if end == -1 else end + len(tag.group())
                current.append(sql[i:end])
                i = end
                continue
        if sql.startswith("--", i):
            end = sql.find("\n", i)
            end = n if end == -1 else end + 1
            current.append(sql[i:end])
            i = end
            continue
        if sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            end = n if end == -1 else end + 2
            current.append(sql[i:end])
            i = end
            continue
        if ch == ";":
            stmt = "".join(current).strip()
            if stmt:
                stmts.append(stmt)
            current = []
        else:
            current.append(ch)
        i += 1
    tail = "".join(current).strip()
    if tail:
        stmts.append(tail)
    return stmts
