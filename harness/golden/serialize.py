"""
harness/golden/serialize.py

Canonical text rendering of BSON values for golden files.

Output follows the mongo shell ``tojson`` layout so snapshots stay readable
next to server logs:

    one line    { "a" : 1, "b" : [ 1, 2 ] }
    multi line  {
                	"a" : 1,
                	"b" : [
                		1,
                		2
                	]
                }

Scalars
-------
  None            null
  bool            true / false
  int             42
  Int64           NumberLong(42)
  float           1.5, 2.0, NaN, Infinity, -Infinity
  str             JSON-quoted, non-ASCII kept as is
  datetime        ISODate("2024-01-01T00:00:00Z") (milliseconds when non-zero)
  ObjectId        ObjectId("...")
  Decimal128      NumberDecimal("...")
  Timestamp       Timestamp(time, inc)
  Binary / bytes  BinData(subtype, "base64")
  Regex / Pattern /pattern/flags
  MinKey / MaxKey MinKey / MaxKey
  DBRef           DBRef("coll", id) or DBRef("coll", id, "db")

``sort_keys`` sorts object keys at every depth.  That is the only
normalization done here; array order is the caller's decision.
"""
from __future__ import annotations

import base64
import json
import math
import re
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from bson.binary import Binary
from bson.code import Code
from bson.dbref import DBRef
from bson.decimal128 import Decimal128
from bson.int64 import Int64
from bson.max_key import MaxKey
from bson.min_key import MinKey
from bson.objectid import ObjectId
from bson.regex import Regex
from bson.timestamp import Timestamp

_INDENT = "\t"

_RE_FLAGS: tuple[tuple[int, str], ...] = (
    (re.IGNORECASE, "i"),
    (re.MULTILINE, "m"),
    (re.DOTALL, "s"),
    (re.VERBOSE, "x"),
)


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------

def _iso_date(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    millis = value.microsecond // 1000
    if millis:
        text += f".{millis:03d}"
    return f'ISODate("{text}Z")'


def _float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return repr(value)


def _regex(pattern: str, flags: int | str) -> str:
    if isinstance(flags, str):
        letters = "".join(sorted(flags))
    else:
        letters = "".join(letter for flag, letter in _RE_FLAGS if flags & flag)
    return f"/{pattern}/{letters}"


def _scalar(value: Any) -> str:
    """Render a non-container value, raising TypeError for unknown types."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Int64):
        return f"NumberLong({int(value)})"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _float(value)
    if isinstance(value, Code):
        return json.dumps(str(value), ensure_ascii=False)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, datetime):
        return _iso_date(value)
    if isinstance(value, ObjectId):
        return f'ObjectId("{value}")'
    if isinstance(value, Decimal128):
        return f'NumberDecimal("{value}")'
    if isinstance(value, Timestamp):
        return f"Timestamp({value.time}, {value.inc})"
    if isinstance(value, uuid.UUID):
        return f'UUID("{value}")'
    if isinstance(value, Binary):
        encoded = base64.b64encode(bytes(value)).decode("ascii")
        return f'BinData({value.subtype}, "{encoded}")'
    if isinstance(value, (bytes, bytearray)):
        encoded = base64.b64encode(bytes(value)).decode("ascii")
        return f'BinData(0, "{encoded}")'
    if isinstance(value, Regex):
        return _regex(value.pattern, value.flags)
    if isinstance(value, re.Pattern):
        return _regex(value.pattern, value.flags)
    if isinstance(value, DBRef):
        args = [json.dumps(value.collection, ensure_ascii=False), to_json_one_line(value.id)]
        if value.database is not None:
            args.append(json.dumps(value.database, ensure_ascii=False))
        return f"DBRef({', '.join(args)})"
    if isinstance(value, MinKey):
        return "MinKey"
    if isinstance(value, MaxKey):
        return "MaxKey"
    raise TypeError(f"Cannot serialize value of type {type(value).__name__}")


def _items(value: Mapping[str, Any], sort_keys: bool) -> Iterable[tuple[str, Any]]:
    items = value.items()
    if sort_keys:
        return sorted(items, key=lambda kv: str(kv[0]))
    return items


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def to_json_one_line(value: Any, sort_keys: bool = False) -> str:
    """Render *value* on a single line."""
    if isinstance(value, Mapping):
        members = [
            f"{json.dumps(str(k), ensure_ascii=False)} : {to_json_one_line(v, sort_keys)}"
            for k, v in _items(value, sort_keys)
        ]
        return "{ " + ", ".join(members) + " }" if members else "{ }"
    if _is_sequence(value):
        elements = [to_json_one_line(v, sort_keys) for v in value]
        return "[ " + ", ".join(elements) + " ]" if elements else "[ ]"
    return _scalar(value)


def to_json_multi_line(value: Any, sort_keys: bool = True, depth: int = 0) -> str:
    """Render *value* with one member per line and tab indentation.

    Empty objects and arrays stay inline (``{ }`` / ``[ ]``).
    """
    pad = _INDENT * (depth + 1)
    closing = _INDENT * depth
    if isinstance(value, Mapping):
        if not value:
            return "{ }"
        members = [
            f"{pad}{json.dumps(str(k), ensure_ascii=False)} : "
            f"{to_json_multi_line(v, sort_keys, depth + 1)}"
            for k, v in _items(value, sort_keys)
        ]
        return "{\n" + ",\n".join(members) + "\n" + closing + "}"
    if _is_sequence(value):
        if not value:
            return "[ ]"
        elements = [
            f"{pad}{to_json_multi_line(v, sort_keys, depth + 1)}" for v in value
        ]
        return "[\n" + ",\n".join(elements) + "\n" + closing + "]"
    return _scalar(value)


def normalize_array(results: Iterable[Any], should_sort: bool = True) -> list[str]:
    """Render each result on one line with sorted keys.

    When *should_sort* is true the rendered lines are sorted so the output
    no longer depends on the order the engine returned documents in;
    otherwise the input order is kept.
    """
    normalized = [to_json_one_line(doc, sort_keys=True) for doc in results]
    return sorted(normalized) if should_sort else normalized
