# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Cursor tokens and keyset boundaries.

A cursor is the ordered mapping ``sort field -> value`` of a pivot row.
It travels as an opaque URL-safe token (tagged JSON, base64 encoded) and
is turned back into a strict lexicographic boundary over the ordering::

    order: (asc a, desc b, asc c), cursor: {a: 1, b: 5, c: 9}

    a >= 1 AND (a > 1 OR (b <= 5 AND (b < 5 OR c > 9)))
"""

from __future__ import annotations

import base64
import binascii
import json
import uuid
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

import structlog

from pysift.data.fields import (
    AliasField,
    CompositeField,
    FieldDescriptor,
    JoinField,
    PlainField,
    Schema,
    resolve_field,
)
from pysift.data.predicate import TRUE, And, Compare, Or, Predicate
from pysift.data.sort import Sort
from pysift.kernel.exceptions import InvalidCursorFieldError, ValidationException

logger = structlog.get_logger(__name__)

CursorValueFunc = Callable[[Any, Sequence[str]], dict[str, Any]]


class InvalidCursorError(ValidationException):
    """A cursor token could not be decoded."""

    def __init__(self, message: str = "is invalid", cursor: str | None = None) -> None:
        super().__init__(
            f"Invalid cursor: {message}",
            errors={"cursor": [message]},
            code="INVALID_CURSOR",
            context={"cursor": cursor},
        )


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

_TYPE_KEY = "$t"
_VALUE_KEY = "$v"


def _tag(value: Any) -> Any:
    # bool before int; datetime before date (datetime is a date subclass)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        return {_TYPE_KEY: "datetime", _VALUE_KEY: value.isoformat()}
    if isinstance(value, date):
        return {_TYPE_KEY: "date", _VALUE_KEY: value.isoformat()}
    if isinstance(value, time):
        return {_TYPE_KEY: "time", _VALUE_KEY: value.isoformat()}
    if isinstance(value, Decimal):
        return {_TYPE_KEY: "decimal", _VALUE_KEY: str(value)}
    if isinstance(value, uuid.UUID):
        return {_TYPE_KEY: "uuid", _VALUE_KEY: str(value)}
    if isinstance(value, tuple):
        return {_TYPE_KEY: "tuple", _VALUE_KEY: [_tag(v) for v in value]}
    if isinstance(value, list):
        return [_tag(v) for v in value]
    if isinstance(value, Mapping):
        return {_TYPE_KEY: "map", _VALUE_KEY: [[str(k), _tag(v)] for k, v in value.items()]}
    if hasattr(value, "value") and hasattr(type(value), "__members__"):
        return _tag(value.value)
    raise TypeError(f"Cannot encode value of type {type(value).__name__} in a cursor")


_UNTAGGERS: dict[str, Callable[[Any], Any]] = {
    "datetime": datetime.fromisoformat,
    "date": date.fromisoformat,
    "time": time.fromisoformat,
    "decimal": Decimal,
    "uuid": uuid.UUID,
    "tuple": lambda items: tuple(_untag(v) for v in items),
    "map": lambda pairs: {k: _untag(v) for k, v in pairs},
}


def _untag(value: Any) -> Any:
    if isinstance(value, list):
        return [_untag(v) for v in value]
    if isinstance(value, dict):
        if set(value) != {_TYPE_KEY, _VALUE_KEY} or value[_TYPE_KEY] not in _UNTAGGERS:
            raise ValueError("unknown tagged value")
        return _UNTAGGERS[value[_TYPE_KEY]](value[_VALUE_KEY])
    return value


def encode_cursor(cursor: Mapping[str, Any]) -> str:
    """Serialize an ordered ``field -> value`` mapping to an opaque token."""
    payload = [[str(key), _tag(value)] for key, value in cursor.items()]
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cursor(token: str) -> dict[str, Any]:
    """Inverse of :func:`encode_cursor`.

    Raises:
        InvalidCursorError: For anything that is not a token produced by
            :func:`encode_cursor`.
    """
    try:
        raw = base64.urlsafe_b64decode(token.encode("ascii"))
        payload = json.loads(raw.decode("utf-8"))
        if not isinstance(payload, list):
            raise ValueError("cursor payload must be a list of pairs")
        cursor: dict[str, Any] = {}
        for pair in payload:
            if not (isinstance(pair, list) and len(pair) == 2 and isinstance(pair[0], str)):
                raise ValueError("cursor payload must be a list of pairs")
            cursor[pair[0]] = _untag(pair[1])
        return cursor
    except (
        ValueError,
        TypeError,
        ArithmeticError,
        UnicodeError,
        binascii.Error,
        AttributeError,
        RecursionError,
    ):
        raise InvalidCursorError(cursor=token) from None


# ---------------------------------------------------------------------------
# Cursor values from rows
# ---------------------------------------------------------------------------


def read_path(row: Any, path: Sequence[str]) -> Any:
    """Follow *path* through mappings and attributes; ``None`` if it breaks off."""
    current = row
    for step in path:
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(step)
        else:
            current = getattr(current, step, None)
    return current


def get_field_value(row: Any, descriptor: FieldDescriptor, schema: Schema | None = None) -> Any:
    """Read the value of a field off a fetched row, honouring join paths.

    Composite fields yield the list of their member values.
    """
    if isinstance(descriptor, CompositeField):
        return [get_field_value(row, resolve_field(schema, m), schema) for m in descriptor.members]
    if isinstance(descriptor, JoinField):
        return read_path(row, descriptor.path)
    if isinstance(descriptor, PlainField):
        return read_path(row, (descriptor.source or descriptor.name,))
    return read_path(row, (descriptor.name,))


def get_cursor_value(row: Any, order_by: Sequence[str], schema: Schema | None = None) -> dict[str, Any]:
    """The decoded cursor of *row* for the given ordering fields."""
    return {name: get_field_value(row, resolve_field(schema, name), schema) for name in order_by}


def get_cursors(
    rows: Sequence[Any],
    order_by: Sequence[str],
    schema: Schema | None = None,
    cursor_value_func: CursorValueFunc | None = None,
) -> tuple[str | None, str | None]:
    """Encoded cursors of the first and last row, ``(None, None)`` if empty."""
    if not rows:
        return None, None
    func = cursor_value_func or (lambda row, fields: get_cursor_value(row, fields, schema))
    return encode_cursor(func(rows[0], order_by)), encode_cursor(func(rows[-1], order_by))


# ---------------------------------------------------------------------------
# Boundary predicate
# ---------------------------------------------------------------------------


def cursor_predicate(sort: Sort, cursor: Mapping[str, Any], schema: Schema | None = None) -> Predicate:
    """Strict lexicographic boundary selecting the rows after *cursor*.

    The boundary is folded from the last ordering field backwards.  Fields
    without a cursor value add no constraint, composite fields add none
    either (with a warning), alias fields are rejected.

    Raises:
        InvalidCursorFieldError: If the ordering contains an alias field.
    """
    boundary: Predicate = TRUE
    last_index = len(sort.orders) - 1
    for index in range(last_index, -1, -1):
        order = sort.orders[index]
        descriptor = resolve_field(schema, order.property)
        if isinstance(descriptor, AliasField):
            raise InvalidCursorFieldError(
                f"Alias field '{descriptor.name}' cannot be used in cursor pagination",
                code="ALIAS_CURSOR_FIELD",
                context={"field": descriptor.name},
            )
        if isinstance(descriptor, CompositeField):
            logger.warning("composite_cursor_field_ignored", field=descriptor.name)
            continue

        value = cursor.get(order.property)
        if value is None:
            continue

        ref = descriptor.ref
        strict = ">" if order.direction.ascending else "<"
        if index == last_index:
            boundary = Compare(ref, strict, value)
        else:
            inclusive = ">=" if order.direction.ascending else "<="
            boundary = And((Compare(ref, inclusive, value), Or((Compare(ref, strict, value), boundary))))
    return boundary
