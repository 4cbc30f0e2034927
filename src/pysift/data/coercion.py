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
"""Coercion of raw filter values to the storage type of their field.

Raw parameters usually arrive as strings.  Values are converted before
predicates are built so that comparisons run on typed operands; a value
that cannot be converted is reported as a validation error for its filter.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pysift.data.enums import (
    EMPTINESS_OPERATORS,
    LIST_OPERATORS,
    MEMBERSHIP_OPERATORS,
    MULTI_TERM_OPERATORS,
    SUBSTRING_OPERATORS,
    Operator,
    StorageType,
)

_TRUE_STRINGS = {"1", "true", "yes", "y", "on"}
_FALSE_STRINGS = {"0", "false", "no", "n", "off"}


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _coerce_number(value: Any, python_type: type) -> Any:
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, python_type):
        return value
    if python_type is not Decimal and isinstance(value, (int, float)):
        if python_type is int and isinstance(value, float) and not value.is_integer():
            raise ValueError(f"not an integer: {value!r}")
        return python_type(value)
    text = str(value).strip()
    if not text:
        raise ValueError("empty number")
    try:
        return python_type(text)
    except (ValueError, TypeError, InvalidOperation):
        raise ValueError(f"not a number: {value!r}") from None


def _coerce_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    # Accept either YYYY-MM-DD or a full ISO datetime and take its date part.
    if "T" in text or " " in text:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text)


def _coerce_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, datetime.min.time())
    else:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    # naive values stay naive
    return parsed


def _coerce_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value).strip())


def coerce_scalar(storage_type: StorageType, value: Any) -> Any:
    """Convert one scalar to *storage_type*; ``None`` passes through.

    Raises:
        ValueError: If the value cannot be represented in that type.
    """
    if value is None:
        return None
    if storage_type is StorageType.INTEGER:
        return _coerce_number(value, int)
    if storage_type is StorageType.FLOAT:
        return _coerce_number(value, float)
    if storage_type is StorageType.DECIMAL:
        return _coerce_number(value, Decimal)
    if storage_type is StorageType.BOOLEAN:
        return _coerce_bool(value)
    if storage_type is StorageType.DATE:
        return _coerce_date(value)
    if storage_type is StorageType.DATETIME:
        return _coerce_datetime(value)
    if storage_type is StorageType.UUID:
        return _coerce_uuid(value)
    if storage_type is StorageType.STRING:
        if isinstance(value, (dict, list, tuple)):
            raise ValueError(f"not a string: {value!r}")
        return str(value)
    return value


def coerce_filter_value(storage_type: StorageType, op: Operator, value: Any) -> Any:
    """Convert a filter value according to the operator's value shape."""
    if value is None or op in EMPTINESS_OPERATORS:
        return value
    if op in LIST_OPERATORS:
        if not isinstance(value, (list, tuple)):
            raise ValueError("must be a list")
        return [coerce_scalar(storage_type, v) for v in value]
    if op in SUBSTRING_OPERATORS or op in MULTI_TERM_OPERATORS:
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value]
        if isinstance(value, dict):
            raise ValueError("must be a string or a list of strings")
        return str(value)
    if op in MEMBERSHIP_OPERATORS:
        if isinstance(value, (list, dict)):
            raise ValueError("must be a single value")
        return value
    if storage_type in (StorageType.ARRAY, StorageType.MAP):
        return value
    if isinstance(value, (list, dict)):
        raise ValueError("must be a single value")
    return coerce_scalar(storage_type, value)
