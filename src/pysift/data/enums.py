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
"""Closed vocabularies shared by the data modules: operators and field types."""

from __future__ import annotations

from enum import StrEnum


class Operator(StrEnum):
    """Filter operators accepted in request parameters."""

    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    LIKE = "like"
    NOT_LIKE = "not_like"
    ILIKE = "ilike"
    NOT_ILIKE = "not_ilike"
    MATCH = "=~"
    LIKE_AND = "like_and"
    LIKE_OR = "like_or"
    ILIKE_AND = "ilike_and"
    ILIKE_OR = "ilike_or"
    EMPTY = "empty"
    NOT_EMPTY = "not_empty"


class StorageType(StrEnum):
    """Comparable type of the value stored behind a field."""

    ANY = "any"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    STRING = "string"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    UUID = "uuid"
    ENUM = "enum"
    ARRAY = "array"
    MAP = "map"


class FieldKind(StrEnum):
    PLAIN = "plain"
    ALIAS = "alias"
    JOIN = "join"
    COMPOSITE = "composite"
    CUSTOM = "custom"


COMPARISON_OPERATORS = frozenset({Operator.LT, Operator.LE, Operator.GT, Operator.GE})

EQUALITY_OPERATORS = frozenset({Operator.EQ, Operator.NE, Operator.IN, Operator.NOT_IN})

MEMBERSHIP_OPERATORS = frozenset({Operator.CONTAINS, Operator.NOT_CONTAINS})

SUBSTRING_OPERATORS = frozenset(
    {Operator.LIKE, Operator.NOT_LIKE, Operator.ILIKE, Operator.NOT_ILIKE, Operator.MATCH}
)

MULTI_TERM_OPERATORS = frozenset({Operator.LIKE_AND, Operator.LIKE_OR, Operator.ILIKE_AND, Operator.ILIKE_OR})

EMPTINESS_OPERATORS = frozenset({Operator.EMPTY, Operator.NOT_EMPTY})

LIST_OPERATORS = frozenset({Operator.IN, Operator.NOT_IN})

_UNORDERED = frozenset({StorageType.ARRAY, StorageType.MAP})

_TEXT = frozenset({StorageType.ANY, StorageType.STRING})

_COLLECTIONS = frozenset({StorageType.ANY, StorageType.ARRAY})


def operators_for(storage_type: StorageType) -> frozenset[Operator]:
    """Operators that make sense for a column of *storage_type*."""
    allowed = set(EQUALITY_OPERATORS | EMPTINESS_OPERATORS)
    if storage_type not in _UNORDERED:
        allowed |= COMPARISON_OPERATORS
    if storage_type in _TEXT:
        allowed |= SUBSTRING_OPERATORS | MULTI_TERM_OPERATORS
    if storage_type in _COLLECTIONS:
        allowed |= MEMBERSHIP_OPERATORS
    return frozenset(allowed)
