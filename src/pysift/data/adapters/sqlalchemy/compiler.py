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
"""Translation of predicate trees and orderings into SQLAlchemy expressions."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import and_, any_, false, literal, not_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from pysift.data.plan import SortKey
from pysift.data.predicate import (
    And,
    Compare,
    Const,
    Contains,
    FieldRef,
    In,
    IsNull,
    Like,
    Not,
    Or,
    Predicate,
)
from pysift.kernel.exceptions import FatalMisuseError

LIKE_ESCAPE = "\\"


class PredicateCompiler:
    """Compile predicate nodes against an entity, its join bindings and aliases.

    Args:
        entity: Mapped class (or aliased entity) fields without a binding
            are read from.
        bindings: Named join targets, usually ``sqlalchemy.orm.aliased``
            entities that the base statement joins.
        aliases: Labelled select expressions for alias fields.
    """

    def __init__(
        self,
        entity: Any,
        bindings: Mapping[str, Any] | None = None,
        aliases: Mapping[str, ColumnElement[Any]] | None = None,
    ) -> None:
        self._entity = entity
        self._bindings = dict(bindings or {})
        self._aliases = dict(aliases or {})

    def column(self, ref: FieldRef) -> Any:
        """The column expression a field reference points at."""
        if ref.alias:
            try:
                return self._aliases[ref.name]
            except KeyError:
                raise FatalMisuseError(
                    f"Alias field '{ref.name}' is not selected by the statement",
                    code="UNKNOWN_ALIAS",
                ) from None
        target = self._entity
        if ref.binding is not None:
            try:
                target = self._bindings[ref.binding]
            except KeyError:
                raise FatalMisuseError(
                    f"Join binding '{ref.binding}' is not part of the statement",
                    code="UNKNOWN_BINDING",
                    context={"field": ref.name},
                ) from None
        return getattr(target, ref.source or ref.name)

    def where(self, predicate: Predicate) -> ColumnElement[bool]:
        if isinstance(predicate, Const):
            return true() if predicate.value else false()
        if isinstance(predicate, And):
            if not predicate.children:
                return true()
            return and_(*(self.where(child) for child in predicate.children))
        if isinstance(predicate, Or):
            if not predicate.children:
                return false()
            return or_(*(self.where(child) for child in predicate.children))
        if isinstance(predicate, Not):
            return not_(self.where(predicate.child))
        if isinstance(predicate, Compare):
            return self._compare(self.column(predicate.ref), predicate.op, predicate.value)
        if isinstance(predicate, In):
            return self.column(predicate.ref).in_(list(predicate.values))
        if isinstance(predicate, IsNull):
            return self.column(predicate.ref).is_(None)
        if isinstance(predicate, Like):
            column = self.column(predicate.ref)
            if predicate.case_sensitive:
                return column.like(predicate.pattern, escape=LIKE_ESCAPE)
            return column.ilike(predicate.pattern, escape=LIKE_ESCAPE)
        if isinstance(predicate, Contains):
            # array columns only (PostgreSQL ``value = ANY(column)``)
            return literal(predicate.value) == any_(self.column(predicate.ref))
        raise TypeError(f"Unsupported predicate node: {type(predicate).__name__}")

    @staticmethod
    def _compare(column: Any, op: str, value: Any) -> ColumnElement[bool]:
        if op == "==":
            return column == value
        if op == "!=":
            return column != value
        if op == "<":
            return column < value
        if op == "<=":
            return column <= value
        if op == ">":
            return column > value
        if op == ">=":
            return column >= value
        raise ValueError(f"Unknown comparison operator: {op}")

    def order_by(self, ordering: tuple[SortKey, ...]) -> list[Any]:
        clauses = []
        for key in ordering:
            column = self.column(key.ref)
            clause = column.asc() if key.direction.ascending else column.desc()
            if key.direction.nulls == "first":
                clause = clause.nulls_first()
            elif key.direction.nulls == "last":
                clause = clause.nulls_last()
            clauses.append(clause)
        return clauses
