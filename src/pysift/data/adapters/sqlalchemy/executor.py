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
"""Async SQLAlchemy execution adapter."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from pysift.data.adapters.sqlalchemy.compiler import PredicateCompiler
from pysift.data.plan import QueryPlan
from pysift.data.predicate import Predicate

T = TypeVar("T")


class SQLAlchemyExecutor(Generic[T]):
    """Runs query plans on an :class:`AsyncSession`.

    The base statement defaults to ``select(entity)``; pass one explicitly
    to add the joins that ``bindings`` refer to.  Alias fields are selected
    as extra labelled columns and only the entity is returned.

    Usage::

        owner = aliased(Owner)
        executor = SQLAlchemyExecutor(
            session,
            Pet,
            statement=select(Pet).join(owner, Pet.owner),
            bindings={"owner": owner},
        )
        page = await run(executor, request, pet_schema)
    """

    def __init__(
        self,
        session: AsyncSession,
        entity: type[T],
        *,
        statement: Select[Any] | None = None,
        bindings: Mapping[str, Any] | None = None,
        aliases: Mapping[str, ColumnElement[Any]] | None = None,
    ) -> None:
        self._session = session
        self._statement = statement if statement is not None else select(entity)
        self._aliases = {name: expr.label(name) for name, expr in (aliases or {}).items()}
        self._compiler = PredicateCompiler(entity, bindings, self._aliases)

    def statement(self, plan: QueryPlan) -> Select[Any]:
        """The SELECT statement *plan* compiles to."""
        stmt = self._statement
        if self._aliases:
            stmt = stmt.add_columns(*self._aliases.values())
        stmt = stmt.where(self._compiler.where(plan.predicate))
        if plan.ordering:
            stmt = stmt.order_by(*self._compiler.order_by(plan.ordering))
        if plan.offset:
            stmt = stmt.offset(plan.offset)
        if plan.limit is not None:
            stmt = stmt.limit(plan.limit)
        return stmt

    async def fetch(self, plan: QueryPlan) -> list[T]:
        result = await self._session.execute(self.statement(plan))
        if self._aliases:
            return [row[0] for row in result.all()]
        return list(result.scalars().all())

    async def count(self, predicate: Predicate) -> int:
        filtered = self._statement.where(self._compiler.where(predicate))
        result = await self._session.execute(select(func.count()).select_from(filtered.subquery()))
        return result.scalar_one()
