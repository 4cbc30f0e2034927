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
"""Outbound port: the storage backend that executes compiled query plans."""

from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable

from pysift.data.plan import QueryPlan
from pysift.data.predicate import Predicate

T = TypeVar("T", covariant=True)


@runtime_checkable
class ExecutionPort(Protocol[T]):
    """Runs query plans against a concrete data source.

    Each adapter (in-memory, SQLAlchemy, ...) translates the predicate tree
    and ordering of a :class:`QueryPlan` into its own query language.
    """

    async def fetch(self, plan: QueryPlan) -> list[T]: ...

    async def count(self, predicate: Predicate) -> int: ...
