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
"""End-to-end query tests on the in-memory adapter."""

from __future__ import annotations

import functools
import itertools
from datetime import datetime

import pytest

from pysift.data import options, query
from pysift.data.adapters.memory import InMemoryExecutor, like_regex
from pysift.data.fields import Schema
from pysift.data.plan import QueryPlan, SortKey
from pysift.data.predicate import And, Compare, FieldRef, In, IsNull, Like, Not, Or
from pysift.data.request import Request, to_next_cursor
from pysift.data.sort import Direction
from pysift.data.validation import validate
from pysift.kernel.exceptions import ValidationException

PETS = [
    {"id": 1, "name": "Rex", "species": "dog", "age": 3, "family": "Smith", "given": "John", "owner": {"name": "Ann"}, "weight": 30},
    {"id": 2, "name": "Tom", "species": "cat", "age": 5, "family": "Doe", "given": "Jane", "owner": {"name": "Bob"}, "weight": None},
    {"id": 3, "name": "Max", "species": "dog", "age": 5, "family": "Smith", "given": "Jane", "owner": {"name": "Ann"}, "weight": 25},
    {"id": 4, "name": "Kit", "species": "cat", "age": 1, "family": "Brown", "given": "Jim", "owner": None, "weight": 4},
    {"id": 5, "name": "50%_off", "species": "fish", "age": 2, "family": "Jones", "given": "John", "owner": {"name": "Cy"}, "weight": None},
    {"id": 6, "name": "500 off", "species": "dog", "age": 3, "family": "Doe", "given": "John", "owner": {"name": "Bob"}, "weight": 30},
]


@pytest.fixture(autouse=True)
def _reset_global_options():
    options.reset()
    yield
    options.reset()


@pytest.fixture
def schema() -> Schema:
    return Schema(
        "pet",
        fields={
            "id": "integer",
            "name": "string",
            "species": "string",
            "age": "integer",
            "family": "string",
            "given": "string",
            "weight": "integer",
        },
        filterable=["id", "name", "species", "age", "owner_name", "full_name"],
        sortable=["id", "name", "species", "age", "weight", "owner_name"],
        join_fields={"owner_name": {"binding": "owner", "field": "name", "type": "string"}},
        composite_fields={"full_name": ["family", "given"]},
    )


@pytest.fixture
def executor() -> InMemoryExecutor:
    return InMemoryExecutor(PETS)


def _ids(rows) -> list[int]:
    return [row["id"] for row in rows]


def _sorted_ids(order_by, directions) -> list[int]:
    """Expected order, with nulls placed the way PostgreSQL places them."""

    def compare(a, b):
        for field, direction in zip(order_by, directions):
            x, y = a[field], b[field]
            if x == y:
                continue
            nulls_first = direction.endswith("nulls_first") or direction == "desc"
            if x is None:
                return -1 if nulls_first else 1
            if y is None:
                return 1 if nulls_first else -1
            result = -1 if x < y else 1
            return -result if direction.startswith("desc") else result
        return 0

    return [pet["id"] for pet in sorted(PETS, key=functools.cmp_to_key(compare))]


class TestThreeValuedLogic:
    def test_comparison_with_null_is_unknown(self, executor: InMemoryExecutor):
        row = {"a": None}
        assert executor.evaluate(Compare(FieldRef("a"), "==", 1), row) is None
        assert executor.evaluate(Not(Compare(FieldRef("a"), "==", 1)), row) is None
        assert executor.evaluate(IsNull(FieldRef("a")), row) is True

    def test_and_or(self, executor: InMemoryExecutor):
        row = {"a": None, "b": 1}
        unknown = Compare(FieldRef("a"), "==", 1)
        true = Compare(FieldRef("b"), "==", 1)
        false = Compare(FieldRef("b"), "==", 2)
        assert executor.evaluate(And((unknown, true)), row) is None
        assert executor.evaluate(And((unknown, false)), row) is False
        assert executor.evaluate(Or((unknown, true)), row) is True
        assert executor.evaluate(Or((unknown, false)), row) is None

    def test_not_in_with_null_in_list(self, executor: InMemoryExecutor):
        assert executor.evaluate(Not(In(FieldRef("a"), (1, None))), {"a": 2}) is None

    def test_like_regex(self):
        assert like_regex("%50\\%\\_%").fullmatch("a 50%_off") is not None
        assert like_regex("%50\\%\\_%").fullmatch("500 off") is None
        assert like_regex("r_x", case_sensitive=False).fullmatch("REX") is not None

    def test_like_on_join(self, executor: InMemoryExecutor):
        ref = FieldRef("owner_name", source="name", binding="owner", path=("owner", "name"))
        assert executor.evaluate(Like(ref, "%an%", False), PETS[0]) is True
        assert executor.evaluate(Like(ref, "%an%", False), PETS[3]) is None


class TestOrdering:
    @pytest.mark.asyncio
    async def test_nulls_last_by_default_ascending(self):
        executor = InMemoryExecutor([{"id": 1, "v": None}, {"id": 2, "v": 2}, {"id": 3, "v": 1}])
        plan = QueryPlan(ordering=(SortKey(FieldRef("v"), Direction.ASC),))
        assert _ids(await executor.fetch(plan)) == [3, 2, 1]
        plan = QueryPlan(ordering=(SortKey(FieldRef("v"), Direction.DESC),))
        assert _ids(await executor.fetch(plan)) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_explicit_null_placement(self):
        executor = InMemoryExecutor([{"id": 1, "v": None}, {"id": 2, "v": 2}, {"id": 3, "v": 1}])
        plan = QueryPlan(ordering=(SortKey(FieldRef("v"), Direction.ASC_NULLS_FIRST),))
        assert _ids(await executor.fetch(plan)) == [1, 3, 2]
        plan = QueryPlan(ordering=(SortKey(FieldRef("v"), Direction.DESC_NULLS_LAST),))
        assert _ids(await executor.fetch(plan)) == [2, 3, 1]


class TestFiltering:
    @pytest.mark.asyncio
    async def test_equality_selects_matching_rows(self, executor: InMemoryExecutor, schema: Schema):
        for species in ("dog", "cat", "fish", "bird"):
            request = validate({"filters": [{"field": "species", "value": species}]}, schema)
            rows = await query.all(executor, request, schema)
            assert _ids(rows) == [p["id"] for p in PETS if p["species"] == species]

    @pytest.mark.asyncio
    async def test_like_escapes_wildcards(self, executor: InMemoryExecutor, schema: Schema):
        request = validate({"filters": [{"field": "name", "op": "like", "value": "50%_"}]}, schema)
        assert _ids(await query.all(executor, request, schema)) == [5]

    @pytest.mark.asyncio
    async def test_composite_ilike_and(self, executor: InMemoryExecutor, schema: Schema):
        request = validate({"filters": [{"field": "full_name", "op": "ilike_and", "value": "smith jane"}]}, schema)
        assert _ids(await query.all(executor, request, schema)) == [3]
        request = validate({"filters": [{"field": "full_name", "op": "ilike_or", "value": "brown jones"}]}, schema)
        assert _ids(await query.all(executor, request, schema)) == [4, 5]

    @pytest.mark.asyncio
    async def test_join_field_filter(self, executor: InMemoryExecutor, schema: Schema):
        request = validate({"filters": [{"field": "owner_name", "op": "in", "value": ["Ann", "Cy"]}]}, schema)
        assert _ids(await query.all(executor, request, schema)) == [1, 3, 5]

    @pytest.mark.asyncio
    async def test_not_in_with_none_excludes_null_owners(self, executor: InMemoryExecutor, schema: Schema):
        request = validate({"filters": [{"field": "owner_name", "op": "not_in", "value": ["Ann", None]}]}, schema)
        assert _ids(await query.all(executor, request, schema)) == [2, 5, 6]

    @pytest.mark.asyncio
    async def test_naive_datetime_filters(self):
        schema = Schema("visit", fields={"id": "integer", "at": "datetime"}, filterable=["at"], sortable=["id"])
        executor = InMemoryExecutor([{"id": 1, "at": datetime(2020, 1, 1, 12)}, {"id": 2, "at": datetime(2021, 3, 1, 8)}])
        request = validate({"filters": [{"field": "at", "value": "2020-01-01T12:00:00"}]}, schema)
        assert _ids(await query.all(executor, request, schema)) == [1]
        request = validate({"filters": [{"field": "at", "op": ">=", "value": "2020-06-01T00:00:00"}]}, schema)
        assert _ids(await query.all(executor, request, schema)) == [2]

    @pytest.mark.asyncio
    async def test_count_ignores_pagination(self, executor: InMemoryExecutor, schema: Schema):
        request = validate({"limit": 1, "filters": [{"field": "species", "value": "dog"}]}, schema)
        assert await query.count(executor, request, schema) == 3


class TestOffsetPagination:
    @pytest.mark.asyncio
    async def test_run_page(self, executor: InMemoryExecutor, schema: Schema):
        request = validate({"page": 2, "page_size": 4, "order_by": ["id"]}, schema)
        page = await query.run(executor, request, schema)
        assert _ids(page.items) == [5, 6]
        assert page.total_count == 6
        assert page.meta.current_page == 2
        assert page.has_previous is True
        assert page.has_next is False

    @pytest.mark.asyncio
    async def test_meta_only(self, executor: InMemoryExecutor, schema: Schema):
        request = validate({"limit": 2, "offset": 1, "order_by": ["id"]}, schema)
        meta = await query.meta(executor, request, schema)
        assert (meta.current_page, meta.previous_page, meta.next_page) == (2, 1, 3)


class TestCursorPagination:
    ORDERINGS = [
        (["species", "age", "id"], directions)
        for directions in itertools.product(["asc", "desc"], ["asc", "desc_nulls_first"], ["asc", "desc"])
    ]
    NULLABLE_ORDERINGS = [
        (["weight", "id"], [direction, "asc"])
        for direction in ["asc", "desc", "asc_nulls_first", "asc_nulls_last", "desc_nulls_first", "desc_nulls_last"]
    ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("order_by", "directions"), ORDERINGS)
    async def test_first_one_enumerates_everything(self, executor, schema, order_by, directions):
        params = {"first": 1, "order_by": order_by, "order_directions": list(directions)}

        seen = []
        page = await query.run(executor, validate(params, schema), schema)
        while page.items:
            seen.extend(page.items)
            page = await query.run(executor, to_next_cursor(page.meta), schema)

        assert _ids(seen) == _sorted_ids(order_by, directions)
        assert page.meta.end_cursor is None
        assert page.has_next is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("order_by", "directions"), ORDERINGS + NULLABLE_ORDERINGS)
    async def test_first_and_last_agree(self, executor, schema, order_by, directions):
        base = {"order_by": order_by, "order_directions": list(directions)}
        forward = await query.all(executor, validate({**base, "first": len(PETS)}, schema), schema)
        backward = await query.all(executor, validate({**base, "last": len(PETS)}, schema), schema)
        expected = _sorted_ids(order_by, directions)
        assert _ids(forward) == expected
        assert _ids(backward) == expected

    @pytest.mark.asyncio
    async def test_nulls_in_sort_field(self, executor: InMemoryExecutor, schema: Schema):
        request = validate({"limit": 6, "order_by": ["weight", "id"]}, schema)
        assert _ids(await query.all(executor, request, schema)) == [4, 3, 1, 6, 2, 5]
        request = validate({"limit": 6, "order_by": ["weight", "id"], "order_directions": ["desc", "asc"]}, schema)
        assert _ids(await query.all(executor, request, schema)) == [2, 5, 1, 6, 3, 4]

    @pytest.mark.asyncio
    async def test_has_previous_and_next(self, executor: InMemoryExecutor, schema: Schema):
        first_page = await query.run(executor, validate({"first": 2, "order_by": ["id"]}, schema), schema)
        assert _ids(first_page.items) == [1, 2]
        assert first_page.has_previous is False
        assert first_page.has_next is True

        second = await query.run(executor, to_next_cursor(first_page.meta), schema)
        assert _ids(second.items) == [3, 4]
        assert second.has_previous is True
        assert second.has_next is True

        last_page = await query.run(
            executor, validate({"last": 2, "before": second.meta.start_cursor, "order_by": ["id"]}, schema), schema
        )
        assert _ids(last_page.items) == [1, 2]
        assert last_page.has_previous is False
        assert last_page.has_next is True

    @pytest.mark.asyncio
    async def test_cursor_on_join_field(self, executor: InMemoryExecutor, schema: Schema):
        params = {"first": 2, "order_by": ["owner_name", "id"], "filters": [{"field": "owner_name", "op": "not_empty", "value": True}]}
        page = await query.run(executor, validate(params, schema), schema)
        assert _ids(page.items) == [1, 3]
        page = await query.run(executor, to_next_cursor(page.meta), schema)
        assert _ids(page.items) == [2, 6]


class TestValidateAndRun:
    @pytest.mark.asyncio
    async def test_invalid_params_give_errors(self, executor: InMemoryExecutor, schema: Schema):
        page = await query.validate_and_run(executor, {"limit": 0}, schema)
        assert page.items == []
        assert page.is_valid is False
        assert page.meta.errors == {"limit": ["must be greater than 0"]}

    @pytest.mark.asyncio
    async def test_conflict_gives_errors(self, executor: InMemoryExecutor, schema: Schema):
        page = await query.validate_and_run(executor, {"limit": 1, "page": 1}, schema)
        assert page.is_valid is False

    @pytest.mark.asyncio
    async def test_valid_params(self, executor: InMemoryExecutor, schema: Schema):
        page = await query.validate_and_run(executor, {"limit": 2, "order_by": ["age", "id"]}, schema)
        assert _ids(page.items) == [4, 5]
        assert page.is_valid is True

    @pytest.mark.asyncio
    async def test_or_raise(self, executor: InMemoryExecutor, schema: Schema):
        with pytest.raises(ValidationException):
            await query.validate_and_run_or_raise(executor, {"limit": 0}, schema)
        page = await query.validate_and_run_or_raise(executor, {"limit": 2, "order_by": ["id"]}, schema)
        assert len(page) == 2

    @pytest.mark.asyncio
    async def test_options_from_global_properties(self, executor: InMemoryExecutor, schema: Schema):
        options.configure(options.QueryProperties(default_limit=3))
        page = await query.validate_and_run(executor, {"order_by": ["id"]}, schema)
        assert _ids(page.items) == [1, 2, 3]
        assert page.meta.total_pages == 2

    @pytest.mark.asyncio
    async def test_page_map(self, executor: InMemoryExecutor, schema: Schema):
        page = await query.run(executor, Request(limit=2, offset=0, order_by=("id",)), schema)
        assert page.map(lambda row: row["name"]).items == ["Rex", "Tom"]
