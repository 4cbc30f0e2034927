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
"""Tests for Sort/Direction and request navigation helpers."""

from __future__ import annotations

import pytest

from pysift.data.fields import Schema
from pysift.data.filter import Filter
from pysift.data.meta import ResultMeta
from pysift.data.request import (
    PaginationType,
    Request,
    filter_for,
    push_order,
    reset_filters,
    reset_order,
    set_cursor,
    set_offset,
    set_page,
    to_next_cursor,
    to_next_offset,
    to_next_page,
    to_previous_cursor,
    to_previous_offset,
    to_previous_page,
    with_filter,
    without_filter,
)
from pysift.data.sort import Direction, Order, Sort
from pysift.kernel.exceptions import UnsupportedOperatorError


class TestDirection:
    @pytest.mark.parametrize(
        ("direction", "reversed_"),
        [
            (Direction.ASC, Direction.DESC),
            (Direction.ASC_NULLS_FIRST, Direction.DESC_NULLS_LAST),
            (Direction.ASC_NULLS_LAST, Direction.DESC_NULLS_FIRST),
            (Direction.DESC_NULLS_FIRST, Direction.ASC_NULLS_LAST),
        ],
    )
    def test_reversed(self, direction, reversed_):
        assert direction.reversed() is reversed_
        assert reversed_.reversed() is direction

    def test_toggled_keeps_nulls(self):
        assert Direction.ASC_NULLS_FIRST.toggled() is Direction.DESC_NULLS_FIRST

    def test_properties(self):
        assert Direction.DESC_NULLS_LAST.ascending is False
        assert Direction.DESC_NULLS_LAST.nulls == "last"
        assert Direction.ASC.nulls is None


class TestSort:
    def test_of_pads_directions(self):
        sort = Sort.of(["name", "age"], ["desc"])
        assert sort.orders == (Order("name", Direction.DESC), Order("age", Direction.ASC))

    def test_of_ignores_extra_directions(self):
        assert len(Sort.of(["name"], ["asc", "desc"])) == 1

    def test_reversed(self):
        assert Sort.of(["a", "b"], ["asc", "desc"]).reversed() == Sort.of(["a", "b"], ["desc", "asc"])

    def test_and_then(self):
        assert Sort.by("a").and_then(Sort.by("b")).properties == ["a", "b"]

    def test_unsorted_is_falsy(self):
        assert not Sort.unsorted()

    def test_expanded_composite(self):
        schema = Schema("p", fields=["family", "given"], composite_fields={"full": ["family", "given"]})
        sort = Sort.of(["full"], ["desc"]).expanded(schema)
        assert sort.orders == (Order("family", Direction.DESC), Order("given", Direction.DESC))

    def test_expanded_custom_raises(self):
        schema = Schema("p", custom_fields={"c": {"filter": lambda f, o: None}})
        with pytest.raises(UnsupportedOperatorError):
            Sort.by("c").expanded(schema)


class TestRequest:
    def test_pagination_type(self):
        assert Request(first=2).pagination_type is PaginationType.FIRST
        assert Request(before="x").pagination_type is PaginationType.LAST
        assert Request(page=1, page_size=5).pagination_type is PaginationType.PAGE
        assert Request(limit=5, offset=0).pagination_type is PaginationType.OFFSET
        assert Request().pagination_type is None

    def test_page_limit_and_offset(self):
        request = Request(page=3, page_size=10)
        assert request.page_limit == 10
        assert request.effective_offset == 20


class TestOrderHelpers:
    def test_push_order_prepends(self):
        request = push_order(Request(order_by=("age",), order_directions=(Direction.DESC,)), "name")
        assert request.order_by == ("name", "age")
        assert request.order_directions == (Direction.ASC, Direction.DESC)

    def test_push_order_toggles_primary(self):
        request = push_order(Request(order_by=("name", "age")), "name")
        assert request.order_directions == (Direction.DESC, Direction.ASC)

    def test_push_order_cycles_directions(self):
        cycle = ["asc_nulls_first", "desc_nulls_last"]
        request = push_order(Request(), "name", directions=cycle)
        assert request.order_directions == (Direction.ASC_NULLS_FIRST,)
        request = push_order(request, "name", directions=cycle)
        assert request.order_directions == (Direction.DESC_NULLS_LAST,)
        request = push_order(request, "name", directions=cycle)
        assert request.order_directions == (Direction.ASC_NULLS_FIRST,)

    def test_push_order_moves_existing_field(self):
        request = push_order(Request(order_by=("name", "age")), "age")
        assert request.order_by == ("age", "name")

    def test_push_order_resets_position(self):
        request = push_order(Request(order_by=("name",), page=4, page_size=10), "age")
        assert request.page == 1
        request = push_order(Request(order_by=("name",), first=2, after="abc"), "age")
        assert request.after is None

    def test_reset_order(self):
        assert reset_order(Request(order_by=("name",))).order_by is None


class TestFilterRequestHelpers:
    def test_with_and_without_filter(self):
        request = with_filter(Request(), Filter("name", "==", "Rex"))
        assert filter_for(request, "name") == Filter("name", "==", "Rex")
        assert without_filter(request, "name").filters == ()
        assert reset_filters(request).filters == ()


class TestPageNavigation:
    def test_set_page_switches_strategy(self):
        request = set_page(Request(limit=10, offset=30), 2)
        assert (request.page, request.page_size, request.limit, request.offset) == (2, 10, None, None)

    def test_next_page_is_capped(self):
        request = Request(page=3, page_size=10)
        assert to_next_page(request).page == 4
        assert to_next_page(request, total_pages=3).page == 3

    def test_previous_page_floor(self):
        assert to_previous_page(Request(page=1, page_size=10)).page == 1
        assert to_previous_page(Request(page=3, page_size=10)).page == 2

    def test_offsets(self):
        request = Request(limit=10, offset=10)
        assert to_next_offset(request).offset == 20
        assert to_next_offset(request, total_count=20) is request
        assert to_previous_offset(request).offset == 0
        assert to_previous_offset(Request(limit=10, offset=5)).offset == 0
        assert set_offset(Request(page=2, page_size=5), 3).limit == 5


class TestCursorNavigation:
    def test_set_cursor(self):
        request = set_cursor(Request(first=5, order_by=("name",)), "tok", forward=False)
        assert (request.last, request.before, request.first) == (5, "tok", None)
        assert request.order_by == ("name",)

    def test_from_meta(self):
        meta = ResultMeta(request=Request(first=5, order_by=("name",)), start_cursor="s", end_cursor="e")
        assert to_next_cursor(meta).after == "e"
        previous = to_previous_cursor(meta)
        assert (previous.last, previous.before) == (5, "s")
