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
"""Validation and normalization of raw query parameters.

:func:`validate` turns untrusted parameters (decoded from a query string,
a JSON body, or built in code) into a :class:`~pysift.data.request.Request`.
Scalar parameters are parsed with the :class:`QueryParams` pydantic model;
everything the model cannot express (schema capabilities, operator
support, limits, cursors) is checked afterwards.  All problems are
collected and raised together as one
:class:`~pysift.kernel.exceptions.ValidationException` whose ``errors``
map a parameter path to its messages::

    {"limit": ["must be less than or equal to 100"],
     "filters.1.op": ["is invalid"]}

Two problems are not collected.  Supplying parameters of two pagination
strategies raises :class:`~pysift.kernel.exceptions.PaginationConflictError`
at once.  An ``after``/``before`` token that cannot be decoded, or whose
values do not fit their fields, raises a ``ValidationException`` holding only
that error.

With ``replace_invalid_params=True`` invalid parameters are dropped or
replaced by their defaults instead (logged at debug level), so a request
is always produced unless the pagination strategies conflict.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from pysift.data.coercion import coerce_filter_value, coerce_scalar
from pysift.data.cursor import InvalidCursorError, decode_cursor
from pysift.data.enums import Operator
from pysift.data.fields import JoinField, PlainField, Schema, resolve_field
from pysift.data.filter import Combinator, Filter, FilterLike
from pysift.data.options import QueryOptions, resolve_options
from pysift.data.request import PAGINATION_FIELDS, PaginationType, Request
from pysift.data.sort import Direction
from pysift.kernel.exceptions import PaginationConflictError, UnknownFieldError, ValidationException

logger = structlog.get_logger(__name__)

Errors = dict[str, list[str]]

_CONFLICT_MESSAGE = "cannot combine multiple pagination types"

_NOT_ALLOWED_MESSAGES: dict[PaginationType, tuple[str, str]] = {
    PaginationType.FIRST: ("first", "cursor-based pagination with first/after is not allowed"),
    PaginationType.LAST: ("last", "cursor-based pagination with last/before is not allowed"),
    PaginationType.OFFSET: ("offset", "offset-based pagination is not allowed"),
    PaginationType.PAGE: ("page", "page-based pagination is not allowed"),
}


class QueryParams(BaseModel):
    """Shape of the raw scalar parameters; filters are checked separately."""

    model_config = ConfigDict(extra="ignore")

    order_by: list[str] | None = None
    order_directions: list[Direction] | None = None
    limit: int | None = None
    offset: int | None = None
    page: int | None = None
    page_size: int | None = None
    first: int | None = None
    after: str | None = None
    last: int | None = None
    before: str | None = None

    @field_validator("order_by", "order_directions", mode="before")
    @classmethod
    def _single_to_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


def _add_error(errors: Errors, key: str, message: str) -> None:
    errors.setdefault(key, []).append(message)


def _as_mapping(params: Any) -> dict[str, Any]:
    if isinstance(params, Request):
        data = {f.name: getattr(params, f.name) for f in dataclasses.fields(params) if f.name != "decoded_cursor"}
        data["filters"] = list(params.filters)
        return data
    if isinstance(params, BaseModel):
        return params.model_dump()
    if isinstance(params, Mapping):
        return dict(params)
    raise TypeError(f"Query parameters must be a mapping or a Request, got {type(params).__name__}")


def _as_list(value: Any) -> list[Any] | None:
    """Accept lists and index-keyed mappings (``{"0": {...}, "1": {...}}``)."""
    if isinstance(value, Mapping):
        try:
            return [value[k] for k in sorted(value, key=int)]
        except (TypeError, ValueError):
            return None
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return list(value)
    return None


# ---------------------------------------------------------------------------
# Scalar parameters
# ---------------------------------------------------------------------------


def _parse_scalars(data: dict[str, Any], errors: Errors, options: QueryOptions) -> QueryParams:
    """Parse with :class:`QueryParams`, dropping the parameters that fail."""
    candidate = {k: v for k, v in data.items() if k in QueryParams.model_fields and v is not None}
    while True:
        try:
            return QueryParams.model_validate(candidate)
        except ValidationError as exc:
            for error in exc.errors():
                top = str(error["loc"][0])
                key = ".".join(str(part) for part in error["loc"])
                if options.replace_invalid_params:
                    logger.debug("invalid_param_dropped", param=key, reason=error["msg"])
                else:
                    _add_error(errors, key, error["msg"])
                candidate.pop(top, None)


def _check_pagination_conflict(params: QueryParams) -> PaginationType | None:
    """Detect the pagination strategy, raising if more than one is used."""
    used = [
        ptype
        for ptype, names in PAGINATION_FIELDS.items()
        if any(getattr(params, name) is not None for name in names)
    ]
    if len(used) > 1:
        first_group = PAGINATION_FIELDS[used[0]]
        key = next(name for name in first_group if getattr(params, name) is not None)
        raise PaginationConflictError(
            f"Invalid query parameters: {_CONFLICT_MESSAGE}",
            errors={key: [_CONFLICT_MESSAGE]},
            code="PAGINATION_CONFLICT",
            context={"pagination_types": [str(p) for p in used]},
        )
    return used[0] if used else None


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def _validate_order(
    params: QueryParams, schema: Schema | None, options: QueryOptions, errors: Errors
) -> tuple[tuple[str, ...] | None, tuple[Direction, ...] | None]:
    order_by = params.order_by
    directions = params.order_directions

    if order_by is None and options.default_order:
        order_by = list(options.default_order.get("order_by") or []) or None
        raw_directions = options.default_order.get("order_directions")
        directions = [Direction(d) for d in raw_directions] if raw_directions else None

    if order_by is None:
        return None, tuple(directions) if directions else None

    if schema is not None:
        invalid = [name for name in order_by if not schema.is_sortable(name)]
        if invalid and options.replace_invalid_params:
            logger.debug("invalid_order_fields_dropped", fields=invalid, schema=schema.name)
            kept = [
                (name, directions[i] if directions and i < len(directions) else Direction.ASC)
                for i, name in enumerate(order_by)
                if name not in invalid
            ]
            order_by = [name for name, _ in kept]
            directions = [d for _, d in kept] if directions else None
        elif invalid:
            _add_error(errors, "order_by", "is invalid")

    return tuple(order_by), tuple(directions) if directions else None


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def _filter_mapping(raw: Any) -> Mapping[str, Any] | None:
    if isinstance(raw, (Filter, Combinator)):
        return {f.name: getattr(raw, f.name) for f in dataclasses.fields(raw)}
    if isinstance(raw, Mapping):
        return raw
    return None


def _validate_filter(
    raw: Any, key: str, schema: Schema | None, options: QueryOptions, errors: Errors
) -> FilterLike | None:
    """Validate one filter or combinator; ``None`` if it was rejected."""
    data = _filter_mapping(raw)
    if data is None:
        _add_error(errors, key, "is invalid")
        return None
    if "filters" in data:
        return _validate_combinator(data, key, schema, options, errors)

    local: Errors = {}
    field_name = data.get("field")
    raw_op = data.get("op")
    op: Operator | None = None
    descriptor = None

    if not field_name:
        _add_error(local, f"{key}.field", "can't be blank")
    elif schema is not None and not schema.is_filterable(str(field_name)):
        _add_error(local, f"{key}.field", "is invalid")
    else:
        try:
            descriptor = resolve_field(schema, str(field_name))
        except UnknownFieldError:
            _add_error(local, f"{key}.field", "is invalid")

    try:
        op = Operator(raw_op if raw_op is not None else Operator.EQ)
    except ValueError:
        _add_error(local, f"{key}.op", "is invalid")

    value = data.get("value")
    if descriptor is not None and op is not None:
        if op not in descriptor.operators:
            _add_error(local, f"{key}.op", "is invalid")
        else:
            try:
                value = coerce_filter_value(descriptor.storage_type, op, value)
            except (ValueError, TypeError, ArithmeticError):
                _add_error(local, f"{key}.value", "is invalid")

    if local:
        if options.replace_invalid_params:
            logger.debug("invalid_filter_dropped", filter=key, errors=local)
        else:
            for path, messages in local.items():
                errors.setdefault(path, []).extend(messages)
        return None
    return Filter(str(field_name), op, value)


def _validate_combinator(
    data: Mapping[str, Any], key: str, schema: Schema | None, options: QueryOptions, errors: Errors
) -> Combinator | None:
    combinator_type = data.get("type") or "and"
    if combinator_type not in ("and", "or"):
        if options.replace_invalid_params:
            logger.debug("invalid_filter_dropped", filter=key, errors={f"{key}.type": ["is invalid"]})
            return None
        _add_error(errors, f"{key}.type", "is invalid")
        return None

    raw_children = _as_list(data.get("filters")) or []
    children = [
        child
        for index, raw in enumerate(raw_children)
        if (child := _validate_filter(raw, f"{key}.filters.{index}", schema, options, errors)) is not None
    ]
    nested = any(isinstance(c, Combinator) for c in children)
    if len(children) < 2 and not nested:
        message = "must have at least two filters or one combinator"
        if options.replace_invalid_params:
            logger.debug("invalid_filter_dropped", filter=key, errors={f"{key}.filters": [message]})
            return None
        _add_error(errors, f"{key}.filters", message)
        return None
    return Combinator(combinator_type, tuple(children))


def _validate_filters(
    raw_filters: Any, schema: Schema | None, options: QueryOptions, errors: Errors
) -> tuple[FilterLike, ...]:
    if raw_filters is None:
        return ()
    items = _as_list(raw_filters)
    if items is None:
        if options.replace_invalid_params:
            logger.debug("invalid_param_dropped", param="filters", reason="not a list")
        else:
            _add_error(errors, "filters", "is invalid")
        return ()
    validated = (
        _validate_filter(raw, f"filters.{index}", schema, options, errors) for index, raw in enumerate(items)
    )
    return tuple(f for f in validated if f is not None)


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


def _check_size(
    pagination: dict[str, Any], name: str, options: QueryOptions, errors: Errors, *, required: bool = False
) -> None:
    value = pagination[name]
    if value is None:
        pagination[name] = options.default_limit
        value = options.default_limit
    if value is None:
        if required:
            _add_error(errors, name, "can't be blank")
        return
    if value <= 0:
        if options.replace_invalid_params:
            logger.debug("invalid_param_replaced", param=name, value=value, replacement=options.default_limit)
            pagination[name] = options.default_limit
            if options.default_limit is None and required:
                _add_error(errors, name, "can't be blank")
        else:
            _add_error(errors, name, "must be greater than 0")
        return
    if options.max_limit is not None and value > options.max_limit:
        if options.replace_invalid_params:
            logger.debug("invalid_param_replaced", param=name, value=value, replacement=options.max_limit)
            pagination[name] = options.max_limit
        else:
            _add_error(errors, name, f"must be less than or equal to {options.max_limit}")


def _typed_cursor(decoded: dict[str, Any], schema: Schema | None) -> dict[str, Any]:
    """Cast cursor values to the storage type of their field.

    Raises:
        ValueError: If a value does not fit its field.
    """
    typed: dict[str, Any] = {}
    for field_name, value in decoded.items():
        descriptor = schema.get(field_name) if schema is not None else None
        if isinstance(descriptor, (PlainField, JoinField)):
            try:
                value = coerce_scalar(descriptor.storage_type, value)
            except (TypeError, ArithmeticError) as exc:
                raise ValueError(str(exc)) from None
        typed[field_name] = value
    return typed


def _check_cursor(
    pagination: dict[str, Any],
    name: str,
    order_by: tuple[str, ...] | None,
    schema: Schema | None,
    options: QueryOptions,
    errors: Errors,
) -> dict[str, Any] | None:
    """Decode the ``after``/``before`` token.

    A token that cannot be decoded, or whose values do not fit their
    fields, ends validation at once: no request can be built around it.
    """
    token = pagination[name]
    if token is None or not order_by:
        return None
    try:
        decoded = _typed_cursor(decode_cursor(token), schema)
    except (InvalidCursorError, ValueError):
        if options.replace_invalid_params:
            logger.debug("invalid_param_dropped", param=name, reason="is invalid")
            pagination[name] = None
            return None
        raise ValidationException(
            "Invalid query parameters: invalid cursor",
            errors={name: ["is invalid"]},
            code="INVALID_CURSOR",
            context={"schema": schema.name if schema is not None else None},
        ) from None
    if sorted(decoded) == sorted(order_by):
        return decoded
    message = "does not match order fields"
    if options.replace_invalid_params:
        logger.debug("invalid_param_dropped", param=name, reason=message)
        pagination[name] = None
    else:
        _add_error(errors, name, message)
    return None


def _synthesize_pagination(pagination: dict[str, Any], options: QueryOptions) -> PaginationType | None:
    ptype = options.default_pagination_type
    if ptype is None or options.default_limit is None:
        return None
    size_field = {
        PaginationType.FIRST: "first",
        PaginationType.LAST: "last",
        PaginationType.PAGE: "page_size",
        PaginationType.OFFSET: "limit",
    }[ptype]
    pagination[size_field] = options.default_limit
    return ptype


def _validate_pagination(
    params: QueryParams,
    ptype: PaginationType | None,
    order_by: tuple[str, ...] | None,
    schema: Schema | None,
    options: QueryOptions,
    errors: Errors,
) -> tuple[dict[str, Any], dict[str, Any] | None]:
    pagination: dict[str, Any] = {
        name: getattr(params, name) for names in PAGINATION_FIELDS.values() for name in names
    }
    decoded: dict[str, Any] | None = None

    if ptype is None:
        ptype = _synthesize_pagination(pagination, options)

    if ptype is not None and options.pagination_types is not None and ptype not in options.pagination_types:
        tolerated = ptype is PaginationType.OFFSET and not pagination["offset"]
        if not tolerated:
            key, message = _NOT_ALLOWED_MESSAGES[ptype]
            _add_error(errors, key, message)
            return pagination, None

    if ptype in (PaginationType.FIRST, PaginationType.LAST):
        size_name, cursor_name = PAGINATION_FIELDS[ptype]
        _check_size(pagination, size_name, options, errors, required=True)
        if not order_by:
            _add_error(errors, "order_by", "can't be blank")
        decoded = _check_cursor(pagination, cursor_name, order_by, schema, options, errors)
    elif ptype is PaginationType.PAGE:
        _check_size(pagination, "page_size", options, errors, required=True)
        if pagination["page"] is None:
            pagination["page"] = 1
        elif pagination["page"] <= 0:
            if options.replace_invalid_params:
                logger.debug("invalid_param_replaced", param="page", value=pagination["page"], replacement=1)
                pagination["page"] = 1
            else:
                _add_error(errors, "page", "must be greater than 0")
    elif ptype is PaginationType.OFFSET:
        _check_size(pagination, "limit", options, errors)
        if pagination["offset"] is None:
            pagination["offset"] = 0
        elif pagination["offset"] < 0:
            if options.replace_invalid_params:
                logger.debug("invalid_param_replaced", param="offset", value=pagination["offset"], replacement=0)
                pagination["offset"] = 0
            else:
                _add_error(errors, "offset", "must be greater than or equal to 0")
    else:
        pagination["limit"] = options.default_limit

    return pagination, decoded


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def validate(params: Any, schema: Schema | None = None, **options: Any) -> Request:
    """Validate raw parameters and normalize them into a :class:`Request`.

    Args:
        params: Mapping of raw parameters, or an existing :class:`Request`.
        schema: Field capabilities; without one every field is allowed.
        **options: Per-call options overriding schema and global ones
            (see :class:`~pysift.data.options.QueryOptions`).

    Raises:
        PaginationConflictError: If more than one pagination strategy is used.
        ValidationException: With every other problem found, unless
            ``replace_invalid_params`` is set.
    """
    return validate_with(params, schema, resolve_options(schema, **options))


def validate_with(params: Any, schema: Schema | None, resolved: QueryOptions) -> Request:
    """Like :func:`validate`, with options already resolved."""
    data = _as_mapping(params)
    errors: Errors = {}

    if not resolved.ordering:
        data.pop("order_by", None)
        data.pop("order_directions", None)

    parsed = _parse_scalars(data, errors, resolved)
    ptype = _check_pagination_conflict(parsed)

    order_by, order_directions = _validate_order(parsed, schema, resolved, errors)
    filters = _validate_filters(data.get("filters"), schema, resolved, errors) if resolved.filtering else ()
    pagination, decoded = _validate_pagination(parsed, ptype, order_by, schema, resolved, errors)

    if errors:
        raise ValidationException(
            "Invalid query parameters",
            errors=errors,
            code="VALIDATION_ERROR",
            context={"schema": schema.name if schema is not None else None},
            params=params,
        )

    return Request(
        filters=filters,
        order_by=order_by,
        order_directions=order_directions,
        decoded_cursor=decoded,
        **pagination,
    )
