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
"""Resolution of query options.

Options come from three layers, most specific first:

1. keyword arguments of the call (``validate(params, schema, max_limit=50)``),
2. the :class:`~pysift.data.fields.Schema`,
3. the global :class:`~pysift.core.config.QueryProperties`, bound from the
   ``pysift.query`` configuration section.

A schema may set ``default_limit=False`` or ``max_limit=False`` to switch
off a globally configured limit.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pysift.core.config import Config, QueryProperties, load_query_properties
from pysift.data.cursor import CursorValueFunc
from pysift.data.fields import Schema
from pysift.data.operators import CompositePolicy
from pysift.data.request import PaginationType

_global_properties: QueryProperties | None = None


def configure(source: Config | QueryProperties | None = None) -> QueryProperties:
    """Install the global query options.

    Accepts a :class:`Config` (bound through ``pysift.query``), ready-made
    :class:`QueryProperties`, or ``None`` for the packaged defaults.
    """
    global _global_properties
    if isinstance(source, QueryProperties):
        _global_properties = source
    else:
        _global_properties = load_query_properties(source)
    return _global_properties


def get_properties() -> QueryProperties:
    """The global query options, loading packaged defaults on first use."""
    if _global_properties is None:
        return configure()
    return _global_properties


def reset() -> None:
    """Forget the global options; the next lookup reloads the defaults."""
    global _global_properties
    _global_properties = None


@dataclass(frozen=True)
class QueryOptions:
    """Effective options for one validate/compile/run call."""

    default_limit: int | None = None
    max_limit: int | None = None
    default_order: Mapping[str, Any] | None = None
    pagination_types: tuple[PaginationType, ...] | None = None
    default_pagination_type: PaginationType | None = None
    replace_invalid_params: bool = False
    ordering: bool = True
    filtering: bool = True
    on_unsupported_composite_op: CompositePolicy = "warn_and_ignore"
    extra_opts: Mapping[str, Any] = field(default_factory=dict)
    cursor_value_func: CursorValueFunc | None = None


_OPTION_NAMES = frozenset(f.name for f in dataclasses.fields(QueryOptions))


_DISABLED = object()


def _limit(value: Any) -> Any:
    """``False`` disables a limit; ``None`` means "not set on this layer"."""
    return _DISABLED if value is False else value


def _pagination_types(values: Any) -> tuple[PaginationType, ...] | None:
    if values is None:
        return None
    return tuple(PaginationType(v) for v in values)


def resolve_options(schema: Schema | None = None, **overrides: Any) -> QueryOptions:
    """Merge call overrides, schema options and global properties.

    Raises:
        TypeError: If an override is not a known option name.
    """
    unknown = set(overrides) - _OPTION_NAMES
    if unknown:
        raise TypeError(f"Unknown query option(s): {', '.join(sorted(unknown))}")

    props = get_properties()
    layers: list[dict[str, Any]] = [
        {
            "default_limit": props.default_limit,
            "max_limit": props.max_limit,
            "pagination_types": props.pagination_types,
            "default_pagination_type": props.default_pagination_type,
            "replace_invalid_params": props.replace_invalid_params,
            "ordering": props.ordering,
            "filtering": props.filtering,
            "on_unsupported_composite_op": props.on_unsupported_composite_op,
        }
    ]
    if schema is not None:
        layers.append(
            {
                "default_limit": _limit(schema.default_limit),
                "max_limit": _limit(schema.max_limit),
                "default_order": schema.default_order,
                "pagination_types": schema.pagination_types,
                "default_pagination_type": schema.default_pagination_type,
            }
        )
    layers.append({k: _limit(v) if k in ("default_limit", "max_limit") else v for k, v in overrides.items()})

    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            if value is not None:
                merged[key] = value

    for key in ("default_limit", "max_limit"):
        if merged.get(key) is _DISABLED:
            merged[key] = None

    merged["pagination_types"] = _pagination_types(merged.get("pagination_types"))
    if merged.get("default_pagination_type") is not None:
        merged["default_pagination_type"] = PaginationType(merged["default_pagination_type"])
    return QueryOptions(**merged)
