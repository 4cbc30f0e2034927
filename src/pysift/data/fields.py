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
"""Field declarations and the field resolver.

A :class:`Schema` is built once from five declaration groups (plain,
alias, join, composite and custom fields) and maps every logical field
name to an immutable descriptor.  Declaration mistakes raise
:class:`~pysift.kernel.exceptions.ConfigurationException` at construction
time, never while handling a request.

Example::

    pets = Schema(
        "pet",
        fields={"name": "string", "age": "integer", "tags": "array"},
        filterable=["name", "age", "tags", "owner_name", "full_name"],
        sortable=["name", "age", "owner_name"],
        join_fields={"owner_name": {"binding": "owner", "field": "name"}},
        composite_fields={"full_name": ["family_name", "given_name"]},
        default_limit=20,
        max_limit=100,
    )
"""

from __future__ import annotations

import datetime
import decimal
import enum
import types
import typing
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union, get_args, get_origin, get_type_hints

from pysift.data.enums import FieldKind, Operator, StorageType, operators_for
from pysift.data.predicate import FieldRef, Predicate
from pysift.kernel.exceptions import ConfigurationException, UnknownFieldError


@dataclass(frozen=True)
class PlainField:
    """A column stored directly on the root entity."""

    kind: ClassVar[FieldKind] = FieldKind.PLAIN

    name: str
    storage_type: StorageType = StorageType.ANY
    operators: frozenset[Operator] = frozenset()
    source: str | None = None

    @property
    def ref(self) -> FieldRef:
        return FieldRef(self.name, source=self.source or self.name)


@dataclass(frozen=True)
class AliasField:
    """A value selected under a name by the query itself; sortable only."""

    kind: ClassVar[FieldKind] = FieldKind.ALIAS

    name: str
    storage_type: StorageType = StorageType.ANY
    operators: frozenset[Operator] = frozenset()

    @property
    def ref(self) -> FieldRef:
        return FieldRef(self.name, alias=True)


@dataclass(frozen=True)
class JoinField:
    """A field on a related entity reached through a named join binding."""

    kind: ClassVar[FieldKind] = FieldKind.JOIN

    name: str
    binding: str
    field: str
    path: tuple[str, ...] = ()
    storage_type: StorageType = StorageType.ANY
    operators: frozenset[Operator] = frozenset()

    @property
    def ref(self) -> FieldRef:
        return FieldRef(self.name, source=self.field, binding=self.binding, path=self.path)


@dataclass(frozen=True)
class CompositeField:
    """A virtual field standing for several member fields."""

    kind: ClassVar[FieldKind] = FieldKind.COMPOSITE

    name: str
    members: tuple[str, ...]
    storage_type: StorageType = StorageType.STRING
    operators: frozenset[Operator] = frozenset(Operator)


CustomFilterFunc = Callable[[Any, Mapping[str, Any]], Predicate]


@dataclass(frozen=True)
class CustomField:
    """A field whose filter predicate is built by user code."""

    kind: ClassVar[FieldKind] = FieldKind.CUSTOM

    name: str
    filter_func: CustomFilterFunc
    filter_options: Mapping[str, Any] = field(default_factory=dict)
    storage_type: StorageType = StorageType.ANY
    operators: frozenset[Operator] = frozenset(Operator)


FieldDescriptor = Union[PlainField, AliasField, JoinField, CompositeField, CustomField]


def _storage_type(value: Any) -> StorageType:
    if isinstance(value, StorageType):
        return value
    try:
        return StorageType(str(value))
    except ValueError:
        raise ConfigurationException(
            f"Unknown storage type {value!r}",
            code="UNKNOWN_STORAGE_TYPE",
        ) from None


def _operator_set(names: Iterable[Any] | None, default: frozenset[Operator]) -> frozenset[Operator]:
    if names is None:
        return default
    try:
        return frozenset(Operator(str(n)) for n in names)
    except ValueError as exc:
        raise ConfigurationException(str(exc), code="UNKNOWN_OPERATOR") from None


DefaultOrder = Mapping[str, Any]


class Schema:
    """Field capability declarations for one queryable entity.

    Args:
        name: Name used in log and error messages.
        fields: Plain fields, as a ``name -> storage type`` mapping or an
            iterable of names (storage type ``any``).
        filterable: Names allowed in filters.
        sortable: Names allowed in ``order_by``.
        alias_fields: Names of selected aliases (sortable only).
        join_fields: ``name -> {"binding", "field", "path"?, "type"?, "operators"?}``
            or ``name -> (binding, field)``.
        composite_fields: ``name -> [member, ...]``.
        custom_fields: ``name -> {"filter": callable, "options"?, "type"?, "operators"?}``.
        default_limit / max_limit: ``None`` inherits the global option,
            ``False`` disables it for this schema.
        default_order: ``{"order_by": [...], "order_directions": [...]}``.
        pagination_types: Allowed subset of ``offset, page, first, last``.
        default_pagination_type: Strategy synthesized when none is given.
    """

    def __init__(
        self,
        name: str,
        *,
        fields: Mapping[str, Any] | Iterable[str] = (),
        filterable: Iterable[str] = (),
        sortable: Iterable[str] = (),
        alias_fields: Iterable[str] = (),
        join_fields: Mapping[str, Any] | None = None,
        composite_fields: Mapping[str, Iterable[str]] | None = None,
        custom_fields: Mapping[str, Mapping[str, Any]] | None = None,
        default_limit: int | bool | None = None,
        max_limit: int | bool | None = None,
        default_order: DefaultOrder | None = None,
        pagination_types: Iterable[str] | None = None,
        default_pagination_type: str | None = None,
    ) -> None:
        self.name = name
        self.filterable: tuple[str, ...] = tuple(filterable)
        self.sortable: tuple[str, ...] = tuple(sortable)
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.default_order = dict(default_order) if default_order is not None else None
        self.pagination_types = tuple(pagination_types) if pagination_types is not None else None
        self.default_pagination_type = default_pagination_type

        self._fields: dict[str, FieldDescriptor] = {}
        for descriptor in self._declare(fields, alias_fields, join_fields, composite_fields, custom_fields):
            if descriptor.name in self._fields:
                raise ConfigurationException(
                    f"Field '{descriptor.name}' is declared more than once in schema '{name}'",
                    code="DUPLICATE_FIELD",
                    context={"schema": name, "field": descriptor.name},
                )
            self._fields[descriptor.name] = descriptor

        self._check_declarations()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def _declare(
        self,
        fields: Mapping[str, Any] | Iterable[str],
        alias_fields: Iterable[str],
        join_fields: Mapping[str, Any] | None,
        composite_fields: Mapping[str, Iterable[str]] | None,
        custom_fields: Mapping[str, Mapping[str, Any]] | None,
    ) -> Iterable[FieldDescriptor]:
        plain = fields.items() if isinstance(fields, Mapping) else ((n, StorageType.ANY) for n in fields)
        for field_name, type_name in plain:
            storage = _storage_type(type_name)
            yield PlainField(field_name, storage, operators_for(storage))

        for field_name in alias_fields:
            yield AliasField(field_name)

        for field_name, spec in (join_fields or {}).items():
            if isinstance(spec, tuple):
                spec = {"binding": spec[0], "field": spec[1]}
            storage = _storage_type(spec.get("type", StorageType.ANY))
            binding, remote = spec["binding"], spec["field"]
            yield JoinField(
                field_name,
                binding=binding,
                field=remote,
                path=tuple(spec.get("path") or (binding, remote)),
                storage_type=storage,
                operators=_operator_set(spec.get("operators"), operators_for(storage)),
            )

        for field_name, members in (composite_fields or {}).items():
            yield CompositeField(field_name, tuple(members))

        for field_name, spec in (custom_fields or {}).items():
            if not callable(spec.get("filter")):
                raise ConfigurationException(
                    f"Custom field '{field_name}' needs a callable 'filter'",
                    code="INVALID_CUSTOM_FIELD",
                )
            yield CustomField(
                field_name,
                filter_func=spec["filter"],
                filter_options=dict(spec.get("options") or {}),
                storage_type=_storage_type(spec.get("type", StorageType.ANY)),
                operators=_operator_set(spec.get("operators"), frozenset(Operator)),
            )

    def _check_declarations(self) -> None:
        for descriptor in self._fields.values():
            if isinstance(descriptor, CompositeField):
                unknown = [m for m in descriptor.members if m not in self._fields]
                if unknown:
                    raise ConfigurationException(
                        f"Composite field '{descriptor.name}' references unknown fields: {', '.join(unknown)}",
                        code="UNKNOWN_COMPOSITE_MEMBER",
                        context={"schema": self.name, "field": descriptor.name, "unknown": unknown},
                    )

        for attr in ("filterable", "sortable"):
            unknown = [n for n in getattr(self, attr) if n not in self._fields]
            if unknown:
                raise ConfigurationException(
                    f"Unknown {attr} fields in schema '{self.name}': {', '.join(unknown)}",
                    code="UNKNOWN_FIELD",
                    context={"schema": self.name, attr: unknown},
                )

        for field_name in self.filterable:
            if isinstance(self._fields[field_name], AliasField):
                raise ConfigurationException(
                    f"Alias field '{field_name}' cannot be filterable",
                    code="FILTERABLE_ALIAS",
                )
        for field_name in self.sortable:
            if isinstance(self._fields[field_name], CustomField):
                raise ConfigurationException(
                    f"Custom field '{field_name}' cannot be sortable",
                    code="SORTABLE_CUSTOM",
                )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve(self, field_name: str) -> FieldDescriptor:
        """Return the descriptor of *field_name*.

        Raises:
            UnknownFieldError: If no declaration uses that name.
        """
        try:
            return self._fields[field_name]
        except KeyError:
            raise UnknownFieldError(
                f"Unknown field '{field_name}' in schema '{self.name}'",
                code="UNKNOWN_FIELD",
                context={"schema": self.name, "field": field_name},
            ) from None

    def get(self, field_name: str) -> FieldDescriptor | None:
        return self._fields.get(field_name)

    def __contains__(self, field_name: object) -> bool:
        return field_name in self._fields

    @property
    def fields(self) -> Mapping[str, FieldDescriptor]:
        return types.MappingProxyType(self._fields)

    def is_filterable(self, field_name: str) -> bool:
        return field_name in self.filterable

    def is_sortable(self, field_name: str) -> bool:
        return field_name in self.sortable

    def __repr__(self) -> str:
        return f"Schema({self.name!r}, fields={list(self._fields)!r})"


def resolve_field(schema: Schema | None, field_name: str) -> FieldDescriptor:
    """Resolve *field_name*; without a schema every name is an untyped plain field."""
    if schema is None:
        return PlainField(field_name, StorageType.ANY, operators_for(StorageType.ANY))
    return schema.resolve(field_name)


# ---------------------------------------------------------------------------
# Declaring schemas on classes
# ---------------------------------------------------------------------------

_SCHEMA_ATTR = "__pysift_schema__"

_PYTHON_STORAGE_TYPES: dict[type, StorageType] = {
    bool: StorageType.BOOLEAN,
    int: StorageType.INTEGER,
    float: StorageType.FLOAT,
    decimal.Decimal: StorageType.DECIMAL,
    str: StorageType.STRING,
    datetime.datetime: StorageType.DATETIME,
    datetime.date: StorageType.DATE,
    uuid.UUID: StorageType.UUID,
    list: StorageType.ARRAY,
    tuple: StorageType.ARRAY,
    set: StorageType.ARRAY,
    dict: StorageType.MAP,
}


def storage_type_of(annotation: Any) -> StorageType:
    """Map a Python type annotation to a :class:`StorageType`.

    ``Optional[X]``, ``X | None`` and SQLAlchemy's ``Mapped[X]`` are unwrapped.
    """
    origin = get_origin(annotation)
    if origin in (Union, types.UnionType):
        args = [a for a in get_args(annotation) if a is not type(None)]
        return storage_type_of(args[0]) if len(args) == 1 else StorageType.ANY
    if origin is not None:
        if getattr(origin, "__name__", "") == "Mapped":
            return storage_type_of(get_args(annotation)[0])
        annotation = origin
    if isinstance(annotation, type):
        if issubclass(annotation, enum.Enum):
            return StorageType.ENUM
        for python_type, storage in _PYTHON_STORAGE_TYPES.items():
            if issubclass(annotation, python_type):
                return storage
    return StorageType.ANY


def derive_schema(**declarations: Any) -> Callable[[type], type]:
    """Class decorator deriving a :class:`Schema` from annotated attributes.

    Plain fields and their storage types come from the class annotations
    (dataclasses, Pydantic models and SQLAlchemy ``Mapped[...]`` columns
    all work).  Every other keyword is passed to :class:`Schema`.

    Usage::

        @derive_schema(filterable=["name", "age"], sortable=["name", "age"])
        @dataclass
        class Pet:
            name: str
            age: int
    """

    def decorator(cls: type) -> type:
        declared = dict(declarations)
        fields = declared.pop("fields", None)
        if fields is None:
            hints = get_type_hints(cls, include_extras=False)
            fields = {
                name: storage_type_of(hint)
                for name, hint in hints.items()
                if not name.startswith("_") and get_origin(hint) is not typing.ClassVar
            }
        schema = Schema(declared.pop("name", cls.__name__), fields=fields, **declared)
        setattr(cls, _SCHEMA_ATTR, schema)
        return cls

    return decorator


def schema_of(target: Any) -> Schema | None:
    """Return the schema attached to *target* (a class or instance), if any."""
    if target is None or isinstance(target, Schema):
        return target
    return getattr(target, _SCHEMA_ATTR, None)


__all__ = [
    "AliasField",
    "CompositeField",
    "CustomField",
    "FieldDescriptor",
    "FieldKind",
    "JoinField",
    "PlainField",
    "Schema",
    "StorageType",
    "derive_schema",
    "resolve_field",
    "schema_of",
    "storage_type_of",
]
