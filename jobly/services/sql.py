"""Parameterized SQL fragments built from partial or optional inputs.

Fragments always use asyncpg-style positional placeholders (``$1``, ``$2``, ...)
and come back paired with a value list whose order matches the placeholders.
Identifiers are taken from static column mappings, never from request data.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from jobly.services.errors import RepositoryValidationError

Numeric = int | float | Decimal


def resolve_column(name: str | Enum, mapping: Mapping[str, str]) -> str:
    """Translate an external field name to its storage column.

    Names without a mapping entry are used verbatim.
    """
    key = name.value if isinstance(name, Enum) else name
    return mapping.get(key) or key


def quote_identifier(name: str) -> str:
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


@dataclass(slots=True)
class SparseUpdate:
    """Ordered (field, value) pairs for a partial update."""

    items: list[tuple[str, Any]] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], fields: type[Enum] | None = None) -> SparseUpdate:
        update = cls()
        for name, value in data.items():
            if fields is not None:
                try:
                    name = fields(name)
                except ValueError as exc:
                    raise RepositoryValidationError(f"unrecognized field: {name}") from exc
            update.set(name, value)
        return update

    def set(self, name: str | Enum, value: Any) -> None:
        key = name.value if isinstance(name, Enum) else name
        for index, (existing, _) in enumerate(self.items):
            if existing == key:
                self.items[index] = (key, value)
                return
        self.items.append((key, value))

    def pop(self, name: str | Enum, default: Any = None) -> Any:
        key = name.value if isinstance(name, Enum) else name
        for index, (existing, value) in enumerate(self.items):
            if existing == key:
                del self.items[index]
                return value
        return default

    def get(self, name: str | Enum, default: Any = None) -> Any:
        key = name.value if isinstance(name, Enum) else name
        for existing, value in self.items:
            if existing == key:
                return value
        return default

    def __iter__(self) -> Iterator[tuple[str, Any]]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


def sql_for_partial_update(
    data: SparseUpdate | Mapping[str, Any],
    mapping: Mapping[str, str],
) -> tuple[str, list[Any]]:
    """Build the SET clause of a partial update.

    ``{"firstName": "Aliya", "age": 32}`` with ``{"firstName": "first_name"}``
    gives ``('"first_name"=$1, "age"=$2', ["Aliya", 32])``. The caller binds
    its row key at ``$len(values) + 1``.
    """
    pairs: Iterable[tuple[Any, Any]] = data.items() if isinstance(data, Mapping) else data
    items = list(pairs)
    if not items:
        raise RepositoryValidationError("no data")

    assignments = [
        f"{quote_identifier(resolve_column(name, mapping))}=${index}"
        for index, (name, _) in enumerate(items, start=1)
    ]
    return ", ".join(assignments), [value for _, value in items]


@dataclass(frozen=True, slots=True)
class FlagPredicate:
    column: str
    operator: str = "="
    value: Any = True


@dataclass(frozen=True, slots=True)
class FilterColumns:
    """Storage columns a resource exposes to search filters."""

    text: str | None = None
    numeric: str | None = None
    flags: Mapping[str, FlagPredicate] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class FilterSpec:
    text: str | None = None
    minimum: Numeric | None = None
    maximum: Numeric | None = None
    flags: Mapping[str, bool] = field(default_factory=dict)


def escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_filter(spec: FilterSpec, columns: FilterColumns, *, start: int = 1) -> tuple[str, list[Any]]:
    """Build a conjunctive WHERE predicate for the filters present in ``spec``.

    Predicates are emitted in a fixed order: text, minimum, maximum, then flags
    in the order ``columns`` declares them. Absent filters and false flags add
    nothing. With no filters the clause is empty.
    """
    if spec.minimum is not None and spec.maximum is not None and spec.minimum > spec.maximum:
        raise RepositoryValidationError("minimum cannot be greater than maximum")

    unknown_flags = sorted(set(spec.flags) - set(columns.flags))
    if unknown_flags:
        raise RepositoryValidationError(f"unsupported filters: {', '.join(unknown_flags)}")

    conditions: list[str] = []
    params: list[Any] = []

    def bind(value: Any) -> str:
        params.append(value)
        return f"${start + len(params) - 1}"

    if spec.text:
        if columns.text is None:
            raise RepositoryValidationError("text filter is not supported")
        conditions.append(f"{quote_identifier(columns.text)} ILIKE {bind(f'%{escape_like(spec.text)}%')}")

    if spec.minimum is not None or spec.maximum is not None:
        if columns.numeric is None:
            raise RepositoryValidationError("range filter is not supported")
        column = quote_identifier(columns.numeric)
        if spec.minimum is not None:
            conditions.append(f"{column} >= {bind(spec.minimum)}")
        if spec.maximum is not None:
            conditions.append(f"{column} <= {bind(spec.maximum)}")

    for name, predicate in columns.flags.items():
        if spec.flags.get(name):
            conditions.append(f"{quote_identifier(predicate.column)} {predicate.operator} {bind(predicate.value)}")

    return " AND ".join(conditions), params


def where_clause(clause: str) -> str:
    return f"WHERE {clause}" if clause else ""
