"""Parameterized SQL fragments for partial updates and list filters.

Both compilers number placeholders asyncpg-style (``$1``, ``$2``, ...) in the
order fragments are emitted, starting at 1, so the returned ``values`` can be
passed positionally to ``fetch``/``fetchrow`` unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any

from jobly.services.repository import (
    InvalidFilterParameterError,
    MissingFilterValueError,
    RepositoryValidationError,
)

ColumnMap = Mapping[str, str]

PG_INT_MAX = 2_147_483_647
PG_INT_MIN = -PG_INT_MAX - 1


class FilterOperator(str, Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    GTE = "gte"
    LTE = "lte"
    PRESENCE = "presence"


@dataclass(frozen=True, slots=True)
class FilterField:
    """One recognized query parameter.

    For ``PRESENCE`` fields ``column`` holds the whole predicate (``equity > 0``)
    and the parameter value is ignored. ``coerce`` converts the raw value before
    binding; range fields must use a numeric coercion (see ``to_int``).
    """

    name: str
    operator: FilterOperator
    column: str
    coerce: Callable[[str], Any] = str


@dataclass(frozen=True, slots=True)
class CompiledClause:
    fragments: tuple[str, ...]
    values: tuple[Any, ...]
    sql: str

    @property
    def next_placeholder(self) -> str:
        return f"${len(self.values) + 1}"


def column_map(**overrides: str) -> ColumnMap:
    return MappingProxyType(dict(overrides))


def filter_spec(*fields: FilterField) -> Mapping[str, FilterField]:
    return MappingProxyType({field.name: field for field in fields})


def to_int(raw: str) -> int:
    try:
        value = int(str(raw).strip())
    except ValueError as exc:
        raise ValueError("expected an integer") from exc
    if not PG_INT_MIN <= value <= PG_INT_MAX:
        raise ValueError("integer out of range")
    return value


def like_pattern(value: str) -> str:
    """Wrap ``value`` for a substring ``ilike``, escaping its wildcards."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def check_bounds(
    params: Mapping[str, Any],
    allowed: Mapping[str, FilterField],
    lower: str,
    upper: str,
    message: str,
) -> None:
    """Reject a lower bound above its upper bound.

    Unparseable values are left for ``compile_filters`` to report.
    """
    if lower not in params or upper not in params:
        return
    try:
        low = allowed[lower].coerce(params[lower])
        high = allowed[upper].coerce(params[upper])
    except (TypeError, ValueError):
        return
    if low > high:
        raise RepositoryValidationError(message)


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def compile_partial_update(data: Mapping[str, Any], columns: ColumnMap) -> CompiledClause:
    """Build ``"col"=$1, "col2"=$2`` for the supplied fields, in supplied order.

    Fields missing from ``columns`` are used as column names verbatim. ``None``
    values are bound as-is so they are written as SQL null.
    """
    if not data:
        raise RepositoryValidationError("no data supplied for update")

    fragments: list[str] = []
    values: list[Any] = []
    for field_name, value in data.items():
        values.append(value)
        column = columns.get(field_name, field_name)
        fragments.append(f"{quote_identifier(column)}=${len(values)}")

    return CompiledClause(fragments=tuple(fragments), values=tuple(values), sql=", ".join(fragments))


def compile_filters(params: Mapping[str, Any], allowed: Mapping[str, FilterField]) -> CompiledClause | None:
    """Build an ``and``-joined predicate list, or ``None`` when nothing was supplied.

    Every key is checked against ``allowed`` before anything is emitted, so an
    unknown or empty parameter never yields a partial clause.
    """
    if not params:
        return None

    resolved: list[tuple[FilterField, Any]] = []
    for name, raw in params.items():
        field = allowed.get(name)
        if field is None:
            raise InvalidFilterParameterError(name)
        if field.operator is FilterOperator.PRESENCE:
            resolved.append((field, None))
            continue
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            raise MissingFilterValueError(name)
        try:
            value = field.coerce(raw)
        except (TypeError, ValueError) as exc:
            raise RepositoryValidationError(f"Invalid value for parameter '{name}': {exc}") from exc
        resolved.append((field, value))

    fragments: list[str] = []
    values: list[Any] = []

    def bind(value: Any) -> str:
        values.append(value)
        return f"${len(values)}"

    for field, value in resolved:
        if field.operator is FilterOperator.PRESENCE:
            fragments.append(field.column)
        elif field.operator is FilterOperator.CONTAINS:
            fragments.append(f"{field.column} ilike {bind(like_pattern(value))}")
        elif field.operator is FilterOperator.GTE:
            fragments.append(f"{field.column} >= {bind(value)}")
        elif field.operator is FilterOperator.LTE:
            fragments.append(f"{field.column} <= {bind(value)}")
        else:
            fragments.append(f"{field.column} = {bind(value)}")

    return CompiledClause(fragments=tuple(fragments), values=tuple(values), sql=" and ".join(fragments))
