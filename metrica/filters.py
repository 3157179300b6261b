"""
Metrica generic filters - request-driven shaping of DataTable results.

Any API method that returns a ``DataTable`` can be filtered, sorted and
paginated straight from the request, e.g.::

    method=Example.getBrowsers&filter_sort_column=label&filter_limit=10&filter_offset=20

The set of generic filters and their order is fixed. Each step relies on
the previous ones having already reduced and ordered the rows:

1. ``PatternFilter``               - keep rows whose column matches a pattern
2. ``ExcludeLowPopulationFilter``  - drop rows below a numeric threshold
3. ``SortFilter``                  - order the remaining rows (always applied)
4. ``LimitFilter``                 - keep a sub-range of the ordered rows

A filter whose request parameters are missing or malformed is skipped;
it never fails the request.
"""

from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass
from typing import (
    Any,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    Union,
)

from .coercion import REQUIRED, Default, DefaultSpec, ParamType, get_request_var
from .datatable import INDEX_NB_VISITS, DataTable, Row
from .faults import InvalidParameterTypeFault, MissingRequiredParameterFault

__all__ = [
    "PatternFilter",
    "ExcludeLowPopulationFilter",
    "SortFilter",
    "LimitFilter",
    "GenericFilter",
    "FilterParam",
    "GENERIC_FILTERS",
    "build_generic_filters",
    "apply_generic_filters",
]

logger = logging.getLogger("metrica.filters")

SORT_ASC = "asc"
SORT_DESC = "desc"


# ═══════════════════════════════════════════════════════════════════════════
#  Value helpers
# ═══════════════════════════════════════════════════════════════════════════

def _as_number(value: Any) -> Optional[float]:
    """Numeric view of a cell, ``None`` when it has none."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _sort_key(value: Any) -> Tuple[int, Any]:
    number = _as_number(value)
    if number is not None:
        return (0, number)
    return (1, str(value).lower())


# ═══════════════════════════════════════════════════════════════════════════
#  Filters
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PatternFilter:
    """
    Keep rows whose *column* matches *pattern*.

    The pattern is a case-insensitive regular expression searched anywhere
    in the cell; a pattern that does not compile is matched as a plain
    substring. Rows without the column are removed.
    """

    column: str
    pattern: str

    def apply(self, table: DataTable) -> None:
        try:
            regex = re.compile(self.pattern, re.IGNORECASE)
            matches = lambda text: regex.search(text) is not None  # noqa: E731
        except re.error:
            needle = self.pattern.lower()
            matches = lambda text: needle in text.lower()  # noqa: E731

        def _no_match(row: Row) -> bool:
            value = row.get(self.column)
            return value is None or not matches(str(value))

        table.delete_rows(_no_match)


@dataclass(frozen=True)
class ExcludeLowPopulationFilter:
    """
    Remove rows whose *column* is strictly below *minimum*.

    Missing or non-numeric cells count as ``0``.
    """

    column: str
    minimum: float

    def apply(self, table: DataTable) -> None:
        def _too_low(row: Row) -> bool:
            number = _as_number(row.get(self.column))
            return (number if number is not None else 0.0) < self.minimum

        table.delete_rows(_too_low)


@dataclass(frozen=True)
class SortFilter:
    """
    Order rows by *column*, ``desc`` (default) or ``asc``.

    Numbers compare numerically, anything else as case-insensitive text
    ranked above every number. Rows lacking the column go last in both
    directions. An unknown order falls back to ``desc``.
    """

    column: str = INDEX_NB_VISITS
    order: str = SORT_DESC

    @property
    def descending(self) -> bool:
        return self.order.lower() != SORT_ASC

    def apply(self, table: DataTable) -> None:
        desc = self.descending
        column = self.column

        def _compare(a: Row, b: Row) -> int:
            va = a.get(column)
            vb = b.get(column)
            if va is None and vb is None:
                return 0
            if va is None:
                return 1
            if vb is None:
                return -1
            ka = _sort_key(va)
            kb = _sort_key(vb)
            if ka < kb:
                return 1 if desc else -1
            if ka > kb:
                return -1 if desc else 1
            return 0

        table.sort(key=functools.cmp_to_key(_compare))


@dataclass(frozen=True)
class LimitFilter:
    """
    Keep *limit* rows starting at *offset*.

    A negative limit keeps every row from *offset* on.
    """

    offset: int
    limit: int

    def apply(self, table: DataTable) -> None:
        table.truncate(self.offset, None if self.limit < 0 else self.limit)


GenericFilter = Union[PatternFilter, ExcludeLowPopulationFilter, SortFilter, LimitFilter]


# ═══════════════════════════════════════════════════════════════════════════
#  Request binding
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FilterParam:
    """A request parameter feeding one constructor argument of a generic filter."""
    name: str
    type: ParamType
    default: DefaultSpec = REQUIRED


# Application order matters: remove rows, then sort, then keep a subset.
GENERIC_FILTERS: Tuple[Tuple[Type[Any], Tuple[FilterParam, ...]], ...] = (
    (PatternFilter, (
        FilterParam("filter_column", ParamType.STRING),
        FilterParam("filter_pattern", ParamType.STRING),
    )),
    (ExcludeLowPopulationFilter, (
        FilterParam("filter_excludelowpop", ParamType.STRING),
        FilterParam("filter_excludelowpop_value", ParamType.FLOAT),
    )),
    (SortFilter, (
        FilterParam("filter_sort_column", ParamType.STRING, Default(INDEX_NB_VISITS)),
        FilterParam("filter_sort_order", ParamType.STRING, Default(SORT_DESC)),
    )),
    (LimitFilter, (
        FilterParam("filter_offset", ParamType.INTEGER),
        FilterParam("filter_limit", ParamType.INTEGER),
    )),
)


def build_generic_filters(
    request: Mapping[str, Any],
    *,
    default_sort_column: str = INDEX_NB_VISITS,
) -> List[GenericFilter]:
    """
    Build the generic filters the request asks for, in application order.

    A filter is left out as soon as one of its parameters cannot be bound.
    """
    built: List[GenericFilter] = []
    for filter_class, params in GENERIC_FILTERS:
        args: List[Any] = []
        for param in params:
            default = param.default
            if param.name == "filter_sort_column":
                default = Default(default_sort_column)
            try:
                args.append(get_request_var(param.name, default, param.type, request))
            except (MissingRequiredParameterFault, InvalidParameterTypeFault) as fault:
                logger.debug("Skipping %s: %s", filter_class.__name__, fault)
                break
        else:
            built.append(filter_class(*args))
    return built


def apply_generic_filters(
    table: DataTable,
    request: Mapping[str, Any],
    *,
    default_sort_column: str = INDEX_NB_VISITS,
) -> Sequence[GenericFilter]:
    """
    Apply the generic filters to *table* in place. Returns the filters applied.
    """
    applied = build_generic_filters(request, default_sort_column=default_sort_column)
    for generic_filter in applied:
        generic_filter.apply(table)
        logger.debug("Applied %r, %d rows left", generic_filter, len(table))
    return applied
