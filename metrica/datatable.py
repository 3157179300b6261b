"""
DataTable - the tabular result returned by report API methods.

A DataTable is an ordered list of rows, each row a mapping of column name
to value. Filters mutate it in place (remove, reorder, truncate); renderers
only read it.

API methods may also *queue* filters on the table they return. Queued
filters run after the generic request-driven filters, just before the
table is rendered::

    table = DataTable(rows)
    table.queue_filter(lambda t, suffix: ..., " visits")
    return table
"""

from __future__ import annotations

import logging
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
)

__all__ = ["DataTable", "Row", "INDEX_NB_VISITS"]

logger = logging.getLogger("metrica.datatable")

Row = Dict[str, Any]

# Column holding the number of visits, the default sort column.
INDEX_NB_VISITS = "nb_visits"


class DataTable:
    """Ordered, mutable collection of rows."""

    __slots__ = ("_rows", "_queued_filters")

    def __init__(self, rows: Optional[Iterable[Mapping[str, Any]]] = None):
        self._rows: List[Row] = [dict(row) for row in (rows or [])]
        self._queued_filters: List[Tuple[Callable[..., Any], tuple, dict]] = []

    # -- Container protocol ----------------------------------------------

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self._rows)

    def __getitem__(self, index: int) -> Row:
        return self._rows[index]

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, DataTable):
            return self._rows == other._rows
        return NotImplemented

    def __repr__(self) -> str:
        return f"DataTable(rows={len(self._rows)})"

    @property
    def rows(self) -> List[Row]:
        """Snapshot of the current rows (the list, not the row dicts, is copied)."""
        return list(self._rows)

    @property
    def columns(self) -> List[str]:
        """Column names in first-seen order across all rows."""
        seen: Dict[str, None] = {}
        for row in self._rows:
            for key in row:
                seen.setdefault(key, None)
        return list(seen)

    def to_list(self) -> List[Row]:
        return [dict(row) for row in self._rows]

    # -- Building --------------------------------------------------------

    def add_row(self, row: Mapping[str, Any]) -> None:
        self._rows.append(dict(row))

    def add_rows(self, rows: Iterable[Mapping[str, Any]]) -> None:
        for row in rows:
            self.add_row(row)

    def get_column(self, name: str) -> List[Any]:
        """Values of column *name*, ``None`` where a row lacks it."""
        return [row.get(name) for row in self._rows]

    # -- In-place mutation -----------------------------------------------

    def delete_rows(self, predicate: Callable[[Row], bool]) -> int:
        """Remove every row for which *predicate* is true. Returns the count removed."""
        kept = [row for row in self._rows if not predicate(row)]
        removed = len(self._rows) - len(kept)
        self._rows[:] = kept
        return removed

    def sort(self, key: Callable[[Row], Any], reverse: bool = False) -> None:
        """Reorder rows in place (stable)."""
        self._rows.sort(key=key, reverse=reverse)

    def truncate(self, offset: int, limit: Optional[int] = None) -> None:
        """Keep only ``rows[offset:offset + limit]`` (to the end when *limit* is None)."""
        offset = max(0, offset)
        end = None if limit is None else offset + max(0, limit)
        self._rows[:] = self._rows[offset:end]

    # -- Queued filters --------------------------------------------------

    def queue_filter(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """
        Queue ``func(table, *args, **kwargs)`` to run after the generic filters.
        """
        self._queued_filters.append((func, args, kwargs))

    @property
    def queued_filters(self) -> List[Callable[..., Any]]:
        return [func for func, _, _ in self._queued_filters]

    def apply_queued_filters(self) -> None:
        """Run queued filters in the order they were queued, then clear the queue."""
        queued, self._queued_filters = self._queued_filters, []
        for func, args, kwargs in queued:
            logger.debug(
                "Applying queued filter %s", getattr(func, "__name__", type(func).__name__)
            )
            func(self, *args, **kwargs)
