"""Client-side derived views over a presented record set.

Everything here is read-only and returns plain ``dict`` rows, which is
also the shape the export helpers consume.
"""

from __future__ import annotations

import functools
import math
import re
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from fleetsync._constants import (
    ID_FIELD,
    INDUSTRY_FIELD,
    PALLETS_DRY_FIELD,
    PALLETS_REFRIG_FIELD,
    PALLETS_TOTAL_FIELD,
    WEIGHT_FIELD,
)

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+))")

ComputedField = Callable[[Mapping[str, Any]], Any]
Predicate = Callable[[Mapping[str, Any]], bool]


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"
    NONE = "none"


@dataclass(frozen=True)
class SortState:
    """Column sort selection with the asc -> desc -> none cycle."""

    field: str | None = None
    direction: SortDirection = SortDirection.NONE

    @property
    def active(self) -> bool:
        return self.field is not None and self.direction is not SortDirection.NONE

    def toggle(self, field: str) -> SortState:
        if field != self.field or not self.active:
            return SortState(field, SortDirection.ASC)
        if self.direction is SortDirection.ASC:
            return SortState(field, SortDirection.DESC)
        return SortState()


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def compare_values(a: Any, b: Any) -> int:
    """Ascending comparison; empty values sort after everything else.

    Numbers rank ahead of text so mixed columns still form a total order.
    """
    a_empty, b_empty = _is_empty(a), _is_empty(b)
    if a_empty and b_empty:
        return 0
    if a_empty:
        return 1
    if b_empty:
        return -1

    if isinstance(a, bool) and isinstance(b, bool):
        return (a > b) - (a < b)

    a_num, b_num = _as_number(a), _as_number(b)
    if a_num is not None and b_num is not None:
        return (a_num > b_num) - (a_num < b_num)
    if a_num is not None:
        return -1
    if b_num is not None:
        return 1

    a_text, b_text = str(a).casefold(), str(b).casefold()
    return (a_text > b_text) - (a_text < b_text)


def sort_records(records: Iterable[Mapping[str, Any]], sort: SortState) -> list[dict[str, Any]]:
    """Stable sort; an inactive state keeps snapshot order.

    Descending is the reverse comparison, so empty values lead.
    """
    rows = [dict(record) for record in records]
    if not sort.active:
        return rows
    field = sort.field
    key = functools.cmp_to_key(lambda x, y: compare_values(x.get(field), y.get(field)))
    return sorted(rows, key=key, reverse=sort.direction is SortDirection.DESC)


# ---------------------------------------------------------------------------
# Computed fields
# ---------------------------------------------------------------------------


def parse_int(value: Any) -> int:
    """Leading-integer parse; anything unparseable counts as ``0``."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    match = _INT_PREFIX.match(str(value or ""))
    return int(match.group(1)) if match else 0


def pallet_total(record: Mapping[str, Any]) -> str:
    return str(parse_int(record.get(PALLETS_REFRIG_FIELD)) + parse_int(record.get(PALLETS_DRY_FIELD)))


def with_pallet_total(current: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:
    """Extend a patch with the recomputed pallet total when a pallet field changes."""
    patch = dict(changes)
    if PALLETS_REFRIG_FIELD in patch or PALLETS_DRY_FIELD in patch:
        patch[PALLETS_TOTAL_FIELD] = pallet_total({**current, **patch})
    return patch


STATUS_COMPUTED_FIELDS: dict[str, ComputedField] = {PALLETS_TOTAL_FIELD: pallet_total}
"""Live recomputation for status tables, overriding any stale stored total."""


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def parse_locale_number(value: Any) -> float:
    """Parse ``"1.234,50"``-style numbers (dot thousands, comma decimals); bad input is ``0``."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    normalized = str(value).replace(".", "").replace(",", ".")
    match = _FLOAT_PREFIX.match(normalized)
    return float(match.group(1)) if match else 0.0


def format_locale_number(value: float, decimals: int = 2) -> str:
    """Format as ``1.234,50``."""
    text = f"{value:,.{decimals}f}"
    return text.translate(str.maketrans(",.", ".,"))


def weight_by_category(
    records: Iterable[Mapping[str, Any]],
    *,
    value_field: str = WEIGHT_FIELD,
    category_field: str = INDUSTRY_FIELD,
) -> dict[str, float]:
    totals: dict[str, float] = {}
    for record in records:
        category = record.get(category_field)
        if _is_empty(category):
            continue
        key = str(category)
        totals[key] = totals.get(key, 0.0) + parse_locale_number(record.get(value_field))
    return totals


def sum_selected(
    records: Iterable[Mapping[str, Any]],
    selected: Iterable[str],
    *,
    value_field: str = WEIGHT_FIELD,
) -> float:
    chosen = set(selected)
    return sum(
        parse_locale_number(record.get(value_field)) for record in records if record.get(ID_FIELD) in chosen
    )


def toggle_selection(selection: frozenset[str], doc_id: str) -> frozenset[str]:
    if doc_id in selection:
        return selection - {doc_id}
    return selection | {doc_id}


# ---------------------------------------------------------------------------
# View
# ---------------------------------------------------------------------------


class DerivedView:
    """Computed fields, then filter, then sort, over one record set."""

    def __init__(
        self,
        records: Iterable[Mapping[str, Any]],
        *,
        sort: SortState | None = None,
        where: Predicate | None = None,
        computed: Mapping[str, ComputedField] | None = None,
    ) -> None:
        self._records = [dict(record) for record in records]
        self._sort = sort or SortState()
        self._where = where
        self._computed = dict(computed or {})
        self._rows: list[dict[str, Any]] | None = None

    def rows(self) -> list[dict[str, Any]]:
        if self._rows is None:
            rows = self._records
            if self._computed:
                rows = [{**row, **{name: fn(row) for name, fn in self._computed.items()}} for row in rows]
            if self._where is not None:
                rows = [row for row in rows if self._where(row)]
            self._rows = sort_records(rows, self._sort)
        return [dict(row) for row in self._rows]

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.rows())

    def __len__(self) -> int:
        return len(self.rows())
