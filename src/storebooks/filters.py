# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Filtering and sorting of ledger entries.

``TransactionFilter`` is a multi-facet filter over real transactions and
virtual capital entries alike. Each facet (type, category, activity,
nature, store) is an allow-list: an empty allow-list means "no filtering on
this facet", never "exclude everything". Date bounds are inclusive and the
description filter is a case-insensitive substring match.

Facet values are resolved the same way the aggregators see them:
- activity: the stored activity, else the built-in mapping, else operating;
- nature: the stored nature, operating when unset on a real transaction,
  and "not_applicable" for virtual capital entries.

``SortSpec`` is a single (field, direction) pair. Sorting is stable and
ties are broken on ``id`` ascending, so the output order never depends on
the input order.
"""

from collections.abc import Iterable
from dataclasses import dataclass, fields
from datetime import date
from typing import Optional

import pandas as pd

from .cash_flow import resolve_activity
from .errors import ValidationError
from .models import LedgerEntry

NOT_APPLICABLE = "not_applicable"

SORT_FIELDS = (
    "date",
    "amount",
    "category",
    "type",
    "store_id",
    "cash_flow_activity",
    "description",
    "id",
)
SORT_DIRECTIONS = ("asc", "desc")

FRAME_COLUMNS = [
    "id",
    "date",
    "store_id",
    "type",
    "category",
    "amount",
    "signed_amount",
    "cash_flow_activity",
    "transaction_nature",
    "include_in_profit_loss",
    "description",
    "kind",
]


def entry_nature(entry: LedgerEntry) -> str:
    """Nature facet value of an entry."""
    if entry.is_virtual:
        return NOT_APPLICABLE
    return entry.transaction_nature or "operating"


@dataclass(frozen=True)
class TransactionFilter:
    """
    Multi-facet filter over ledger entries.

    Attributes
    ----------
    types, categories, activities, natures, store_ids :
        Allow-lists; empty means the facet is not filtered. ``categories``
        matches the category name or the category id.
    start, end :
        Optional inclusive date bounds.
    description_contains :
        Optional case-insensitive substring of the description.
    include_virtual :
        Whether virtual capital entries may pass the filter.
    """

    types: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    activities: tuple[str, ...] = ()
    natures: tuple[str, ...] = ()
    store_ids: tuple[str, ...] = ()
    start: Optional[date] = None
    end: Optional[date] = None
    description_contains: Optional[str] = None
    include_virtual: bool = True

    def __post_init__(self) -> None:
        for name in ("types", "categories", "activities", "natures", "store_ids"):
            value = getattr(self, name)
            if isinstance(value, str):
                value = (value,)
            object.__setattr__(self, name, tuple(value))
        if self.start and self.end and self.end < self.start:
            raise ValidationError(
                f"Filter end date {self.end} cannot be before start date {self.start}."
            )

    @property
    def is_empty(self) -> bool:
        return self == TransactionFilter()

    def matches(self, entry: LedgerEntry) -> bool:
        if entry.is_virtual and not self.include_virtual:
            return False
        if self.types and entry.type not in self.types:
            return False
        if self.categories and not (
            entry.category in self.categories
            or (entry.category_id is not None and entry.category_id in self.categories)
        ):
            return False
        if self.activities and resolve_activity(entry) not in self.activities:
            return False
        if self.natures and entry_nature(entry) not in self.natures:
            return False
        if self.store_ids and entry.store_id not in self.store_ids:
            return False
        if self.start is not None and entry.date < self.start:
            return False
        if self.end is not None and entry.date > self.end:
            return False
        if self.description_contains:
            needle = self.description_contains.casefold()
            if needle not in (entry.description or "").casefold():
                return False
        return True

    def apply(self, entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
        return [e for e in entries if self.matches(e)]


def merge_filters(
    base: Optional[TransactionFilter], override: Optional[TransactionFilter]
) -> TransactionFilter:
    """
    Combine two filters, the override winning facet by facet.

    A facet of ``override`` replaces the one of ``base`` only when it is
    set (non-empty allow-list, non-None bound or substring).
    ``include_virtual`` is the conjunction of both filters.
    """
    base = base or TransactionFilter()
    if override is None:
        return base

    merged = {}
    for f in fields(TransactionFilter):
        if f.name == "include_virtual":
            continue
        value = getattr(override, f.name)
        merged[f.name] = value if value not in ((), None, "") else getattr(base, f.name)
    merged["include_virtual"] = base.include_virtual and override.include_virtual
    return TransactionFilter(**merged)


@dataclass(frozen=True)
class SortSpec:
    """Single sort key and direction ("asc" or "desc")."""

    field: str = "date"
    direction: str = "asc"

    def __post_init__(self) -> None:
        if self.field not in SORT_FIELDS:
            raise ValidationError(
                f"Cannot sort by {self.field!r}; expected one of: "
                f"{', '.join(SORT_FIELDS)}."
            )
        direction = str(self.direction).lower()
        if direction not in SORT_DIRECTIONS:
            raise ValidationError(f"Invalid sort direction {self.direction!r}.")
        object.__setattr__(self, "direction", direction)


def _sort_value(entry: LedgerEntry, field_name: str):
    if field_name == "cash_flow_activity":
        return resolve_activity(entry)
    if field_name == "description":
        return entry.description or ""
    return getattr(entry, field_name)


def sort_entries(
    entries: Iterable[LedgerEntry], sort: Optional[SortSpec] = None
) -> list[LedgerEntry]:
    """
    Sort entries by one field.

    Entries are first ordered by ``id`` ascending, then stably sorted on
    the requested field, so equal keys always come out in ``id`` order
    whatever the direction.
    """
    sort = sort or SortSpec()
    ordered = sorted(entries, key=lambda e: e.id)
    if sort.field == "id":
        return ordered[::-1] if sort.direction == "desc" else ordered

    # reverse=True keeps equal keys in their original (id) order.
    return sorted(
        ordered,
        key=lambda e: _sort_value(e, sort.field),
        reverse=sort.direction == "desc",
    )


def entries_to_frame(entries: Iterable[LedgerEntry]) -> pd.DataFrame:
    """
    Convert ledger entries to a DataFrame (one row per entry).

    Amounts are converted to float for display and CSV output; the engine
    itself keeps working on Decimal values.
    """
    rows = []
    for e in entries:
        rows.append(
            {
                "id": e.id,
                "date": e.date,
                "store_id": e.store_id,
                "type": e.type,
                "category": e.category,
                "amount": float(e.amount),
                "signed_amount": float(e.signed_amount),
                "cash_flow_activity": resolve_activity(e),
                "transaction_nature": entry_nature(e),
                "include_in_profit_loss": e.include_in_profit_loss,
                "description": e.description,
                "kind": e.kind,
            }
        )
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)
