# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Statement builder for StoreBooks.

This module assembles the three standard statements from a ledger snapshot,
a reporting period and a store scope:

1. Cash-flow statement
   --------------------
   ``build_cash_flow_statement()`` consolidates the selected stores (see
   ``consolidation.py``), aggregates real transactions and virtual capital
   entries by activity (see ``cash_flow.py``) and closes with the
   beginning balance / net increase / ending balance summary.

2. Profit-and-loss statement
   --------------------------
   ``build_profit_loss_statement()`` aggregates the in-period transactions
   of the selected stores by nature (see ``profit_loss.py``).

3. Transaction ledger
   -------------------
   ``build_transaction_ledger()`` lists the in-period entries, virtual
   capital entries included, after applying facet filters and a sort.

All three are pure functions of their inputs. ``StatementBuilder`` wraps
them with a memo keyed by (statement kind, period, scope, data version), so
repeated requests over the same snapshot are computed once.

Company scoping is carried by the snapshot: every record it holds belongs
to ``snapshot.company_id``.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Optional

from .cash_flow import ActivitySection, CashFlowSummary, aggregate_activities, summarize
from .consolidation import (
    StoreBalance,
    build_capital_injections,
    consolidate,
    partition_stores,
)
from .errors import UnknownStoreError, ValidationError
from .filters import SortSpec, TransactionFilter, merge_filters, sort_entries
from .models import ZERO, CapitalInjection, LedgerEntry, LedgerSnapshot, Store
from .periods import Period, filter_transactions_by_period
from .profit_loss import ProfitLossStatement, aggregate_profit_loss

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreScope:
    """
    Selection of stores a statement covers.

    ``store_ids`` is None for "all stores of the company", otherwise the
    explicit set of store ids (order is irrelevant).
    """

    store_ids: Optional[frozenset[str]] = None

    @classmethod
    def all_stores(cls) -> "StoreScope":
        return cls()

    @classmethod
    def single(cls, store_id: str) -> "StoreScope":
        return cls(frozenset([store_id]))

    @classmethod
    def subset(cls, store_ids: Iterable[str]) -> "StoreScope":
        ids = frozenset(store_ids)
        if not ids:
            raise ValidationError("A store subset needs at least one store id.")
        return cls(ids)

    @property
    def key(self) -> tuple[str, ...]:
        """Hashable, order-independent identity of the scope."""
        if self.store_ids is None:
            return ("*",)
        return tuple(sorted(self.store_ids))

    def resolve(self, stores: Iterable[Store]) -> list[Store]:
        """
        Return the stores selected by this scope, in input order.

        Raises:
            UnknownStoreError: if the scope names a store that is not in
                ``stores``.
        """
        stores = list(stores)
        if self.store_ids is None:
            return stores
        known = {s.id for s in stores}
        missing = sorted(self.store_ids - known)
        if missing:
            raise UnknownStoreError(f"Unknown store id(s): {', '.join(missing)}.")
        return [s for s in stores if s.id in self.store_ids]


@dataclass(frozen=True)
class CashFlowStatement:
    """Consolidated cash-flow statement of a period and store scope."""

    period: Period
    store_ids: tuple[str, ...]
    operating: ActivitySection
    investing: ActivitySection
    financing: ActivitySection
    summary: CashFlowSummary
    capital_injections: tuple[CapitalInjection, ...] = ()
    store_breakdown: tuple[StoreBalance, ...] = ()

    def sections(self) -> dict[str, ActivitySection]:
        return {
            "operating": self.operating,
            "investing": self.investing,
            "financing": self.financing,
        }


@dataclass(frozen=True)
class TransactionLedger:
    """Filtered, sorted list of entries with its totals."""

    period: Period
    store_ids: tuple[str, ...]
    entries: tuple[LedgerEntry, ...]
    total_inflow: Decimal
    total_outflow: Decimal

    @property
    def net(self) -> Decimal:
        return self.total_inflow - self.total_outflow

    @property
    def real_count(self) -> int:
        return sum(1 for e in self.entries if not e.is_virtual)

    @property
    def virtual_count(self) -> int:
        return sum(1 for e in self.entries if e.is_virtual)


def _resolve_scope(
    snapshot: LedgerSnapshot, scope: Optional[StoreScope]
) -> list[Store]:
    return (scope or StoreScope.all_stores()).resolve(snapshot.stores)


def build_cash_flow_statement(
    snapshot: LedgerSnapshot,
    period: Period,
    scope: Optional[StoreScope] = None,
) -> CashFlowStatement:
    """
    Build the consolidated cash-flow statement.

    Raises:
        UnknownStoreError: the scope names an unknown store.
        MissingInitialBalanceError: a selected store has no opening date.
        ValidationError: a transaction predates its store's opening date.
    """
    stores = _resolve_scope(snapshot, scope)
    view = consolidate(stores, snapshot.transactions, period)
    sections = aggregate_activities(view.entries)
    summary = summarize(sections, view.beginning_balance)
    return CashFlowStatement(
        period=period,
        store_ids=tuple(s.id for s in view.partition.in_scope),
        operating=sections["operating"],
        investing=sections["investing"],
        financing=sections["financing"],
        summary=summary,
        capital_injections=view.capital_injections,
        store_breakdown=view.store_breakdown,
    )


def build_profit_loss_statement(
    snapshot: LedgerSnapshot,
    period: Period,
    scope: Optional[StoreScope] = None,
) -> ProfitLossStatement:
    """
    Build the profit-and-loss statement.

    Store opening dates play no role here: the statement only looks at the
    transactions of the selected stores dated within the period.
    """
    stores = _resolve_scope(snapshot, scope)
    store_ids = {s.id for s in stores}
    entries = [
        tx
        for tx in filter_transactions_by_period(snapshot.transactions, period)
        if tx.store_id in store_ids
    ]
    statement = aggregate_profit_loss(entries)
    return replace(
        statement,
        period=period,
        store_ids=tuple(s.id for s in stores),
    )


def build_transaction_ledger(
    snapshot: LedgerSnapshot,
    period: Period,
    scope: Optional[StoreScope] = None,
    filters: Optional[TransactionFilter] = None,
    sort: Optional[SortSpec] = None,
    include_virtual: bool = True,
) -> TransactionLedger:
    """
    Build the transaction ledger of a period and store scope.

    Virtual capital entries of stores opened during the period are listed
    alongside real transactions unless ``include_virtual`` is False (or the
    filter excludes them).

    Raises:
        MissingInitialBalanceError: virtual entries are requested and a
            selected store has no opening date.
    """
    stores = _resolve_scope(snapshot, scope)
    store_ids = {s.id for s in stores}

    entries: list[LedgerEntry] = [
        tx
        for tx in filter_transactions_by_period(snapshot.transactions, period)
        if tx.store_id in store_ids
    ]
    if include_virtual:
        partition = partition_stores(stores, period)
        entries.extend(build_capital_injections(partition.new_in_period))

    effective = merge_filters(TransactionFilter(include_virtual=include_virtual), filters)
    selected = sort_entries(effective.apply(entries), sort)

    total_inflow = sum((e.amount for e in selected if e.type == "income"), ZERO)
    total_outflow = sum((e.amount for e in selected if e.type == "expense"), ZERO)
    return TransactionLedger(
        period=period,
        store_ids=tuple(s.id for s in stores),
        entries=tuple(selected),
        total_inflow=total_inflow,
        total_outflow=total_outflow,
    )


class StatementBuilder:
    """
    Memoizing front end for the statement functions.

    Results are cached by (statement kind, period, scope, data version).
    Statements are immutable, so cached results are shared safely.
    """

    def __init__(self, snapshot: LedgerSnapshot):
        self.snapshot = snapshot
        self._cache: dict[tuple, Any] = {}

    @property
    def company_id(self) -> str:
        return self.snapshot.company_id

    def _memo(self, key: tuple, period: Period, compute):
        try:
            result = self._cache[key]
        except KeyError:
            result = compute()
            self._cache[key] = result
            logger.debug("Computed %s for %s", key[0], key[1:])
        # The key ignores the label; hand back the caller's period.
        if result.period != period:
            result = replace(result, period=period)
        return result

    def _key(self, kind: str, period: Period, scope: Optional[StoreScope], *extra):
        scope = scope or StoreScope.all_stores()
        return (kind, period.key, scope.key, self.snapshot.data_version, *extra)

    def cash_flow(
        self, period: Period, scope: Optional[StoreScope] = None
    ) -> CashFlowStatement:
        return self._memo(
            self._key("cash_flow", period, scope),
            period,
            lambda: build_cash_flow_statement(self.snapshot, period, scope),
        )

    def profit_loss(
        self, period: Period, scope: Optional[StoreScope] = None
    ) -> ProfitLossStatement:
        return self._memo(
            self._key("profit_loss", period, scope),
            period,
            lambda: build_profit_loss_statement(self.snapshot, period, scope),
        )

    def ledger(
        self,
        period: Period,
        scope: Optional[StoreScope] = None,
        filters: Optional[TransactionFilter] = None,
        sort: Optional[SortSpec] = None,
        include_virtual: bool = True,
    ) -> TransactionLedger:
        return self._memo(
            self._key("ledger", period, scope, filters, sort, include_virtual),
            period,
            lambda: build_transaction_ledger(
                self.snapshot, period, scope, filters, sort, include_virtual
            ),
        )

    def update_snapshot(self, snapshot: LedgerSnapshot) -> None:
        """Switch to a new snapshot, dropping results of other data versions.

        Results are also dropped when the content changed under a reused
        ``data_version``.
        """
        if snapshot.company_id != self.snapshot.company_id:
            raise ValidationError(
                f"Snapshot of company {snapshot.company_id!r} cannot replace "
                f"company {self.snapshot.company_id!r}."
            )
        previous, self.snapshot = self.snapshot, snapshot
        if (snapshot.transactions, snapshot.stores) != (
            previous.transactions,
            previous.stores,
        ):
            self._cache.clear()
            return
        self._cache = {
            k: v for k, v in self._cache.items() if k[3] == snapshot.data_version
        }

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
