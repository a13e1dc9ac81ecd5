# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Multi-store consolidation for StoreBooks.

Stores of the same company open their books on different dates. To build
one coherent statement over any subset of stores, each store is classified
relative to the reporting period [S, E] using its ``initial_balance_date``:

- pre_existing   : date < S. The store was already operating; its balance
                   as of S is folded into the consolidated beginning
                   balance.
- new_in_period  : S <= date <= E. The store opened during the period; its
                   initial balance enters as a virtual financing inflow
                   ("new store capital investment") dated on its opening
                   day, and contributes nothing to the beginning balance.
- out_of_scope   : date > E. The store is left out of the period entirely.

A store's balance as of a day is its initial balance plus the net of its
transactions dated strictly before that day (one linear scan of the
ledger, no stored running balance).

Because every store's contribution depends only on its own data, the
consolidation is additive: consolidating two disjoint store sets
separately and summing their ending balances gives the ending balance of
the union.

A store without ``initial_balance_date`` cannot be placed and raises
``MissingInitialBalanceError``; the caller must exclude it or have it set
up first.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Literal

from .errors import MissingInitialBalanceError, ValidationError
from .models import ZERO, CapitalInjection, LedgerEntry, Store, Transaction
from .periods import Period

logger = logging.getLogger(__name__)

StoreClass = Literal["pre_existing", "new_in_period", "out_of_scope"]


@dataclass(frozen=True)
class StorePartition:
    """Stores split by their position relative to a reporting period."""

    pre_existing: tuple[Store, ...]
    new_in_period: tuple[Store, ...]
    out_of_scope: tuple[Store, ...]

    @property
    def in_scope(self) -> tuple[Store, ...]:
        return self.pre_existing + self.new_in_period


@dataclass(frozen=True)
class StoreBalance:
    """
    Contribution of one in-scope store to a consolidated statement.

    For a pre-existing store ``capital_injection`` is zero; for a new store
    ``beginning_balance`` is zero and its opening cash is the capital.
    ``ending_balance = beginning_balance + capital_injection + net_cash_flow``.
    """

    store_id: str
    store_name: str
    classification: str
    beginning_balance: Decimal
    capital_injection: Decimal
    net_cash_flow: Decimal
    ending_balance: Decimal
    transaction_count: int = 0


@dataclass(frozen=True)
class ConsolidatedView:
    """
    Result of consolidating a set of stores over a period.

    ``transactions`` holds the real in-period transactions of in-scope
    stores, ``capital_injections`` the virtual entries of new stores.
    """

    period: Period
    beginning_balance: Decimal
    transactions: tuple[Transaction, ...]
    capital_injections: tuple[CapitalInjection, ...]
    store_breakdown: tuple[StoreBalance, ...]
    partition: StorePartition

    @property
    def entries(self) -> tuple[LedgerEntry, ...]:
        """Virtual capital entries followed by the real transactions."""
        return self.capital_injections + self.transactions

    @property
    def ending_balance(self) -> Decimal:
        return sum((s.ending_balance for s in self.store_breakdown), ZERO)


def classify_store(store: Store, period: Period) -> StoreClass:
    """Place a store relative to the period (start bound is new-in-period)."""
    opened = store.initial_balance_date
    if opened is None:
        raise MissingInitialBalanceError(store.id, store.name)
    if opened < period.start:
        return "pre_existing"
    if opened <= period.end:
        return "new_in_period"
    return "out_of_scope"


def partition_stores(stores: Iterable[Store], period: Period) -> StorePartition:
    groups: dict[str, list[Store]] = {
        "pre_existing": [],
        "new_in_period": [],
        "out_of_scope": [],
    }
    for store in stores:
        groups[classify_store(store, period)].append(store)
    return StorePartition(
        pre_existing=tuple(groups["pre_existing"]),
        new_in_period=tuple(groups["new_in_period"]),
        out_of_scope=tuple(groups["out_of_scope"]),
    )


def balance_as_of(
    store: Store, transactions: Iterable[Transaction], as_of: date
) -> Decimal:
    """
    Roll a store's balance forward to the start of ``as_of``.

    Returns ``initial_balance`` plus the net (income - expense) of the
    store's transactions dated strictly before ``as_of``. Transactions of
    other stores are ignored.
    """
    balance = store.initial_balance
    for tx in transactions:
        if tx.store_id == store.id and tx.date < as_of:
            balance += tx.signed_amount
    return balance


def build_capital_injections(stores: Iterable[Store]) -> tuple[CapitalInjection, ...]:
    """One virtual capital entry per store, dated on its opening day."""
    injections = []
    for store in stores:
        if store.initial_balance_date is None:
            raise MissingInitialBalanceError(store.id, store.name)
        injections.append(
            CapitalInjection(
                store_id=store.id,
                store_name=store.name,
                amount=store.initial_balance,
                date=store.initial_balance_date,
                company_id=store.company_id,
            )
        )
    injections.sort(key=lambda c: (c.date, c.store_id))
    return tuple(injections)


def _check_opening_dates(
    stores: Iterable[Store], by_store: dict[str, list[Transaction]]
) -> None:
    for store in stores:
        for tx in by_store.get(store.id, ()):
            if tx.date < store.initial_balance_date:
                raise ValidationError(
                    f"Transaction {tx.id} is dated {tx.date}, before the opening "
                    f"date {store.initial_balance_date} of store {store.id}."
                )


def consolidate(
    stores: Iterable[Store],
    transactions: Iterable[Transaction],
    period: Period,
) -> ConsolidatedView:
    """
    Consolidate the given stores over a period.

    Args:
        stores: The stores in scope (already resolved from a StoreScope).
        transactions: Ledger transactions; those of other stores are ignored.
        period: Reporting period.

    Returns:
        The ConsolidatedView: beginning balance of pre-existing stores,
        in-period real transactions, virtual capital entries of new stores
        and the per-store breakdown.

    Raises:
        MissingInitialBalanceError: a store has no opening date.
        ValidationError: a transaction predates its store's opening date.
    """
    partition = partition_stores(stores, period)
    in_scope_ids = {s.id for s in partition.in_scope}
    new_ids = {s.id for s in partition.new_in_period}

    by_store: dict[str, list[Transaction]] = {}
    for tx in transactions:
        if tx.store_id in in_scope_ids:
            by_store.setdefault(tx.store_id, []).append(tx)
    _check_opening_dates(partition.in_scope, by_store)

    breakdown: list[StoreBalance] = []
    in_period: list[Transaction] = []
    beginning_balance = ZERO

    for store in partition.in_scope:
        store_txs = by_store.get(store.id, [])
        is_new = store.id in new_ids

        opening = ZERO if is_new else balance_as_of(store, store_txs, period.start)
        capital = store.initial_balance if is_new else ZERO

        current = [tx for tx in store_txs if period.contains(tx.date)]
        net = sum((tx.signed_amount for tx in current), ZERO)
        in_period.extend(current)
        beginning_balance += opening

        breakdown.append(
            StoreBalance(
                store_id=store.id,
                store_name=store.name,
                classification="new_in_period" if is_new else "pre_existing",
                beginning_balance=opening,
                capital_injection=capital,
                net_cash_flow=net,
                ending_balance=opening + capital + net,
                transaction_count=len(current),
            )
        )

    in_period.sort(key=lambda tx: (tx.date, tx.id))
    capital_injections = build_capital_injections(partition.new_in_period)

    logger.debug(
        "Consolidated %d stores for %s..%s (%d pre-existing, %d new, %d out of scope)",
        len(partition.in_scope),
        period.start,
        period.end,
        len(partition.pre_existing),
        len(partition.new_in_period),
        len(partition.out_of_scope),
    )

    return ConsolidatedView(
        period=period,
        beginning_balance=beginning_balance,
        transactions=tuple(in_period),
        capital_injections=capital_injections,
        store_breakdown=tuple(breakdown),
        partition=partition,
    )
