# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Profit-and-loss aggregation for StoreBooks.

Only entries with ``include_in_profit_loss`` set are considered; virtual
capital entries never are. Entries are bucketed by transaction nature:

    nature          income                  expense
    --------------  ----------------------  -----------------------
    operating       revenue                 cost
    non_operating   non_operating_income    non_operating_expense
    income_tax      (not bucketed)          (not bucketed)

A missing nature counts as operating.

Derived lines, in this order:

    operating_profit = revenue - cost
    total_profit     = operating_profit + non_operating_income
                       - non_operating_expense
    net_profit       = total_profit - income_tax

Income tax is reported as a fixed 0.00 line until tax computation is
supported; income-tax transactions are therefore left out of every bucket.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from .models import CENT, ZERO, LedgerEntry

logger = logging.getLogger(__name__)

BUCKETS: dict[tuple[str, str], str] = {
    ("income", "operating"): "revenue",
    ("expense", "operating"): "cost",
    ("income", "non_operating"): "non_operating_income",
    ("expense", "non_operating"): "non_operating_expense",
}


@dataclass(frozen=True)
class LineItem:
    """One category line of a P&L section."""

    category: str
    amount: Decimal
    count: int = 0
    percentage: Decimal = ZERO


@dataclass(frozen=True)
class PLSection:
    total: Decimal
    items: tuple[LineItem, ...] = ()


@dataclass(frozen=True)
class ProfitLossStatement:
    """
    Profit-and-loss statement of a period and store scope.

    ``period`` and ``store_ids`` are filled in by the statement builder and
    left empty when the aggregator is called directly.
    """

    revenue: PLSection
    cost: PLSection
    non_operating_income: PLSection
    non_operating_expense: PLSection
    operating_profit: Decimal
    total_profit: Decimal
    income_tax: Decimal
    net_profit: Decimal
    period: object = None
    store_ids: tuple[str, ...] = ()

    def sections(self) -> dict[str, PLSection]:
        return {
            "revenue": self.revenue,
            "cost": self.cost,
            "non_operating_income": self.non_operating_income,
            "non_operating_expense": self.non_operating_expense,
        }


def resolve_nature(entry: LedgerEntry) -> str:
    """Nature used for bucketing: the stored nature, operating when unset."""
    return entry.transaction_nature or "operating"


def _build_section(entries: list[LedgerEntry]) -> PLSection:
    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for entry in entries:
        totals[entry.category] = totals.get(entry.category, ZERO) + entry.amount
        counts[entry.category] = counts.get(entry.category, 0) + 1

    total = sum(totals.values(), ZERO)
    items = []
    for category in sorted(totals):
        amount = totals[category]
        percentage = (amount * 100 / total).quantize(CENT) if total else ZERO
        items.append(
            LineItem(
                category=category,
                amount=amount,
                count=counts[category],
                percentage=percentage,
            )
        )
    return PLSection(total=total, items=tuple(items))


def aggregate_profit_loss(entries: Iterable[LedgerEntry]) -> ProfitLossStatement:
    """
    Aggregate entries into a profit-and-loss statement.

    Args:
        entries: Ledger entries already filtered to the period and stores.
            Excluded and virtual entries are skipped here.

    Returns:
        The ProfitLossStatement (without period/store metadata).
    """
    buckets: dict[str, list[LedgerEntry]] = {name: [] for name in BUCKETS.values()}
    skipped_tax = 0
    for entry in entries:
        if entry.is_virtual or entry.include_in_profit_loss is False:
            continue
        bucket = BUCKETS.get((entry.type, resolve_nature(entry)))
        if bucket is None:
            skipped_tax += 1
            continue
        buckets[bucket].append(entry)

    if skipped_tax:
        logger.info(
            "%d income tax transactions left out of the P&L (income tax is "
            "reported as 0.00)",
            skipped_tax,
        )

    revenue = _build_section(buckets["revenue"])
    cost = _build_section(buckets["cost"])
    non_op_income = _build_section(buckets["non_operating_income"])
    non_op_expense = _build_section(buckets["non_operating_expense"])

    income_tax = ZERO
    operating_profit = revenue.total - cost.total
    total_profit = operating_profit + non_op_income.total - non_op_expense.total
    net_profit = total_profit - income_tax

    return ProfitLossStatement(
        revenue=revenue,
        cost=cost,
        non_operating_income=non_op_income,
        non_operating_expense=non_op_expense,
        operating_profit=operating_profit,
        total_profit=total_profit,
        income_tax=income_tax,
        net_profit=net_profit,
    )
