# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cash-flow activity aggregation for StoreBooks.

The aggregator turns a list of ledger entries (real transactions and
virtual capital entries, already filtered by date and store) into the three
sections of a cash-flow statement: operating, investing and financing.

For each activity:
- income entries are inflows, expense entries are outflows,
- entries are grouped by category, each group yielding a
  ``CategoryAmount`` (category, display label, amount, count),
- ``subtotal_inflow``, ``subtotal_outflow`` and
  ``net_cash_flow = subtotal_inflow - subtotal_outflow`` are computed.

Virtual "new store capital investment" entries are grouped on their own
(``is_virtual=True``) and listed first among the financing inflows. They
count toward the financing subtotal and the total inflow, and never appear
on the outflow side.

An entry whose activity cannot be resolved is treated as operating: no
entry is ever dropped.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .classifier import category_label, lookup_builtin
from .models import (
    CASH_FLOW_ACTIVITIES,
    NEW_STORE_CAPITAL_LABEL,
    ZERO,
    LedgerEntry,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryAmount:
    """Total of one category within an activity section."""

    category: str
    label: str
    amount: Decimal
    count: int = 0
    is_virtual: bool = False


@dataclass(frozen=True)
class ActivitySection:
    """
    One activity block of the cash-flow statement.

    Attributes
    ----------
    activity :
        "operating", "investing" or "financing".
    inflows / outflows :
        Per-category totals of income / expense entries. Amounts are always
        non-negative.
    subtotal_inflow / subtotal_outflow :
        Sums of the inflow / outflow amounts.
    net_cash_flow :
        ``subtotal_inflow - subtotal_outflow``.
    """

    activity: str
    inflows: tuple[CategoryAmount, ...]
    outflows: tuple[CategoryAmount, ...]
    subtotal_inflow: Decimal
    subtotal_outflow: Decimal
    net_cash_flow: Decimal

    @property
    def virtual_inflow(self) -> Decimal:
        """Part of the inflow coming from virtual capital entries."""
        return sum((i.amount for i in self.inflows if i.is_virtual), ZERO)


@dataclass(frozen=True)
class CashFlowSummary:
    """Totals of a cash-flow statement."""

    beginning_balance: Decimal
    total_inflow: Decimal
    total_outflow: Decimal
    net_increase: Decimal
    ending_balance: Decimal


def resolve_activity(entry: LedgerEntry) -> str:
    """
    Return the cash-flow activity of an entry.

    The stored activity wins; unmigrated entries without one fall back to
    the built-in mapping of their category, then to "operating".
    """
    activity = entry.cash_flow_activity
    if activity in CASH_FLOW_ACTIVITIES:
        return activity
    builtin = lookup_builtin(entry.type, entry.category)
    if builtin is not None:
        return builtin.cash_flow_activity
    return "operating"


def _group(entries: list[LedgerEntry]) -> tuple[CategoryAmount, ...]:
    totals: dict[tuple[bool, str], Decimal] = {}
    counts: dict[tuple[bool, str], int] = {}
    for entry in entries:
        key = (entry.is_virtual, entry.category)
        totals[key] = totals.get(key, ZERO) + entry.amount
        counts[key] = counts.get(key, 0) + 1

    items = []
    for (is_virtual, category), amount in totals.items():
        label = (
            NEW_STORE_CAPITAL_LABEL
            if is_virtual
            else category_label(entries[0].type, category)
        )
        items.append(
            CategoryAmount(
                category=category,
                label=label,
                amount=amount,
                count=counts[(is_virtual, category)],
                is_virtual=is_virtual,
            )
        )

    # Virtual capital first, then largest amounts; category breaks ties.
    items.sort(key=lambda i: (not i.is_virtual, -i.amount, i.category))
    return tuple(items)


def _section(activity: str, entries: list[LedgerEntry]) -> ActivitySection:
    income = [e for e in entries if e.type == "income"]
    expense = [e for e in entries if e.type == "expense"]
    inflows = _group(income)
    outflows = _group(expense)
    subtotal_inflow = sum((i.amount for i in inflows), ZERO)
    subtotal_outflow = sum((o.amount for o in outflows), ZERO)
    return ActivitySection(
        activity=activity,
        inflows=inflows,
        outflows=outflows,
        subtotal_inflow=subtotal_inflow,
        subtotal_outflow=subtotal_outflow,
        net_cash_flow=subtotal_inflow - subtotal_outflow,
    )


def aggregate_activities(entries: Iterable[LedgerEntry]) -> dict[str, ActivitySection]:
    """
    Aggregate entries into the three cash-flow activity sections.

    Args:
        entries: Real transactions and virtual capital entries. They are
            expected to be already filtered to the reporting period and the
            selected stores.

    Returns:
        A dict with exactly the keys "operating", "investing" and
        "financing" (in that order), each mapped to its ActivitySection.
        Empty activities yield zero subtotals and no items.
    """
    by_activity: dict[str, list[LedgerEntry]] = {a: [] for a in CASH_FLOW_ACTIVITIES}
    unresolved = 0
    for entry in entries:
        if entry.cash_flow_activity not in CASH_FLOW_ACTIVITIES:
            unresolved += 1
        by_activity[resolve_activity(entry)].append(entry)

    if unresolved:
        logger.debug("%d entries had no stored cash flow activity", unresolved)

    return {
        activity: _section(activity, by_activity[activity])
        for activity in CASH_FLOW_ACTIVITIES
    }


def summarize(
    sections: Mapping[str, ActivitySection],
    beginning_balance: Optional[Decimal] = None,
) -> CashFlowSummary:
    """
    Build the statement summary from the activity sections.

    ``net_increase`` is the sum of the three activity nets (the financing
    net already includes virtual capital) and
    ``ending_balance = beginning_balance + net_increase``.
    """
    beginning = beginning_balance if beginning_balance is not None else ZERO
    total_inflow = sum((s.subtotal_inflow for s in sections.values()), ZERO)
    total_outflow = sum((s.subtotal_outflow for s in sections.values()), ZERO)
    net_increase = sum((s.net_cash_flow for s in sections.values()), ZERO)
    return CashFlowSummary(
        beginning_balance=beginning,
        total_inflow=total_inflow,
        total_outflow=total_outflow,
        net_increase=net_increase,
        ending_balance=beginning + net_increase,
    )
