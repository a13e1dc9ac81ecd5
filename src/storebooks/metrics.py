# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Overview metrics for StoreBooks.

Headline figures (total income, operating income, investing outflow...) are
defined declaratively in ``METRIC_RULES``: each rule is a filter on type,
nature, activity and the include-in-P&L flag. ``compute_metrics()`` walks
the transactions once and feeds every matching rule. Adding a metric only
takes a new line in the table.

Unset nature and activity resolve exactly as in the statements: an unset
activity falls back to the built-in mapping of the category.
Virtual capital entries are not transactions and are ignored here.

Derived figures (operating profit, total profit, net profit) are computed
from the base metrics by ``derive_profit_loss()``. Unlike the P&L
statement, the overview reports the income tax actually recorded.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import pandas as pd

from .cash_flow import resolve_activity
from .models import ZERO, LedgerEntry, Store
from .profit_loss import resolve_nature


@dataclass(frozen=True)
class MetricRule:
    """Filter defining a metric; None means "any"."""

    type: Optional[str] = None
    nature: Optional[str] = None
    activity: Optional[str] = None
    profit_loss_only: bool = False

    def matches(self, entry: LedgerEntry) -> bool:
        if self.type is not None and entry.type != self.type:
            return False
        if self.nature is not None:
            if resolve_nature(entry) != self.nature:
                return False
        if self.activity is not None:
            if resolve_activity(entry) != self.activity:
                return False
        if self.profit_loss_only and entry.include_in_profit_loss is False:
            return False
        return True


METRIC_RULES: dict[str, MetricRule] = {
    "total_income": MetricRule(type="income"),
    "total_expense": MetricRule(type="expense"),
    # Profit and loss
    "operating_income": MetricRule("income", "operating", profit_loss_only=True),
    "operating_expense": MetricRule("expense", "operating", profit_loss_only=True),
    "non_operating_income": MetricRule(
        "income", "non_operating", profit_loss_only=True
    ),
    "non_operating_expense": MetricRule(
        "expense", "non_operating", profit_loss_only=True
    ),
    "income_tax": MetricRule("expense", "income_tax", profit_loss_only=True),
    # Cash flow
    "operating_cash_inflow": MetricRule("income", activity="operating"),
    "operating_cash_outflow": MetricRule("expense", activity="operating"),
    "investing_cash_inflow": MetricRule("income", activity="investing"),
    "investing_cash_outflow": MetricRule("expense", activity="investing"),
    "financing_cash_inflow": MetricRule("income", activity="financing"),
    "financing_cash_outflow": MetricRule("expense", activity="financing"),
}


def compute_metrics(
    entries: Iterable[LedgerEntry],
    rules: Optional[Mapping[str, MetricRule]] = None,
) -> dict[str, Decimal]:
    """Sum the amounts matching each rule, in a single pass."""
    rules = METRIC_RULES if rules is None else rules
    result = {key: ZERO for key in rules}
    for entry in entries:
        if entry.is_virtual:
            continue
        for key, rule in rules.items():
            if rule.matches(entry):
                result[key] += entry.amount
    return result


def derive_profit_loss(metrics: Mapping[str, Decimal]) -> dict[str, Decimal]:
    """Profit figures derived from the base metrics."""
    operating_profit = metrics["operating_income"] - metrics["operating_expense"]
    non_operating_net = metrics["non_operating_income"] - metrics["non_operating_expense"]
    total_profit = operating_profit + non_operating_net
    return {
        "operating_profit": operating_profit,
        "non_operating_net": non_operating_net,
        "total_profit": total_profit,
        "net_profit": total_profit - metrics["income_tax"],
    }


def metrics_by_store(
    entries: Iterable[LedgerEntry], stores: Iterable[Store]
) -> pd.DataFrame:
    """
    One row of metrics per store, for side-by-side comparison.

    Columns: store_id, store_name, every key of METRIC_RULES, then the
    derived profit figures. Stores without transactions get zero rows.
    """
    by_store: dict[str, list[LedgerEntry]] = {}
    for entry in entries:
        by_store.setdefault(entry.store_id, []).append(entry)

    rows = []
    for store in stores:
        metrics = compute_metrics(by_store.get(store.id, []))
        metrics.update(derive_profit_loss(metrics))
        row = {"store_id": store.id, "store_name": store.name}
        row.update({k: round(float(v), 2) for k, v in metrics.items()})
        rows.append(row)

    columns = [
        "store_id",
        "store_name",
        *METRIC_RULES,
        "operating_profit",
        "non_operating_net",
        "total_profit",
        "net_profit",
    ]
    return pd.DataFrame(rows, columns=columns)
