# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Month-by-month series of statements.

A reporting period is split into calendar months (see
``periods.split_by_month``) and a full consolidated statement is built for
each month. Since every month is consolidated on its own, the balances
chain naturally: a store opened in month n brings its capital in month n
and is a pre-existing store from month n+1 on, so the ending balance of
month n equals the beginning balance of month n+1.

Results are wide DataFrames with one row per month, ready for the CLI or a
chart:

- ``cash_flow_by_month()``:
      month, operating, investing, financing, capital_injection,
      net_increase, beginning_balance, ending_balance
- ``profit_loss_by_month()``:
      month, revenue, cost, operating_profit, non_operating_income,
      non_operating_expense, net_profit

Amounts are floats rounded to 2 decimals, as in every DataFrame output.
"""

from dataclasses import dataclass
from typing import Optional

import pandas as pd

from .periods import Period, split_by_month
from .statements import StatementBuilder, StoreScope

CASH_FLOW_COLUMNS = [
    "month",
    "operating",
    "investing",
    "financing",
    "capital_injection",
    "net_increase",
    "beginning_balance",
    "ending_balance",
]

PROFIT_LOSS_COLUMNS = [
    "month",
    "revenue",
    "cost",
    "operating_profit",
    "non_operating_income",
    "non_operating_expense",
    "net_profit",
]


@dataclass(frozen=True)
class MonthlySeries:
    """
    Monthly cash-flow and profit-and-loss series of one period.

    Attributes
    ----------
    cash_flow :
        One row per month, columns ``CASH_FLOW_COLUMNS``.
    profit_loss :
        One row per month, columns ``PROFIT_LOSS_COLUMNS``.
    """

    cash_flow: pd.DataFrame
    profit_loss: pd.DataFrame


def _amount(value) -> float:
    return round(float(value), 2)


def cash_flow_by_month(
    builder: StatementBuilder,
    period: Period,
    scope: Optional[StoreScope] = None,
) -> pd.DataFrame:
    """Consolidated cash-flow figures for each month of the period."""
    rows = []
    for month in split_by_month(period):
        statement = builder.cash_flow(month, scope)
        rows.append(
            {
                "month": month.label,
                "operating": _amount(statement.operating.net_cash_flow),
                "investing": _amount(statement.investing.net_cash_flow),
                "financing": _amount(statement.financing.net_cash_flow),
                "capital_injection": _amount(statement.financing.virtual_inflow),
                "net_increase": _amount(statement.summary.net_increase),
                "beginning_balance": _amount(statement.summary.beginning_balance),
                "ending_balance": _amount(statement.summary.ending_balance),
            }
        )
    return pd.DataFrame(rows, columns=CASH_FLOW_COLUMNS)


def profit_loss_by_month(
    builder: StatementBuilder,
    period: Period,
    scope: Optional[StoreScope] = None,
) -> pd.DataFrame:
    """Profit-and-loss figures for each month of the period."""
    rows = []
    for month in split_by_month(period):
        statement = builder.profit_loss(month, scope)
        rows.append(
            {
                "month": month.label,
                "revenue": _amount(statement.revenue.total),
                "cost": _amount(statement.cost.total),
                "operating_profit": _amount(statement.operating_profit),
                "non_operating_income": _amount(statement.non_operating_income.total),
                "non_operating_expense": _amount(statement.non_operating_expense.total),
                "net_profit": _amount(statement.net_profit),
            }
        )
    return pd.DataFrame(rows, columns=PROFIT_LOSS_COLUMNS)


def compute_monthly(
    builder: StatementBuilder,
    period: Period,
    scope: Optional[StoreScope] = None,
) -> MonthlySeries:
    """Compute both monthly series in one call."""
    return MonthlySeries(
        cash_flow=cash_flow_by_month(builder, period, scope),
        profit_loss=profit_loss_by_month(builder, period, scope),
    )
