# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
CSV export of statements and ledgers.

Every export is first flattened into an ``ExportTable``:

    header : visible column names
    rows   : body lines, every cell already formatted as text
    footer : summary lines written after a blank line

and then written by ``write_csv()`` as UTF-8 with a BOM (so spreadsheet
tools detect the encoding), comma-delimited, in this layout:

    <header>
    <rows...>
    <blank line>
    <footer...>

Amounts are always formatted with 2 decimals. Flows carry an explicit
"+" or "-" prefix; the sign is never encoded in a negative number.
Virtual capital entries are exported with the ledger and flagged in the
"Entry" column.

File names follow ``<statement-name>_<start>_<end>.csv``.
"""

import io
import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Union

import pandas as pd

from .cash_flow import ActivitySection, resolve_activity
from .classifier import category_label
from .filters import entry_nature
from .models import CENT, ZERO
from .periods import Period
from .profit_loss import PLSection, ProfitLossStatement
from .statements import CashFlowStatement, TransactionLedger

logger = logging.getLogger(__name__)

LEDGER_HEADER = [
    "Date",
    "Store",
    "Type",
    "Category",
    "Amount",
    "Activity",
    "Nature",
    "Description",
    "Entry",
]

ACTIVITY_TITLES = {
    "operating": "Cash flows from operating activities",
    "investing": "Cash flows from investing activities",
    "financing": "Cash flows from financing activities",
}


@dataclass(frozen=True)
class ExportTable:
    header: list[str]
    rows: list[list[str]] = field(default_factory=list)
    footer: list[list[str]] = field(default_factory=list)


def format_amount(value: Decimal) -> str:
    """Unsigned amount with 2 decimals, e.g. ``1234.50``."""
    return f"{Decimal(value).quantize(CENT):.2f}"


def format_signed(value: Decimal) -> str:
    """Amount with an explicit sign prefix: ``+12.00``, ``-3.50``."""
    value = Decimal(value).quantize(CENT)
    sign = "-" if value < ZERO else "+"
    return f"{sign}{abs(value):.2f}"


def _pad(cells: list[str], width: int) -> list[str]:
    return list(cells) + [""] * (width - len(cells))


def flatten_ledger(ledger: TransactionLedger) -> ExportTable:
    """Flatten a transaction ledger (virtual entries included) for export."""
    rows = []
    for e in ledger.entries:
        rows.append(
            [
                e.date.isoformat(),
                e.store_id,
                e.type,
                e.category,
                format_signed(e.signed_amount),
                resolve_activity(e),
                entry_nature(e),
                e.description or "",
                e.kind,
            ]
        )

    width = len(LEDGER_HEADER)
    footer = [
        _pad(["Total inflow", format_signed(ledger.total_inflow)], width),
        _pad(["Total outflow", format_signed(-ledger.total_outflow)], width),
        _pad(["Net cash flow", format_signed(ledger.net)], width),
        _pad(["Entries", str(len(ledger.entries))], width),
    ]
    return ExportTable(header=list(LEDGER_HEADER), rows=rows, footer=footer)


def _activity_rows(section: ActivitySection) -> list[list[str]]:
    rows = [[ACTIVITY_TITLES[section.activity], ""]]
    rows.append(["Cash inflows subtotal", format_amount(section.subtotal_inflow)])
    for item in section.inflows:
        rows.append([f"  {item.label}", format_amount(item.amount)])
    rows.append(["Cash outflows subtotal", format_amount(section.subtotal_outflow)])
    for item in section.outflows:
        rows.append([f"  {item.label}", format_amount(item.amount)])
    rows.append(["Net cash flow", format_signed(section.net_cash_flow)])
    return rows


def flatten_cash_flow(statement: CashFlowStatement) -> ExportTable:
    """Flatten a cash-flow statement: three activity blocks, then the summary."""
    rows: list[list[str]] = []
    for section in statement.sections().values():
        rows.extend(_activity_rows(section))

    period = statement.period
    summary = statement.summary
    footer = [
        [
            f"Beginning balance ({period.start.isoformat()})",
            format_amount(summary.beginning_balance),
        ],
        ["Total inflow", format_signed(summary.total_inflow)],
        ["Total outflow", format_signed(-summary.total_outflow)],
        ["Net increase", format_signed(summary.net_increase)],
        [
            f"Ending balance ({period.end.isoformat()})",
            format_amount(summary.ending_balance),
        ],
    ]
    return ExportTable(header=["Item", "Amount"], rows=rows, footer=footer)


def _pl_rows(title: str, type_: str, section: PLSection) -> list[list[str]]:
    rows = [[title, format_amount(section.total), ""]]
    for item in section.items:
        rows.append(
            [
                f"  {category_label(type_, item.category)}",
                format_amount(item.amount),
                f"{item.percentage:.2f}%",
            ]
        )
    return rows


def flatten_profit_loss(statement: ProfitLossStatement) -> ExportTable:
    """Flatten a P&L statement: the four buckets, then the profit lines."""
    rows: list[list[str]] = []
    rows.extend(_pl_rows("Revenue", "income", statement.revenue))
    rows.extend(_pl_rows("Cost", "expense", statement.cost))
    rows.extend(
        _pl_rows("Non-operating income", "income", statement.non_operating_income)
    )
    rows.extend(
        _pl_rows("Non-operating expense", "expense", statement.non_operating_expense)
    )
    footer = [
        ["Operating profit", format_signed(statement.operating_profit), ""],
        ["Total profit", format_signed(statement.total_profit), ""],
        ["Income tax", format_amount(statement.income_tax), ""],
        ["Net profit", format_signed(statement.net_profit), ""],
    ]
    return ExportTable(header=["Item", "Amount", "Share"], rows=rows, footer=footer)


def render_csv(table: ExportTable) -> str:
    """Render an ExportTable as CSV text (without the BOM)."""
    buffer = io.StringIO()
    body = pd.DataFrame(table.rows, columns=table.header, dtype=str)
    body.to_csv(buffer, index=False, lineterminator="\n")
    if table.footer:
        buffer.write("\n")
        footer = pd.DataFrame(table.footer, dtype=str)
        footer.to_csv(buffer, index=False, header=False, lineterminator="\n")
    return buffer.getvalue()


def write_csv(table: ExportTable, path: Union[str, "os.PathLike[str]"]) -> Path:
    """
    Write an ExportTable to ``path`` as UTF-8 with BOM.

    Parent directories are created if needed. Returns the written path.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8-sig", newline="") as fh:
        fh.write(render_csv(table))
    logger.info("Wrote %d rows to %s", len(table.rows), target)
    return target


def export_filename(name: str, period: Period) -> str:
    """File name of an export: ``<name>_<start>_<end>.csv``."""
    return f"{name}_{period.start.isoformat()}_{period.end.isoformat()}.csv"
