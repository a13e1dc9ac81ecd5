# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for StoreBooks.

This module wires together the building blocks of StoreBooks:

- application configuration (company, fiscal year, data files, display),
- CSV readers producing a ledger snapshot and the category registry,
- the statement builder (cash flow, profit and loss, transaction ledger),
- monthly series and per-store metrics,
- CSV export.

The CLI is intentionally thin: it does not implement any financial logic
itself. It resolves the period and store scope from the arguments, asks the
engine for the statement and renders it.


High-level pipeline
-------------------

1) Load the TOML configuration (``storebooks_config.toml`` by default, or
   ``--config PATH``) using ``load_app_config()``.

2) Configure logging (``[logging].level`` or ``--log-level``). Warnings
   such as unresolved categories are routed to the log.

3) Read the transactions and stores CSV files into a ``LedgerSnapshot``
   scoped to ``[company].id``.

4) Determine the reporting period (``--period`` or ``--from-date`` /
   ``--to-date``, fiscal year by default) and the store scope
   (``--stores``, all stores by default).

5) Build the requested statement and render it as a console table and/or
   a CSV file depending on the display mode.


Commands
--------

- ``cash-flow`` (default):
    Consolidated cash-flow statement with the per-store breakdown.
- ``profit-loss``:
    Profit-and-loss statement.
- ``ledger``:
    Transaction ledger, virtual capital entries included, with facet
    filters (``--type``, ``--category``, ``--activity``, ``--nature``,
    ``--description-contains``, ``--no-virtual``) and a sort
    (``--sort-by``, ``--sort-direction``).
- ``monthly``:
    Month-by-month cash-flow and P&L series over the period.
- ``stores``:
    Store comparison: opening position and overview metrics per store.
- ``categories``:
    Category registry with the number of transactions using each category.


Display modes and output
------------------------

``display.mode`` in the configuration ("table", "csv" or "both") can be
overridden with ``--display-mode``. CSV files are written into
``[export].output_dir`` or ``--output DIR`` and named
``<statement>_<start>_<end>.csv``.


Examples
--------

    storebooks cash-flow
    storebooks --period ytd --stores s1,s2 profit-loss
    storebooks --from-date 2024-01-01 --to-date 2024-03-31 \\
        --display-mode both ledger --activity financing --sort-by amount
    storebooks --period fy monthly
"""

import argparse
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import DISPLAY_MODES, AppConfig, load_app_config
from .errors import StoreBooksError
from .export import (
    ExportTable,
    export_filename,
    flatten_cash_flow,
    flatten_ledger,
    flatten_profit_loss,
    write_csv,
)
from .filters import SORT_FIELDS, SortSpec, TransactionFilter
from .io import load_registry, load_snapshot
from .metrics import metrics_by_store
from .models import CASH_FLOW_ACTIVITIES, TRANSACTION_NATURES, TRANSACTION_TYPES
from .multi_periods import compute_monthly
from .periods import Period, determine_period_from_args, filter_transactions_by_period
from .statements import StatementBuilder, StoreScope

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "WARNING") -> None:
    """Configure root logging once and route warnings to it."""
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        raise SystemExit(f"Invalid log level: {level!r}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric)
    logging.captureWarnings(True)


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="storebooks",
        description=(
            "StoreBooks - Multi-store financial statements engine. "
            "Reads store transactions and renders consolidated cash-flow, "
            "profit-and-loss and ledger statements."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of storebooks and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. "
            "If omitted, 'storebooks_config.toml' in the current directory is used."
        ),
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        help="Override the logging level from config (DEBUG, INFO, WARNING...).",
    )

    # Period selection
    ap.add_argument(
        "--period",
        choices=["fy", "ytd", "mtd", "last-month", "last-fy"],
        help=(
            "Predefined reporting period. "
            "If not provided, the full fiscal year from config is used."
        ),
    )
    ap.add_argument(
        "--from-date",
        dest="from_date",
        help=(
            "Custom period start date (YYYY-MM-DD). If provided without "
            "--to-date, the fiscal year end_date from config is used."
        ),
    )
    ap.add_argument(
        "--to-date",
        dest="to_date",
        help=(
            "Custom period end date (YYYY-MM-DD). If provided without "
            "--from-date, the fiscal year start_date from config is used."
        ),
    )

    # Store scope
    ap.add_argument(
        "--stores",
        dest="stores",
        help="Comma-separated store ids to include. All stores by default.",
    )

    # Display options
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=list(DISPLAY_MODES),
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help=(
            "Output directory for CSV files. "
            "If omitted, [export].output_dir from config is used."
        ),
    )

    subparsers = ap.add_subparsers(
        dest="command",
        metavar="command",
        help="Statement to render (default: cash-flow).",
    )
    subparsers.add_parser("cash-flow", help="Consolidated cash-flow statement.")
    subparsers.add_parser("profit-loss", help="Profit-and-loss statement.")

    ledger = subparsers.add_parser(
        "ledger", help="Filtered and sorted transaction ledger."
    )
    ledger.add_argument(
        "--type",
        dest="types",
        help=f"Comma-separated types ({', '.join(TRANSACTION_TYPES)}).",
    )
    ledger.add_argument(
        "--category", dest="categories", help="Comma-separated category names."
    )
    ledger.add_argument(
        "--activity",
        dest="activities",
        help=f"Comma-separated activities ({', '.join(CASH_FLOW_ACTIVITIES)}).",
    )
    ledger.add_argument(
        "--nature",
        dest="natures",
        help=(
            "Comma-separated natures "
            f"({', '.join(TRANSACTION_NATURES)}, not_applicable)."
        ),
    )
    ledger.add_argument(
        "--description-contains",
        dest="description_contains",
        help="Keep entries whose description contains this text.",
    )
    ledger.add_argument(
        "--no-virtual",
        dest="include_virtual",
        action="store_false",
        help="Leave out the virtual new store capital entries.",
    )
    ledger.add_argument(
        "--sort-by",
        dest="sort_by",
        choices=list(SORT_FIELDS),
        default="date",
        help="Sort field (default: date).",
    )
    ledger.add_argument(
        "--sort-direction",
        dest="sort_direction",
        choices=["asc", "desc"],
        default="asc",
        help="Sort direction (default: asc).",
    )

    subparsers.add_parser("monthly", help="Month-by-month cash-flow and P&L.")
    subparsers.add_parser("stores", help="Per-store opening position and metrics.")
    subparsers.add_parser(
        "categories", help="Category registry with usage counts."
    )
    return ap


def _split(value: Optional[str]) -> tuple[str, ...]:
    """Parse a comma-separated CLI list, ignoring blanks."""
    if not value:
        return ()
    return tuple(v.strip() for v in value.split(",") if v.strip())


def _scope_from_args(args: argparse.Namespace) -> StoreScope:
    store_ids = _split(getattr(args, "stores", None))
    if not store_ids:
        return StoreScope.all_stores()
    return StoreScope.subset(store_ids)


def _table_frame(table: ExportTable) -> pd.DataFrame:
    """Console view of an export table: body rows then summary rows."""
    rows = list(table.rows)
    if table.footer:
        rows.append([""] * len(table.header))
        rows.extend(table.footer)
    return pd.DataFrame(rows, columns=table.header)


def _render(
    name: str,
    title: str,
    frame: pd.DataFrame,
    table: Optional[ExportTable],
    period: Period,
    display_mode: str,
    output_dir: Path,
) -> None:
    """Print a result and/or write it as CSV, depending on the display mode."""
    if display_mode in {"table", "both"}:
        print()
        print(f"=== {title} ===")
        if frame.empty:
            print("(no data)")
        else:
            print(frame.to_string(index=False))

    if display_mode in {"csv", "both"}:
        path = output_dir / export_filename(name, period)
        if table is not None:
            write_csv(table, path)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            frame.to_csv(path, index=False, encoding="utf-8-sig")
        print(f"Wrote {path} ({len(frame)} rows)")


def _handle_cash_flow(builder, period, scope, render) -> None:
    statement = builder.cash_flow(period, scope)
    table = flatten_cash_flow(statement)
    render("cash_flow", "Cash flow statement", _table_frame(table), table)

    breakdown = pd.DataFrame(
        [
            {
                "store_id": s.store_id,
                "store_name": s.store_name,
                "classification": s.classification,
                "beginning_balance": float(s.beginning_balance),
                "capital_injection": float(s.capital_injection),
                "net_cash_flow": float(s.net_cash_flow),
                "ending_balance": float(s.ending_balance),
            }
            for s in statement.store_breakdown
        ]
    )
    render("cash_flow_by_store", "Store breakdown", breakdown, None)


def _handle_profit_loss(builder, period, scope, render) -> None:
    statement = builder.profit_loss(period, scope)
    table = flatten_profit_loss(statement)
    render("profit_loss", "Profit and loss statement", _table_frame(table), table)


def _handle_ledger(args, builder, period, scope, render) -> None:
    filters = TransactionFilter(
        types=_split(args.types),
        categories=_split(args.categories),
        activities=_split(args.activities),
        natures=_split(args.natures),
        description_contains=args.description_contains,
    )
    sort = SortSpec(field=args.sort_by, direction=args.sort_direction)
    ledger = builder.ledger(
        period, scope, filters=filters, sort=sort, include_virtual=args.include_virtual
    )
    table = flatten_ledger(ledger)
    render("transactions", "Transaction ledger", _table_frame(table), table)


def _handle_monthly(builder, period, scope, render) -> None:
    series = compute_monthly(builder, period, scope)
    render("cash_flow_monthly", "Monthly cash flow", series.cash_flow, None)
    render("profit_loss_monthly", "Monthly profit and loss", series.profit_loss, None)


def _handle_stores(builder, period, scope, render) -> None:
    snapshot = builder.snapshot
    stores = scope.resolve(snapshot.stores)
    store_rows = pd.DataFrame(
        [
            {
                "store_id": s.id,
                "name": s.name,
                "status": s.status,
                "initial_balance_date": s.initial_balance_date,
                "initial_balance": float(s.initial_balance),
            }
            for s in stores
        ]
    )
    render("stores", "Stores", store_rows, None)

    entries = filter_transactions_by_period(snapshot.transactions, period)
    render("store_metrics", "Store metrics", metrics_by_store(entries, stores), None)


def _handle_categories(config: AppConfig, builder, render) -> None:
    registry = load_registry(config)
    transactions = builder.snapshot.transactions
    frame = registry.to_frame()
    frame["usage"] = [registry.usage_count(cid, transactions) for cid in frame["id"]]
    render("categories", "Categories", frame, None)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the StoreBooks CLI.

    Parses command-line arguments, loads the configuration and the ledger
    snapshot, builds the requested statement for the selected period and
    store scope, and renders it as console tables and/or CSV files.

    Any StoreBooks error (invalid data, unknown store, store without an
    opening balance...) ends the program with a one-line message.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"storebooks version {__version__}")
        return

    # 1) Load application configuration
    try:
        config = load_app_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(f"Error: {exc}") from exc

    # 2) Logging
    configure_logging(args.log_level or config.log_level)

    command = args.command or "cash-flow"
    display_mode = args.display_mode or config.display_mode
    output_dir = Path(args.output_dir) if args.output_dir else config.output_dir

    try:
        # 3) Ledger snapshot
        snapshot = load_snapshot(config)
        builder = StatementBuilder(snapshot)
        logger.info(
            "Loaded %d transactions and %d stores for company %s",
            len(snapshot.transactions),
            len(snapshot.stores),
            snapshot.company_id,
        )

        # 4) Period and store scope
        try:
            period = determine_period_from_args(args, config.fiscal_year)
        except ValueError as exc:
            parser.error(str(exc))
        scope = _scope_from_args(args)

        print(f"Company: {config.company_name}")
        print(
            f"Applied period: {period.label} "
            f"({period.start.isoformat()} → {period.end.isoformat()})"
        )

        def render(name, title, frame, table):
            _render(name, title, frame, table, period, display_mode, output_dir)

        # 5) Command dispatch
        if command == "cash-flow":
            _handle_cash_flow(builder, period, scope, render)
        elif command == "profit-loss":
            _handle_profit_loss(builder, period, scope, render)
        elif command == "ledger":
            _handle_ledger(args, builder, period, scope, render)
        elif command == "monthly":
            _handle_monthly(builder, period, scope, render)
        elif command == "stores":
            _handle_stores(builder, period, scope, render)
        elif command == "categories":
            _handle_categories(config, builder, render)
    except (StoreBooksError, FileNotFoundError) as exc:
        raise SystemExit(f"Error: {exc}") from exc


if __name__ == "__main__":
    main()
