# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
StoreBooks
----------

A Python financial statements engine for small multi-store businesses
(guesthouses, shops, franchises). Each store records simple income and
expense transactions; StoreBooks turns them into consolidated statements.

Main capabilities:
- category registry with rename / reclassify / merge cascading to
  historical transactions,
- transaction classifier (cash-flow activity, P&L nature) with a built-in
  fallback mapping,
- consolidated cash-flow statement across stores opened on different
  dates, with virtual "new store capital investment" entries,
- profit-and-loss statement,
- filtered and sorted transaction ledger,
- month-by-month series and per-store overview metrics,
- CSV export (UTF-8 with BOM) and a command-line interface.

The engine is pure: statements are computed from an immutable ledger
snapshot, a period and a store scope, and can be memoized safely.


Version: 0.1.0

Usage:
    storebooks --help
"""

__all__ = [
    "categories",
    "classifier",
    "consolidation",
    "statements",
    "export",
    "io",
]

__version__ = "0.1.0"
