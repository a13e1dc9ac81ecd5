# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for StoreBooks.

This module defines the Period value object (an inclusive [start, end]
range of calendar dates) and helpers to derive reporting periods (fiscal
year, YTD, MTD, last month, last fiscal year, calendar month/quarter/year)
from the current fiscal year and CLI arguments.
"""

from calendar import monthrange
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from .config import FiscalYear
from .errors import ValidationError


@dataclass(frozen=True)
class Period:
    """Represents a reporting period with a human-readable label.

    Both bounds are inclusive and ``start <= end`` always holds.
    """

    start: date
    end: date
    label: str = ""

    def __post_init__(self) -> None:
        if self.start is None or self.end is None:
            raise ValidationError("A period needs both a start and an end date.")
        if self.end < self.start:
            raise ValidationError(
                f"Period end date {self.end} cannot be before start date {self.start}."
            )

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def key(self) -> tuple[date, date]:
        """Hashable identity of the period (the label is presentation only)."""
        return (self.start, self.end)


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def period_fy(fy: FiscalYear) -> Period:
    """Full current fiscal year."""
    return Period(
        start=fy.start_date,
        end=fy.end_date,
        label=f"Fiscal year {fy.start_date.year}",
    )


def period_ytd(fy: FiscalYear) -> Period:
    """Year-to-date within the fiscal year."""
    today = _today()
    start = fy.start_date
    end = min(max(today, fy.start_date), fy.end_date)
    return Period(start=start, end=end, label="Year to date")


def period_mtd(fy: FiscalYear) -> Period:
    """Month-to-date within the fiscal year."""
    today = _today()

    # Outside the fiscal year we fall back to the whole fiscal year.
    if today < fy.start_date or today > fy.end_date:
        return period_fy(fy)

    start = today.replace(day=1)
    return Period(start=start, end=today, label="Month to date")


def period_last_month(fy: FiscalYear) -> Period:
    """Full previous calendar month, clamped to the fiscal year if needed."""
    today = _today()

    if today.month == 1:
        year = today.year - 1
        month = 12
    else:
        year = today.year
        month = today.month - 1

    start, end = _month_bounds(year, month)

    # Clamp to fiscal year window
    if end < fy.start_date or start > fy.end_date:
        return period_fy(fy)

    start_clamped = max(start, fy.start_date)
    end_clamped = min(end, fy.end_date)

    return Period(start=start_clamped, end=end_clamped, label="Last month")


def period_last_fy(fy: FiscalYear) -> Period:
    """
    Previous fiscal year.

    For now we assume a simple calendar-like fiscal year for last_fy:
    from 1 Jan of previous year to 31 Dec of previous year.
    """
    prev_year = fy.start_date.year - 1
    return Period(
        start=date(prev_year, 1, 1),
        end=date(prev_year, 12, 31),
        label=f"Previous fiscal year ({prev_year})",
    )


def period_month(year: int, month: int) -> Period:
    """Calendar month."""
    start, end = _month_bounds(year, month)
    return Period(start=start, end=end, label=f"{year}-{month:02d}")


def period_quarter(year: int, quarter: int) -> Period:
    """Calendar quarter (1-4)."""
    if quarter not in (1, 2, 3, 4):
        raise ValidationError(f"Invalid quarter: {quarter!r}")
    first_month = (quarter - 1) * 3 + 1
    start, _ = _month_bounds(year, first_month)
    _, end = _month_bounds(year, first_month + 2)
    return Period(start=start, end=end, label=f"{year} Q{quarter}")


def period_year(year: int) -> Period:
    """Calendar year."""
    return Period(start=date(year, 1, 1), end=date(year, 12, 31), label=str(year))


def split_by_month(period: Period) -> list[Period]:
    """
    Split a period into consecutive calendar-month sub-periods.

    The first and last sub-periods are clamped to the period bounds, so
    ``2024-01-15 → 2024-03-10`` yields three periods starting on
    2024-01-15, 2024-02-01 and 2024-03-01. Each label is ``YYYY-MM``.
    """
    months: list[Period] = []
    year, month = period.start.year, period.start.month
    while date(year, month, 1) <= period.end:
        start, end = _month_bounds(year, month)
        months.append(
            Period(
                start=max(start, period.start),
                end=min(end, period.end),
                label=f"{year}-{month:02d}",
            )
        )
        if month == 12:
            year, month = year + 1, 1
        else:
            month += 1
    return months


def determine_period_from_args(
    args,
    fy: FiscalYear,
) -> Period:
    """
    Determine the reporting period to use based on CLI args and the fiscal year.

    Priority (highest to lowest):

        1. args.period (fy, ytd, mtd, last-month, last-fy)
        2. args.from_date / args.to_date (custom period)
        3. fiscal year by default
    """
    # 1) Predefined period wins over everything else
    if getattr(args, "period", None):
        p = args.period
        if p == "fy":
            return period_fy(fy)
        if p == "ytd":
            return period_ytd(fy)
        if p == "mtd":
            return period_mtd(fy)
        if p == "last-month":
            return period_last_month(fy)
        if p == "last-fy":
            return period_last_fy(fy)
        raise ValueError(f"Unknown period: {p!r}")

    # 2) Custom from/to dates
    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        start = date.fromisoformat(from_raw) if from_raw else fy.start_date
        end = date.fromisoformat(to_raw) if to_raw else fy.end_date

        if end < start:
            raise ValueError("Custom period end date cannot be before start date.")

        label = f"Custom period ({start} → {end})"
        return Period(start=start, end=end, label=label)

    # 3) Default: full fiscal year
    return period_fy(fy)


def filter_transactions_by_period(entries: Iterable, period: Period) -> list:
    """
    Keep only the entries dated within the period (bounds inclusive).

    Works for any record exposing a ``date`` attribute (transactions and
    virtual capital entries alike).
    """
    return [e for e in entries if period.start <= e.date <= period.end]
