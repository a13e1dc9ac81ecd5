# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Transaction classifier for StoreBooks.

Every transaction carries a denormalized classification triple
(cash-flow activity, transaction nature, include-in-P&L flag) stamped at
write time. This module decides that triple:

1. Registry lookup
   ----------------
   The category registry (see ``categories.py``) is the source of truth.
   When it knows the ``(type, name)`` pair, its fields are used verbatim.

2. Built-in mapping
   -----------------
   Unmigrated data or deleted categories fall back to a static mapping of
   well-known category names (``BUILTIN_CATEGORIES``).

3. Default
   --------
   Anything else resolves to operating / operating / included. The
   classifier is total: it never raises for an unknown category, so that
   transaction entry is always possible. Every fallback past the registry is
   surfaced as an ``UnresolvedCategoryWarning`` instead.

The module also provides the write-time helpers ``create_transaction`` and
``apply_update`` which validate user input before classification and
re-derive the classification when an edit changes the category.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from .errors import UnresolvedCategoryWarning, ValidationError
from .models import (
    INPUT_METHODS,
    TRANSACTION_TYPES,
    ZERO,
    Classification,
    Store,
    Transaction,
    check_transaction_date,
    to_decimal,
)

if TYPE_CHECKING:
    from .categories import CategoryRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuiltinCategory:
    """Static classification of a well-known category name."""

    cash_flow_activity: str
    transaction_nature: Optional[str]
    include_in_profit_loss: bool
    label: str


# (type, name) -> classification and display label.
BUILTIN_CATEGORIES: dict[tuple[str, str], BuiltinCategory] = {
    # Operating income
    ("income", "房费收入"): BuiltinCategory("operating", "operating", True, "房费收入"),
    ("income", "额外服务"): BuiltinCategory("operating", "operating", True, "额外服务收入"),
    ("income", "其他收入"): BuiltinCategory("operating", "operating", True, "其他营业收入"),
    # Refundable deposits are financing flows, outside the P&L
    ("income", "押金收入"): BuiltinCategory("financing", None, False, "押金收入"),
    # Investing income
    ("income", "资产处置收入"): BuiltinCategory(
        "investing", "non_operating", True, "处置固定资产收入"
    ),
    # Financing income
    ("income", "银行贷款"): BuiltinCategory("financing", None, False, "取得借款收入"),
    ("income", "股东投资"): BuiltinCategory("financing", None, False, "股东投资收入"),
    # Operating expenses
    ("expense", "水电费"): BuiltinCategory("operating", "operating", True, "水电费支出"),
    ("expense", "维修费"): BuiltinCategory("operating", "operating", True, "维修保养费"),
    ("expense", "清洁费"): BuiltinCategory("operating", "operating", True, "清洁费支出"),
    ("expense", "采购费"): BuiltinCategory("operating", "operating", True, "采购支出"),
    ("expense", "人工费"): BuiltinCategory("operating", "operating", True, "人工工资"),
    ("expense", "租金"): BuiltinCategory("operating", "operating", True, "租金支出"),
    ("expense", "营销费"): BuiltinCategory("operating", "operating", True, "营销推广费"),
    ("expense", "其他支出"): BuiltinCategory("operating", "operating", True, "其他运营支出"),
    ("expense", "所得税"): BuiltinCategory("operating", "income_tax", True, "所得税费用"),
    ("expense", "押金退还"): BuiltinCategory("financing", None, False, "押金退还"),
    # Investing expenses (capital expenditure, outside the P&L)
    ("expense", "固定资产购置"): BuiltinCategory("investing", None, False, "购置固定资产"),
    ("expense", "设备升级"): BuiltinCategory("investing", None, False, "设备升级改造"),
    ("expense", "装修改造"): BuiltinCategory("investing", None, False, "装修改造支出"),
    ("expense", "系统软件"): BuiltinCategory("investing", None, False, "软件系统购置"),
    # Financing expenses
    ("expense", "偿还贷款"): BuiltinCategory("financing", None, False, "偿还借款本金"),
    ("expense", "支付利息"): BuiltinCategory(
        "financing", "non_operating", True, "支付利息费用"
    ),
    ("expense", "股东分红"): BuiltinCategory("financing", None, False, "股东分红支出"),
}


def default_classification() -> Classification:
    """Classification used when nothing is known about a category."""
    return Classification(
        cash_flow_activity="operating",
        transaction_nature="operating",
        include_in_profit_loss=True,
        source="default",
    )


def lookup_builtin(type_: str, name: str) -> Optional[Classification]:
    """Return the built-in classification of a category, or None."""
    builtin = BUILTIN_CATEGORIES.get((type_, str(name).strip()))
    if builtin is None:
        return None
    return Classification(
        cash_flow_activity=builtin.cash_flow_activity,
        transaction_nature=builtin.transaction_nature,
        include_in_profit_loss=builtin.include_in_profit_loss,
        source="builtin",
    )


def category_label(type_: str, name: str) -> str:
    """Display label of a category: built-in label, or the name itself."""
    builtin = BUILTIN_CATEGORIES.get((type_, str(name).strip()))
    return builtin.label if builtin is not None else name


def classify(
    type_: str,
    category_name: str,
    registry: Optional[CategoryRegistry] = None,
) -> Classification:
    """Classify a category for the given transaction type.

    Args:
        type_: "income" or "expense".
        category_name: Category name as entered on the transaction.
        registry: Category registry to consult first. When omitted, only
            the built-in mapping and the default are used.

    Returns:
        The classification. Never raises for unknown categories; any
        fallback to the built-in mapping or the default emits an
        ``UnresolvedCategoryWarning``.
    """
    name = str(category_name).strip()

    if registry is not None:
        category = registry.lookup(type_, name)
        if category is not None:
            return category.classification

    builtin = lookup_builtin(type_, name)
    if builtin is not None:
        if registry is not None:
            where = "is not in the registry"
        else:
            where = "was classified without a registry"
        warnings.warn(
            f"Category {name!r} ({type_}) {where}; "
            "using the built-in classification.",
            UnresolvedCategoryWarning,
            stacklevel=2,
        )
        return builtin

    warnings.warn(
        f"Category {name!r} ({type_}) is unknown; "
        "classified as operating by default.",
        UnresolvedCategoryWarning,
        stacklevel=2,
    )
    return default_classification()


# ---------------------------------------------------------------------------
# Write-time helpers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NewTransaction:
    """
    Payload used to record a new transaction (manual, voice or AI-parsed).

    The classification fields are not part of the payload: they are derived
    from the category when the transaction is created.
    """

    id: str
    company_id: str
    type: str
    category: str
    amount: Any
    date: Optional[date]
    store_id: str
    description: str = ""
    input_method: str = "manual"


@dataclass(frozen=True)
class TransactionUpdate:
    """
    Partial update payload for an existing transaction.

    Any attribute left to None is not modified. Changing ``type`` or
    ``category`` re-derives the classification fields.
    """

    type: Optional[str] = None
    category: Optional[str] = None
    amount: Any = None
    date: Optional[date] = None
    description: Optional[str] = None
    store_id: Optional[str] = None


def _validate_new(draft: NewTransaction) -> Decimal:
    if draft.type not in TRANSACTION_TYPES:
        raise ValidationError(f"Invalid transaction type {draft.type!r}.")
    amount = to_decimal(draft.amount, "amount")
    if amount <= ZERO:
        raise ValidationError(f"Amount must be positive, got {amount}.")
    if draft.date is None:
        raise ValidationError("Missing required date.")
    if not draft.store_id:
        raise ValidationError("A store is required to record a transaction.")
    if not str(draft.category or "").strip():
        raise ValidationError("A category is required to record a transaction.")
    if draft.input_method not in INPUT_METHODS:
        raise ValidationError(f"Invalid input method {draft.input_method!r}.")
    return amount


def _category_id(
    type_: str, name: str, registry: Optional[CategoryRegistry]
) -> Optional[str]:
    if registry is None:
        return None
    category = registry.lookup(type_, name)
    return category.id if category is not None else None


def create_transaction(
    draft: NewTransaction,
    registry: Optional[CategoryRegistry] = None,
    store: Optional[Store] = None,
) -> Transaction:
    """
    Validate a new transaction payload and stamp its classification.

    Validation happens before classification: malformed input is rejected,
    never coerced.

    Raises:
        ValidationError: amount <= 0, missing date/store/category, bad type,
            or a date before the store's opening date.
        MissingInitialBalanceError: the store has no opening date yet.
    """
    amount = _validate_new(draft)
    if store is not None:
        if store.id != draft.store_id:
            raise ValidationError(
                f"Store {store.id} does not match transaction store {draft.store_id}."
            )
        check_transaction_date(store, draft.date, draft.id)

    name = str(draft.category).strip()
    classification = classify(draft.type, name, registry)
    logger.debug(
        "Classified transaction %s (%s/%s) as %s via %s",
        draft.id,
        draft.type,
        name,
        classification.cash_flow_activity,
        classification.source,
    )

    return Transaction(
        id=draft.id,
        company_id=draft.company_id,
        type=draft.type,
        category=name,
        amount=amount,
        date=draft.date,
        store_id=draft.store_id,
        cash_flow_activity=classification.cash_flow_activity,
        transaction_nature=classification.transaction_nature,
        include_in_profit_loss=classification.include_in_profit_loss,
        description=draft.description or "",
        category_id=_category_id(draft.type, name, registry),
        input_method=draft.input_method,
    )


def reclassify(
    tx: Transaction, registry: Optional[CategoryRegistry] = None
) -> Transaction:
    """Re-derive the classification fields of a transaction from its category."""
    classification = classify(tx.type, tx.category, registry)
    return replace(
        tx,
        cash_flow_activity=classification.cash_flow_activity,
        transaction_nature=classification.transaction_nature,
        include_in_profit_loss=classification.include_in_profit_loss,
        category_id=_category_id(tx.type, tx.category, registry),
    )


def apply_update(
    tx: Transaction,
    update: TransactionUpdate,
    registry: Optional[CategoryRegistry] = None,
    store: Optional[Store] = None,
) -> Transaction:
    """
    Apply a partial edit to a transaction.

    A change of ``type`` or ``category`` re-derives ``cash_flow_activity``,
    ``transaction_nature`` and ``include_in_profit_loss``. The returned
    transaction is validated again (positive amount, store opening date).
    """
    changes: dict[str, Any] = {}
    if update.type is not None:
        changes["type"] = update.type
    if update.category is not None:
        changes["category"] = str(update.category).strip()
    if update.amount is not None:
        changes["amount"] = to_decimal(update.amount, "amount")
    if update.date is not None:
        changes["date"] = update.date
    if update.description is not None:
        changes["description"] = update.description
    if update.store_id is not None:
        changes["store_id"] = update.store_id

    if not changes:
        return tx

    updated = replace(tx, **changes)
    if store is not None:
        if store.id != updated.store_id:
            raise ValidationError(
                f"Store {store.id} does not match transaction store {updated.store_id}."
            )
        check_transaction_date(store, updated.date, updated.id)

    if updated.type != tx.type or updated.category != tx.category:
        updated = reclassify(updated, registry)
    return updated
