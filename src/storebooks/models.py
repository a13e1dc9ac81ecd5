# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core data model for StoreBooks.

This module defines the immutable records consumed and produced by the
engine:

- ``Transaction``      : a real, user-entered income or expense, already
                         classified (cash-flow activity, P&L nature) at
                         write time.
- ``CapitalInjection`` : the virtual "new store capital investment" entry
                         synthesized during consolidation. It is never
                         persisted and is regenerated for every query.
- ``Category``         : an entry of the category registry.
- ``Store``            : a store with its opening balance and opening date.
- ``Classification``   : the (activity, nature, include_in_profit_loss)
                         triple attached to a category.
- ``LedgerSnapshot``   : the consistent, tenant-scoped set of stores and
                         transactions handed to the statement builder.

``Transaction`` and ``CapitalInjection`` form a tagged variant: both expose
the same attributes (``type``, ``category``, ``amount``, ``date``,
``store_id``, ``cash_flow_activity``...) plus a ``kind`` tag ("real" or
"virtual"), so the aggregators consume them identically while exports and
filters can still tell them apart.

Amounts are ``decimal.Decimal`` and always positive; the sign of a flow is
derived from ``type`` and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Literal, Optional, Union

from .errors import MissingInitialBalanceError, ValidationError

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

TransactionType = Literal["income", "expense"]
CashFlowActivity = Literal["operating", "investing", "financing"]
TransactionNature = Literal["operating", "non_operating", "income_tax"]
StoreStatus = Literal["active", "inactive", "preparing", "closed"]
InputMethod = Literal["manual", "voice", "ai"]
EntryKind = Literal["real", "virtual"]
ClassificationSource = Literal["registry", "builtin", "default"]

TRANSACTION_TYPES: tuple[str, ...] = ("income", "expense")
CASH_FLOW_ACTIVITIES: tuple[str, ...] = ("operating", "investing", "financing")
TRANSACTION_NATURES: tuple[str, ...] = ("operating", "non_operating", "income_tax")
STORE_STATUSES: tuple[str, ...] = ("active", "inactive", "preparing", "closed")
INPUT_METHODS: tuple[str, ...] = ("manual", "voice", "ai")

# Category and label of the virtual capital entry of a newly opened store.
NEW_STORE_CAPITAL_CATEGORY = "new store capital investment"
NEW_STORE_CAPITAL_LABEL = "New store capital investment"

ZERO = Decimal("0")
CENT = Decimal("0.01")


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def to_decimal(value, field_name: str = "amount") -> Decimal:
    """Convert a numeric value to ``Decimal`` without losing precision.

    Floats are converted through their string representation so that
    ``12.3`` becomes ``Decimal("12.3")`` rather than its binary expansion.

    Raises:
        ValidationError: if the value is missing, boolean or not numeric.
    """
    if value is None:
        raise ValidationError(f"Missing value for '{field_name}'.")
    if isinstance(value, bool):
        raise ValidationError(f"Invalid numeric value for '{field_name}': {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValidationError(
                f"Invalid numeric value for '{field_name}': {value!r}"
            ) from exc
    if not result.is_finite():
        raise ValidationError(f"Invalid numeric value for '{field_name}': {value!r}")
    return result


def _check_date(value, field_name: str) -> None:
    if value is None:
        raise ValidationError(f"Missing required date '{field_name}'.")
    # datetime is a subclass of date: reject it, dates carry no time part.
    if isinstance(value, datetime) or not isinstance(value, date):
        raise ValidationError(
            f"'{field_name}' must be a calendar date, got {type(value).__name__}."
        )


def _check_choice(value, choices: tuple[str, ...], field_name: str) -> None:
    if value not in choices:
        raise ValidationError(
            f"Invalid {field_name} {value!r}; expected one of: {', '.join(choices)}."
        )


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Classification:
    """Classification triple attached to a category.

    Attributes
    ----------
    cash_flow_activity:
        operating / investing / financing.
    transaction_nature:
        operating / non_operating / income_tax, or None when the category
        does not feed the profit-and-loss statement.
    include_in_profit_loss:
        Whether transactions of this category appear in the P&L.
    source:
        Where the classification came from: the category "registry", the
        "builtin" static mapping, or the "default" fallback.
    """

    cash_flow_activity: str = "operating"
    transaction_nature: Optional[str] = "operating"
    include_in_profit_loss: bool = True
    source: str = "default"


@dataclass(frozen=True)
class Transaction:
    """A real income or expense recorded for one store.

    The classification fields are denormalized from the category registry at
    write time (see ``classifier.create_transaction``). ``category_id`` is
    the relational join key; when it is None the category is joined by
    ``(type, category)`` name, as in the legacy CSV model.
    """

    id: str
    company_id: str
    type: str
    category: str
    amount: Decimal
    date: date
    store_id: str
    cash_flow_activity: Optional[str] = "operating"
    transaction_nature: Optional[str] = "operating"
    include_in_profit_loss: bool = True
    description: str = ""
    category_id: Optional[str] = None
    input_method: Optional[str] = None
    kind: str = field(default="real", init=False)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValidationError("Transaction id is required.")
        _check_choice(self.type, TRANSACTION_TYPES, "transaction type")
        amount = to_decimal(self.amount, "amount")
        if amount <= ZERO:
            raise ValidationError(
                f"Transaction {self.id}: amount must be positive, got {amount}."
            )
        object.__setattr__(self, "amount", amount)
        _check_date(self.date, "date")
        if not self.store_id:
            raise ValidationError(f"Transaction {self.id}: store_id is required.")
        if not str(self.category).strip():
            raise ValidationError(f"Transaction {self.id}: category is required.")
        # Activity and nature are nullable for unmigrated data; the
        # aggregators resolve missing values to 'operating'.
        if self.cash_flow_activity is not None:
            _check_choice(
                self.cash_flow_activity, CASH_FLOW_ACTIVITIES, "cash flow activity"
            )
        if self.transaction_nature is not None:
            _check_choice(
                self.transaction_nature, TRANSACTION_NATURES, "transaction nature"
            )
        if self.input_method is not None:
            _check_choice(self.input_method, INPUT_METHODS, "input method")

    @property
    def is_virtual(self) -> bool:
        return False

    @property
    def signed_amount(self) -> Decimal:
        """Amount signed by type: positive for income, negative for expense."""
        return self.amount if self.type == "income" else -self.amount


@dataclass(frozen=True)
class CapitalInjection:
    """Virtual financing inflow for a store opened during the period.

    A store whose books open inside the reporting period brings its opening
    cash as "new store capital investment" instead of contributing to the
    consolidated beginning balance. This entry only exists inside a
    computation (and in CSV exports); it is never persisted.
    """

    store_id: str
    store_name: str
    amount: Decimal
    date: date
    company_id: str = ""
    type: str = field(default="income", init=False)
    category: str = field(default=NEW_STORE_CAPITAL_CATEGORY, init=False)
    cash_flow_activity: str = field(default="financing", init=False)
    transaction_nature: Optional[str] = field(default=None, init=False)
    include_in_profit_loss: bool = field(default=False, init=False)
    category_id: Optional[str] = field(default=None, init=False)
    input_method: Optional[str] = field(default=None, init=False)
    kind: str = field(default="virtual", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount, "amount"))
        _check_date(self.date, "date")

    @property
    def id(self) -> str:
        return f"capital:{self.store_id}"

    @property
    def description(self) -> str:
        return f"Opening balance of {self.store_name or self.store_id}"

    @property
    def is_virtual(self) -> bool:
        return True

    @property
    def signed_amount(self) -> Decimal:
        return self.amount


LedgerEntry = Union[Transaction, CapitalInjection]


@dataclass(frozen=True)
class Category:
    """A transaction category of the registry.

    ``name`` is unique per ``type`` within a company. ``transaction_nature``
    may only be None for categories excluded from the P&L.
    """

    id: str
    name: str
    type: str
    cash_flow_activity: str = "operating"
    transaction_nature: Optional[str] = "operating"
    include_in_profit_loss: bool = True
    is_system: bool = False
    sort_order: int = 0

    def __post_init__(self) -> None:
        if not self.id:
            raise ValidationError("Category id is required.")
        name = str(self.name or "").strip()
        if not name:
            raise ValidationError(f"Category {self.id}: name is required.")
        object.__setattr__(self, "name", name)
        _check_choice(self.type, TRANSACTION_TYPES, "category type")
        _check_choice(
            self.cash_flow_activity, CASH_FLOW_ACTIVITIES, "cash flow activity"
        )
        if self.transaction_nature is None:
            if self.include_in_profit_loss:
                raise ValidationError(
                    f"Category {name!r}: transaction_nature is required when "
                    "the category is included in the profit and loss statement."
                )
        else:
            _check_choice(
                self.transaction_nature, TRANSACTION_NATURES, "transaction nature"
            )

    @property
    def classification(self) -> Classification:
        return Classification(
            cash_flow_activity=self.cash_flow_activity,
            transaction_nature=self.transaction_nature,
            include_in_profit_loss=self.include_in_profit_loss,
            source="registry",
        )


@dataclass(frozen=True)
class Store:
    """A store and its opening cash position.

    ``initial_balance_date`` is the day the store's ledger begins. It is
    required before any transaction can be recorded for the store; a store
    without it is still "being set up".
    """

    id: str
    name: str
    company_id: str
    status: str = "active"
    initial_balance_date: Optional[date] = None
    initial_balance: Decimal = ZERO

    def __post_init__(self) -> None:
        if not self.id:
            raise ValidationError("Store id is required.")
        _check_choice(self.status, STORE_STATUSES, "store status")
        if self.initial_balance_date is not None:
            _check_date(self.initial_balance_date, "initial_balance_date")
        object.__setattr__(
            self, "initial_balance", to_decimal(self.initial_balance, "initial_balance")
        )
        if self.initial_balance < ZERO:
            raise ValidationError(
                f"Store {self.id}: initial_balance cannot be negative "
                f"({self.initial_balance})."
            )


def check_transaction_date(store: Store, day: date, transaction_id: str = "") -> None:
    """Ensure a transaction dated ``day`` may be recorded for ``store``.

    Raises:
        MissingInitialBalanceError: if the store has no opening date yet.
        ValidationError: if ``day`` is before the store's opening date.
    """
    if store.initial_balance_date is None:
        raise MissingInitialBalanceError(store.id, store.name)
    if day < store.initial_balance_date:
        ref = f"Transaction {transaction_id}" if transaction_id else "Transaction"
        raise ValidationError(
            f"{ref} is dated {day}, before the opening date "
            f"{store.initial_balance_date} of store {store.id}."
        )


@dataclass(frozen=True)
class LedgerSnapshot:
    """A consistent, tenant-scoped view of stores and transactions.

    The persistence collaborator hands the engine one snapshot per request.
    ``company_id`` is explicit: every store and transaction must belong to
    it. ``data_version`` identifies the snapshot content and is part of the
    statement cache key; when omitted it is derived from a hash of the
    stores and transactions.
    """

    company_id: str
    transactions: tuple[Transaction, ...] = ()
    stores: tuple[Store, ...] = ()
    data_version: Optional[Union[int, str]] = None

    def __post_init__(self) -> None:
        if not self.company_id:
            raise ValidationError("company_id is required.")
        object.__setattr__(self, "transactions", tuple(self.transactions))
        object.__setattr__(self, "stores", tuple(self.stores))

        store_ids: set[str] = set()
        for store in self.stores:
            if store.company_id != self.company_id:
                raise ValidationError(
                    f"Store {store.id} belongs to company {store.company_id!r}, "
                    f"not {self.company_id!r}."
                )
            if store.id in store_ids:
                raise ValidationError(f"Duplicate store id {store.id!r}.")
            store_ids.add(store.id)

        tx_ids: set[str] = set()
        for tx in self.transactions:
            if tx.company_id != self.company_id:
                raise ValidationError(
                    f"Transaction {tx.id} belongs to company {tx.company_id!r}, "
                    f"not {self.company_id!r}."
                )
            if tx.id in tx_ids:
                raise ValidationError(f"Duplicate transaction id {tx.id!r}.")
            tx_ids.add(tx.id)

        if self.data_version is None:
            object.__setattr__(
                self, "data_version", hash((self.transactions, self.stores))
            )

    def store_by_id(self) -> dict[str, Store]:
        return {s.id: s for s in self.stores}
