from datetime import date, datetime
from decimal import Decimal

import pytest

from factories import COMPANY, make_store, make_tx
from storebooks.errors import MissingInitialBalanceError, ValidationError
from storebooks.models import (
    CapitalInjection,
    Category,
    LedgerSnapshot,
    Store,
    Transaction,
    check_transaction_date,
    to_decimal,
)


def test_to_decimal_keeps_float_short_repr() -> None:
    """Floats are converted through their string representation."""
    assert to_decimal(12.3) == Decimal("12.3")
    assert to_decimal("  45.60 ") == Decimal("45.60")
    assert to_decimal(7) == Decimal(7)


@pytest.mark.parametrize("value", [None, True, "abc", "nan", float("inf")])
def test_to_decimal_rejects_invalid_values(value) -> None:
    with pytest.raises(ValidationError):
        to_decimal(value)


@pytest.mark.parametrize("amount", ["0", "-5"])
def test_transaction_amount_must_be_positive(amount) -> None:
    with pytest.raises(ValidationError):
        make_tx(amount=amount)


def test_transaction_requires_a_plain_date() -> None:
    with pytest.raises(ValidationError):
        make_tx(day=None)
    with pytest.raises(ValidationError):
        make_tx(day=datetime(2024, 1, 1, 12, 0))


def test_transaction_rejects_unknown_enum_values() -> None:
    with pytest.raises(ValidationError):
        make_tx(type_="transfer")
    with pytest.raises(ValidationError):
        make_tx(activity="speculative")


def test_transaction_allows_unset_classification() -> None:
    """Unmigrated rows may have no activity and no nature."""
    tx = make_tx(activity=None, nature=None)
    assert tx.cash_flow_activity is None
    assert tx.transaction_nature is None
    assert tx.kind == "real"
    assert tx.is_virtual is False


def test_signed_amount_follows_type() -> None:
    assert make_tx("income", amount="10").signed_amount == Decimal("10")
    assert make_tx("expense", "水电费", amount="10").signed_amount == Decimal("-10")


def test_capital_injection_is_a_virtual_financing_inflow() -> None:
    entry = CapitalInjection(
        store_id="Y", store_name="Store Y", amount="500", date=date(2024, 2, 15)
    )
    assert entry.kind == "virtual"
    assert entry.is_virtual is True
    assert entry.type == "income"
    assert entry.cash_flow_activity == "financing"
    assert entry.transaction_nature is None
    assert entry.include_in_profit_loss is False
    assert entry.category == "new store capital investment"
    assert entry.amount == Decimal("500")
    assert entry.id == "capital:Y"


def test_category_nature_required_when_included_in_profit_loss() -> None:
    with pytest.raises(ValidationError):
        Category(id="c", name="x", type="expense", transaction_nature=None)

    excluded = Category(
        id="c",
        name=" 押金退还 ",
        type="expense",
        cash_flow_activity="financing",
        transaction_nature=None,
        include_in_profit_loss=False,
    )
    assert excluded.name == "押金退还"
    assert excluded.classification.source == "registry"


def test_check_transaction_date_against_store_opening() -> None:
    store = make_store("X", date(2024, 1, 1))
    check_transaction_date(store, date(2024, 1, 1))

    with pytest.raises(ValidationError):
        check_transaction_date(store, date(2023, 12, 31), "t1")

    pending = Store(id="P", name="Pending", company_id=COMPANY)
    with pytest.raises(MissingInitialBalanceError) as exc_info:
        check_transaction_date(pending, date(2024, 1, 1))
    assert exc_info.value.store_id == "P"


def test_store_rejects_negative_opening_balance() -> None:
    with pytest.raises(ValidationError, match="negative"):
        Store(
            id="X",
            name="Store X",
            company_id=COMPANY,
            initial_balance_date=date(2024, 1, 10),
            initial_balance="-300",
        )

    store = Store(id="Z", name="Store Z", company_id=COMPANY, initial_balance="0")
    assert store.initial_balance == Decimal("0")


def test_snapshot_rejects_records_of_another_company() -> None:
    other = Transaction(
        id="o1",
        company_id="other",
        type="income",
        category="房费收入",
        amount=Decimal("1"),
        date=date(2024, 1, 1),
        store_id="X",
    )
    with pytest.raises(ValidationError):
        LedgerSnapshot(company_id=COMPANY, transactions=(other,))


def test_snapshot_rejects_duplicate_ids() -> None:
    tx = make_tx(tx_id="dup")
    with pytest.raises(ValidationError):
        LedgerSnapshot(company_id=COMPANY, transactions=(tx, tx))

    store = make_store("X")
    with pytest.raises(ValidationError):
        LedgerSnapshot(company_id=COMPANY, stores=[store, store])
