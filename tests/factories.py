"""Record builders shared by the test modules."""

from datetime import date
from decimal import Decimal

from storebooks.models import Category, LedgerSnapshot, Store, Transaction

COMPANY = "c1"

_counter = {"tx": 0}


def make_tx(
    type_: str = "income",
    category: str = "房费收入",
    amount="100",
    day: date = date(2024, 1, 10),
    store_id: str = "X",
    activity="operating",
    nature="operating",
    include: bool = True,
    tx_id: str = "",
    description: str = "",
    category_id=None,
) -> Transaction:
    """Build a valid transaction, with an auto-generated id if none is given."""
    if not tx_id:
        _counter["tx"] += 1
        tx_id = f"t{_counter['tx']:04d}"
    return Transaction(
        id=tx_id,
        company_id=COMPANY,
        type=type_,
        category=category,
        amount=Decimal(str(amount)),
        date=day,
        store_id=store_id,
        cash_flow_activity=activity,
        transaction_nature=nature,
        include_in_profit_loss=include,
        description=description,
        category_id=category_id,
    )


def make_store(
    store_id: str = "X",
    opened=date(2024, 1, 1),
    balance="1000",
    name: str = "",
) -> Store:
    return Store(
        id=store_id,
        name=name or f"Store {store_id}",
        company_id=COMPANY,
        initial_balance_date=opened,
        initial_balance=Decimal(str(balance)),
    )


def make_category(
    cat_id: str,
    name: str,
    type_: str = "expense",
    activity: str = "operating",
    nature="operating",
    include: bool = True,
    is_system: bool = False,
) -> Category:
    return Category(
        id=cat_id,
        name=name,
        type=type_,
        cash_flow_activity=activity,
        transaction_nature=nature,
        include_in_profit_loss=include,
        is_system=is_system,
    )


def make_snapshot(transactions=(), stores=(), version=1) -> LedgerSnapshot:
    return LedgerSnapshot(
        company_id=COMPANY,
        transactions=tuple(transactions),
        stores=tuple(stores),
        data_version=version,
    )


def example_snapshot() -> LedgerSnapshot:
    """
    Two stores: X opened 2024-01-01 with 1000, Y opened 2024-02-15 with 500.
    X has one operating income of 200 on 2024-01-10.
    """
    x = make_store("X", date(2024, 1, 1), "1000")
    y = make_store("Y", date(2024, 2, 15), "500")
    tx = make_tx("income", "房费收入", "200", date(2024, 1, 10), "X", tx_id="x-1")
    return make_snapshot([tx], [x, y])
