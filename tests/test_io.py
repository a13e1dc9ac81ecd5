from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from storebooks.config import load_app_config
from storebooks.errors import ValidationError
from storebooks.io import (
    load_registry,
    load_snapshot,
    read_categories,
    read_stores,
    read_transactions,
)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_read_transactions_with_aliases(tmp_path) -> None:
    """Legacy column names are accepted and blank classification stays unset."""
    csv_path = _write(
        tmp_path / "tx.csv",
        "id,date,store_id,type,category_name,amount,activity,nature,label\n"
        "t1,2024-01-10,X,Income,房费收入,200,operating,operating,Room 101\n"
        "t2,2024-01-11,X,expense,水电费, 80.5 ,,,\n",
    )

    txs = read_transactions(csv_path, "c1")

    assert [tx.id for tx in txs] == ["t1", "t2"]
    assert txs[0].type == "income"
    assert txs[0].description == "Room 101"
    assert txs[0].company_id == "c1"
    assert txs[1].amount == Decimal("80.5")
    assert txs[1].cash_flow_activity is None
    assert txs[1].transaction_nature is None
    assert txs[1].include_in_profit_loss is True


def test_read_transactions_missing_column(tmp_path) -> None:
    csv_path = _write(tmp_path / "tx.csv", "id,date,store_id,type,amount\n")
    with pytest.raises(ValidationError, match="category"):
        read_transactions(csv_path, "c1")


@pytest.mark.parametrize(
    "row, message",
    [
        ("t1,2024-13-01,X,income,房费收入,10", "invalid date"),
        ("t1,,X,income,房费收入,10", "missing value"),
        ("t1,2024-01-01,X,income,房费收入,ten", "Row 1"),
        ("t1,2024-01-01,X,income,房费收入,-5", "Row 1"),
    ],
)
def test_read_transactions_rejects_bad_rows(tmp_path, row, message) -> None:
    csv_path = _write(
        tmp_path / "tx.csv", "id,date,store_id,type,category,amount\n" + row + "\n"
    )
    with pytest.raises(ValidationError, match=message):
        read_transactions(csv_path, "c1")


def test_read_stores(tmp_path) -> None:
    csv_path = _write(
        tmp_path / "stores.csv",
        "id,name,initial_balance_date,initial_balance\n"
        "X,Store X,2024-01-01,1000\n"
        "Y,Store Y,,\n",
    )
    stores = read_stores(csv_path, "c1")
    assert stores[0].initial_balance_date == date(2024, 1, 1)
    assert stores[0].initial_balance == Decimal("1000")
    assert stores[1].initial_balance_date is None
    assert stores[1].initial_balance == Decimal("0")


def test_read_categories(tmp_path) -> None:
    csv_path = _write(
        tmp_path / "categories.csv",
        "id,name,type,cash_flow_activity,transaction_nature,include_in_profit_loss\n"
        "a,押金收入,income,financing,,no\n"
        "b,房费收入,INCOME,operating,operating,\n",
    )
    df = read_categories(csv_path)
    assert list(df["include_in_profit_loss"]) == [False, True]
    assert list(df["type"]) == ["income", "income"]
    assert list(df["sort_order"]) == [0, 1]


def _project(tmp_path: Path, with_categories: bool = False) -> Path:
    data = tmp_path / "data"
    data.mkdir(parents=True)
    _write(
        data / "transactions.csv",
        "id,date,store_id,type,category,amount\n"
        "x-1,2024-01-10,X,income,房费收入,200\n",
    )
    _write(
        data / "stores.csv",
        "id,name,initial_balance_date,initial_balance\n"
        "X,Store X,2024-01-01,1000\n"
        "Y,Store Y,2024-02-15,500\n",
    )
    categories_line = ""
    if with_categories:
        _write(
            data / "categories.csv",
            "id,name,type,cash_flow_activity\nrooms,房费收入,income,operating\n",
        )
        categories_line = 'categories = "data/categories.csv"\n'
    return _write(
        tmp_path / "storebooks_config.toml",
        '[company]\nid = "c1"\n\n'
        '[fiscal_year]\nstart_date = "2024-01-01"\nend_date = "2024-12-31"\n\n'
        '[data]\ntransactions = "data/transactions.csv"\n'
        'stores = "data/stores.csv"\n' + categories_line,
    )


def test_load_snapshot_from_config(tmp_path) -> None:
    config = load_app_config(str(_project(tmp_path)))

    snapshot = load_snapshot(config)

    assert snapshot.company_id == "c1"
    assert [s.id for s in snapshot.stores] == ["X", "Y"]
    assert len(snapshot.transactions) == 1
    assert snapshot.data_version


def test_load_snapshot_missing_file(tmp_path) -> None:
    config = load_app_config(str(_project(tmp_path)))
    config.data.transactions.unlink()
    with pytest.raises(FileNotFoundError):
        load_snapshot(config)


def test_load_registry(tmp_path) -> None:
    system = load_registry(load_app_config(str(_project(tmp_path / "a"))))
    assert system.lookup("income", "押金收入").is_system

    custom = load_registry(load_app_config(str(_project(tmp_path / "b", True))))
    assert len(custom) == 1
    assert custom.get("rooms").name == "房费收入"
