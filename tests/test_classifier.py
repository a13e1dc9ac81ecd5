import warnings
from datetime import date
from decimal import Decimal

import pytest

from factories import COMPANY, make_category, make_store, make_tx
from storebooks.categories import CategoryRegistry
from storebooks.classifier import (
    NewTransaction,
    TransactionUpdate,
    apply_update,
    category_label,
    classify,
    create_transaction,
    lookup_builtin,
)
from storebooks.errors import (
    MissingInitialBalanceError,
    UnresolvedCategoryWarning,
    ValidationError,
)
from storebooks.models import Store


def make_draft(**overrides) -> NewTransaction:
    values = dict(
        id="n1",
        company_id=COMPANY,
        type="expense",
        category="水电费",
        amount="120.50",
        date=date(2024, 3, 1),
        store_id="X",
    )
    values.update(overrides)
    return NewTransaction(**values)


def test_registry_classification_wins_over_builtin() -> None:
    registry = CategoryRegistry(
        COMPANY,
        [make_category("u", "水电费", activity="investing", nature="non_operating")],
    )
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        result = classify("expense", "水电费", registry)
    assert result.source == "registry"
    assert result.cash_flow_activity == "investing"
    assert result.transaction_nature == "non_operating"


def test_builtin_fallback_warns_when_registry_misses() -> None:
    registry = CategoryRegistry(COMPANY)
    with pytest.warns(UnresolvedCategoryWarning):
        result = classify("income", "押金收入", registry)
    assert result.source == "builtin"
    assert result.cash_flow_activity == "financing"
    assert result.include_in_profit_loss is False


def test_builtin_without_registry_warns() -> None:
    """Falling back to the built-in mapping is reported even without a registry."""
    with pytest.warns(UnresolvedCategoryWarning, match="without a registry"):
        result = classify("expense", "固定资产购置")
    assert result.source == "builtin"
    assert result.cash_flow_activity == "investing"
    assert result.transaction_nature is None


def test_unknown_category_defaults_to_operating() -> None:
    """The classifier is total: unknown names never raise."""
    with pytest.warns(UnresolvedCategoryWarning):
        result = classify("expense", "mystery")
    assert result.source == "default"
    assert result.cash_flow_activity == "operating"
    assert result.transaction_nature == "operating"
    assert result.include_in_profit_loss is True


def test_builtin_lookup_depends_on_type() -> None:
    assert lookup_builtin("expense", "房费收入") is None
    assert lookup_builtin("income", "房费收入").cash_flow_activity == "operating"
    assert category_label("expense", "租金") == "租金支出"
    assert category_label("expense", "custom") == "custom"


def test_create_transaction_stamps_classification() -> None:
    registry = CategoryRegistry.with_system_categories(COMPANY)
    store = make_store("X", date(2024, 1, 1))

    tx = create_transaction(make_draft(category=" 水电费 "), registry, store)

    assert tx.category == "水电费"
    assert tx.amount == Decimal("120.50")
    assert tx.cash_flow_activity == "operating"
    assert tx.transaction_nature == "operating"
    assert tx.category_id == registry.lookup("expense", "水电费").id
    assert tx.input_method == "manual"


@pytest.mark.parametrize(
    "overrides",
    [
        {"amount": "0"},
        {"amount": "-3"},
        {"amount": "abc"},
        {"date": None},
        {"type": "transfer"},
        {"store_id": ""},
        {"category": "  "},
        {"input_method": "fax"},
    ],
)
def test_create_transaction_rejects_malformed_input(overrides) -> None:
    with pytest.raises(ValidationError):
        create_transaction(make_draft(**overrides))


def test_create_transaction_checks_store_opening_date() -> None:
    store = make_store("X", date(2024, 3, 15))
    with pytest.raises(ValidationError):
        create_transaction(make_draft(date=date(2024, 3, 1)), store=store)

    pending = Store(id="X", name="Pending", company_id=COMPANY)
    with pytest.raises(MissingInitialBalanceError):
        create_transaction(make_draft(), store=pending)


def test_apply_update_reclassifies_on_category_change() -> None:
    registry = CategoryRegistry.with_system_categories(COMPANY)
    tx = make_tx("expense", "水电费", "50")

    updated = apply_update(tx, TransactionUpdate(category="装修改造"), registry)

    assert updated.category == "装修改造"
    assert updated.cash_flow_activity == "investing"
    assert updated.include_in_profit_loss is False


def test_apply_update_keeps_classification_on_other_edits() -> None:
    tx = make_tx("expense", "水电费", "50", activity="investing")
    updated = apply_update(tx, TransactionUpdate(amount="75", description="bill"))
    assert updated.amount == Decimal("75")
    assert updated.description == "bill"
    assert updated.cash_flow_activity == "investing"


def test_apply_update_rejects_non_positive_amount() -> None:
    tx = make_tx(amount="50")
    with pytest.raises(ValidationError):
        apply_update(tx, TransactionUpdate(amount="-1"))
