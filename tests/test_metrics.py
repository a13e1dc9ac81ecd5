from datetime import date
from decimal import Decimal

from factories import make_store, make_tx
from storebooks.cash_flow import aggregate_activities
from storebooks.metrics import (
    METRIC_RULES,
    MetricRule,
    compute_metrics,
    derive_profit_loss,
    metrics_by_store,
)
from storebooks.models import CapitalInjection


def sample_entries():
    return [
        make_tx("income", "房费收入", "1000"),
        make_tx("expense", "租金", "300"),
        make_tx("expense", "维修费", "50", activity=None, nature=None),
        make_tx(
            "income", "资产处置收入", "80", activity="investing", nature="non_operating"
        ),
        make_tx("expense", "罚款支出", "30", nature="non_operating"),
        make_tx("expense", "所得税", "60", nature="income_tax"),
        make_tx(
            "income", "押金收入", "500", activity="financing", nature=None, include=False
        ),
        make_tx(
            "expense",
            "固定资产购置",
            "400",
            store_id="Y",
            activity="investing",
            nature=None,
            include=False,
        ),
        CapitalInjection(
            store_id="Y", store_name="Store Y", amount="700", date=date(2024, 1, 2)
        ),
    ]


def test_compute_metrics() -> None:
    m = compute_metrics(sample_entries())

    assert set(m) == set(METRIC_RULES)
    assert m["total_income"] == Decimal("1580")
    assert m["total_expense"] == Decimal("840")
    assert m["operating_income"] == Decimal("1000")
    assert m["operating_expense"] == Decimal("350")
    assert m["non_operating_income"] == Decimal("80")
    assert m["non_operating_expense"] == Decimal("30")
    assert m["income_tax"] == Decimal("60")
    assert m["operating_cash_inflow"] == Decimal("1000")
    assert m["operating_cash_outflow"] == Decimal("440")
    assert m["investing_cash_inflow"] == Decimal("80")
    assert m["investing_cash_outflow"] == Decimal("400")
    assert m["financing_cash_inflow"] == Decimal("500")
    assert m["financing_cash_outflow"] == Decimal("0")


def test_unset_activity_uses_the_builtin_mapping() -> None:
    """An unmigrated loan is financing in metrics and statements alike."""
    loan = make_tx("income", "银行贷款", "500", activity=None, nature=None, include=False)

    m = compute_metrics([loan])

    assert m["financing_cash_inflow"] == Decimal("500")
    assert m["operating_cash_inflow"] == Decimal("0")
    sections = aggregate_activities([loan])
    assert sections["financing"].subtotal_inflow == m["financing_cash_inflow"]


def test_derive_profit_loss_subtracts_recorded_tax() -> None:
    derived = derive_profit_loss(compute_metrics(sample_entries()))
    assert derived == {
        "operating_profit": Decimal("650"),
        "non_operating_net": Decimal("50"),
        "total_profit": Decimal("700"),
        "net_profit": Decimal("640"),
    }


def test_custom_rules() -> None:
    rules = {"outflow": MetricRule(type="expense", activity="operating")}
    assert compute_metrics(sample_entries(), rules) == {"outflow": Decimal("440")}


def test_metrics_by_store() -> None:
    stores = [make_store("X"), make_store("Y"), make_store("Z")]

    df = metrics_by_store(sample_entries(), stores)

    assert list(df["store_id"]) == ["X", "Y", "Z"]
    rows = df.set_index("store_id")
    assert rows.loc["X", "net_profit"] == 640.0
    assert rows.loc["Y", "total_expense"] == 400.0
    assert rows.loc["Y", "net_profit"] == 0.0
    assert rows.loc["Z", "total_income"] == 0.0
