from datetime import date

import pytest

from factories import make_tx
from storebooks.errors import ValidationError
from storebooks.filters import (
    FRAME_COLUMNS,
    SortSpec,
    TransactionFilter,
    entries_to_frame,
    entry_nature,
    merge_filters,
    sort_entries,
)
from storebooks.models import CapitalInjection


def sample_entries():
    return [
        make_tx(
            "expense", "租金", "300", date(2024, 1, 3), tx_id="b", description="Rent Jan"
        ),
        make_tx("income", "房费收入", "900", date(2024, 1, 5), tx_id="a"),
        make_tx("expense", "水电费", "80", date(2024, 1, 4), "Y", tx_id="d"),
        make_tx("expense", "租金", "300", date(2024, 1, 2), tx_id="c"),
        make_tx(
            "expense",
            "装修改造",
            "500",
            date(2024, 1, 9),
            activity="investing",
            nature=None,
            include=False,
            tx_id="e",
        ),
        CapitalInjection(
            store_id="Y", store_name="Store Y", amount="500", date=date(2024, 1, 6)
        ),
    ]


def _ids(entries):
    return [e.id for e in entries]


def test_empty_filter_keeps_everything() -> None:
    f = TransactionFilter()
    assert f.is_empty
    assert len(f.apply(sample_entries())) == 6


def test_string_facet_is_coerced_to_tuple() -> None:
    f = TransactionFilter(types="income")
    assert f.types == ("income",)
    assert _ids(f.apply(sample_entries())) == ["a", "capital:Y"]


def test_facets_are_combined() -> None:
    f = TransactionFilter(
        types=("expense",),
        store_ids=("X",),
        start=date(2024, 1, 3),
    )
    assert _ids(f.apply(sample_entries())) == ["b", "e"]


def test_activity_and_nature_facets() -> None:
    entries = sample_entries()
    investing = TransactionFilter(activities=("investing",)).apply(entries)
    assert _ids(investing) == ["e"]

    # Unset nature on a real entry counts as operating; virtual is not applicable.
    operating = TransactionFilter(natures=("operating",)).apply(entries)
    assert "e" in _ids(operating)
    assert "capital:Y" not in _ids(operating)
    virtual = TransactionFilter(natures=("not_applicable",)).apply(entries)
    assert _ids(virtual) == ["capital:Y"]


def test_entry_nature() -> None:
    assert entry_nature(make_tx(nature="non_operating")) == "non_operating"
    assert entry_nature(make_tx(nature=None)) == "operating"


def test_description_is_case_insensitive() -> None:
    f = TransactionFilter(description_contains="rent")
    assert _ids(f.apply(sample_entries())) == ["b"]


def test_category_facet_matches_name_or_id() -> None:
    tx = make_tx("expense", "old name", "10", category_id="utilities")
    assert TransactionFilter(categories=("utilities",)).matches(tx)
    assert TransactionFilter(categories=("old name",)).matches(tx)
    assert not TransactionFilter(categories=("租金",)).matches(tx)


def test_exclude_virtual() -> None:
    f = TransactionFilter(include_virtual=False)
    assert "capital:Y" not in _ids(f.apply(sample_entries()))


def test_inverted_dates_are_rejected() -> None:
    with pytest.raises(ValidationError):
        TransactionFilter(start=date(2024, 2, 1), end=date(2024, 1, 1))


def test_merge_filters_override_wins_when_set() -> None:
    base = TransactionFilter(types=("expense",), store_ids=("X",))
    override = TransactionFilter(store_ids=("Y",), include_virtual=False)

    merged = merge_filters(base, override)

    assert merged.types == ("expense",)
    assert merged.store_ids == ("Y",)
    assert merged.include_virtual is False
    assert merge_filters(base, None) == base
    assert merge_filters(None, None).is_empty


def test_sort_ties_break_by_id_in_both_directions() -> None:
    entries = sample_entries()

    asc = sort_entries(entries, SortSpec("amount", "asc"))
    assert _ids(asc) == ["d", "b", "c", "capital:Y", "e", "a"]

    desc = sort_entries(entries, SortSpec("amount", "DESC"))
    assert _ids(desc) == ["a", "capital:Y", "e", "b", "c", "d"]


def test_sort_defaults_to_date_ascending() -> None:
    assert _ids(sort_entries(sample_entries())) == ["c", "b", "d", "a", "capital:Y", "e"]


def test_sort_by_id_descending() -> None:
    assert _ids(sort_entries(sample_entries(), SortSpec("id", "desc")))[0] == "e"


@pytest.mark.parametrize("spec", [("bogus", "asc"), ("date", "sideways")])
def test_invalid_sort_spec(spec) -> None:
    with pytest.raises(ValidationError):
        SortSpec(*spec)


def test_entries_to_frame() -> None:
    df = entries_to_frame(sample_entries())
    assert list(df.columns) == FRAME_COLUMNS
    assert len(df) == 6
    capital = df[df["kind"] == "virtual"].iloc[0]
    assert capital["transaction_nature"] == "not_applicable"
    assert capital["amount"] == 500.0
    assert df[df["id"] == "b"]["signed_amount"].iloc[0] == -300.0
