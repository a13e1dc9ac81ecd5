from datetime import date
from pathlib import Path

import pytest

from storebooks.config import load_app_config


def _config(tmp_path: Path, text: str) -> str:
    path = tmp_path / "storebooks_config.toml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_minimal_config_uses_defaults(tmp_path) -> None:
    config = load_app_config(_config(tmp_path, '[company]\nid = "c1"\n'))

    assert config.company_id == "c1"
    assert config.company_name == "c1"
    assert config.display_mode == "table"
    assert config.log_level == "WARNING"
    assert config.data.transactions == (tmp_path / "data/transactions.csv").resolve()
    assert config.data.categories is None
    assert config.output_dir == (tmp_path / "data/output").resolve()
    year = date.today().year
    assert config.fiscal_year.start_date == date(year, 1, 1)


def test_full_config(tmp_path) -> None:
    config = load_app_config(
        _config(
            tmp_path,
            '[company]\nid = "c1"\nname = "Harbour Inns"\n\n'
            '[fiscal_year]\nstart_date = "2024-04-01"\nend_date = "2025-03-31"\n\n'
            '[data]\ncategories = "cats.csv"\n\n'
            '[display]\nmode = "both"\n\n'
            '[export]\noutput_dir = "exports"\n\n'
            '[logging]\nlevel = "info"\n',
        )
    )

    assert config.company_name == "Harbour Inns"
    assert config.fiscal_year.end_date == date(2025, 3, 31)
    assert config.data.categories == (tmp_path / "cats.csv").resolve()
    assert config.display_mode == "both"
    assert config.output_dir == (tmp_path / "exports").resolve()
    assert config.log_level == "INFO"


def test_missing_config_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "nope.toml"))


@pytest.mark.parametrize(
    "text",
    [
        "[company]\n",
        '[company]\nid = "c1"\n[fiscal_year]\nstart_date = "2024-01-01"\n',
        '[company]\nid = "c1"\n[fiscal_year]\n'
        'start_date = "2024-12-31"\nend_date = "2024-01-01"\n',
        '[company]\nid = "c1"\n[display]\nmode = "html"\n',
        "not = [valid",
    ],
)
def test_invalid_config(tmp_path, text) -> None:
    with pytest.raises(ValueError):
        load_app_config(_config(tmp_path, text))
