from pathlib import Path

import pytest

from storebooks import cli
from storebooks.export import LEDGER_HEADER


def _project(tmp_path: Path) -> str:
    data = tmp_path / "data"
    data.mkdir()
    (data / "transactions.csv").write_text(
        "id,date,store_id,type,category,amount,cash_flow_activity,transaction_nature\n"
        "x-1,2024-01-10,X,income,房费收入,200,operating,operating\n"
        "x-2,2024-02-20,X,expense,租金,50,operating,operating\n",
        encoding="utf-8",
    )
    (data / "stores.csv").write_text(
        "id,name,initial_balance_date,initial_balance\n"
        "X,Store X,2024-01-01,1000\n"
        "Y,Store Y,2024-02-15,500\n",
        encoding="utf-8",
    )
    config = tmp_path / "storebooks_config.toml"
    config.write_text(
        '[company]\nid = "c1"\nname = "Harbour Inns"\n\n'
        '[fiscal_year]\nstart_date = "2024-01-01"\nend_date = "2024-12-31"\n\n'
        '[data]\ntransactions = "data/transactions.csv"\n'
        'stores = "data/stores.csv"\n',
        encoding="utf-8",
    )
    return str(config)


PERIOD_ARGS = ["--from-date", "2024-01-01", "--to-date", "2024-02-29"]


def test_version(capsys) -> None:
    cli.main(["--version"])
    assert "storebooks version" in capsys.readouterr().out


def test_cash_flow_is_the_default_command(tmp_path, capsys) -> None:
    cli.main(["--config", _project(tmp_path), *PERIOD_ARGS])

    out = capsys.readouterr().out
    assert "Company: Harbour Inns" in out
    assert "=== Cash flow statement ===" in out
    assert "New store capital investment" in out
    assert "1650.00" in out
    assert "=== Store breakdown ===" in out


def test_ledger_csv_export(tmp_path, capsys) -> None:
    output = tmp_path / "out"
    cli.main(
        [
            "--config",
            _project(tmp_path),
            *PERIOD_ARGS,
            "--display-mode",
            "csv",
            "--output",
            str(output),
            "ledger",
            "--no-virtual",
            "--sort-by",
            "amount",
            "--sort-direction",
            "desc",
        ]
    )

    path = output / "transactions_2024-01-01_2024-02-29.csv"
    assert path.is_file()
    text = path.read_bytes().decode("utf-8-sig")
    lines = text.splitlines()
    assert lines[0].split(",") == LEDGER_HEADER
    assert lines[1].startswith("2024-01-10,X,income,房费收入,+200.00")
    assert lines[2].startswith("2024-02-20,X,expense,租金,-50.00")
    assert "Wrote" in capsys.readouterr().out


@pytest.mark.parametrize("command", ["profit-loss", "monthly", "stores", "categories"])
def test_other_commands_render(tmp_path, capsys, command) -> None:
    cli.main(["--config", _project(tmp_path), *PERIOD_ARGS, command])
    out = capsys.readouterr().out
    assert "===" in out


def test_unknown_store_exits_with_message(tmp_path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", _project(tmp_path), *PERIOD_ARGS, "--stores", "Q"])
    assert "Unknown store" in str(excinfo.value.code)


def test_missing_config_exits(tmp_path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", str(tmp_path / "missing.toml")])
    assert str(excinfo.value.code).startswith("Error:")
