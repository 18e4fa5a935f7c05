from __future__ import annotations

import json
import re
from pathlib import Path
from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from property_import.cli import main as cli_main

"""End-to-end CLI runs on real CSV / Excel files.

The record store runs in mock mode (DISABLE_DB_CONNECT=1) unless a test
patches the connection; rows carry no share links so no HTTP is attempted.
"""

SUMMARY_RE = re.compile(
    r"^SUMMARY records=(\d+) success=(\d+) failed=(\d+) rejected=(\d+) "
    r"images=(\d+)/(\d+) elapsed_sec=[0-9.]+ throughput_rps=[0-9.]+$",
    re.MULTILINE,
)


@pytest.fixture()
def mock_mode(monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")


def _rows(sample_row, n: int) -> list[dict[str, str | None]]:
    return [dict(sample_row, **{"Property Address": f"{i} Sukhumvit Soi 24"}) for i in range(1, n + 1)]


def test_run_all_valid_csv(temp_workdir: Path, write_config, mock_mode, sample_row, make_csv, capsys):
    sheet = make_csv(temp_workdir / "data" / "listings.csv", _rows(sample_row, 3))

    code = cli_main([str(sheet)])

    out = capsys.readouterr().out
    assert code == 0
    m = SUMMARY_RE.search(out)
    assert m is not None, out
    assert m.groups() == ("3", "3", "0", "0", "0", "0")
    assert "INFO mode=mock imported=3" in out
    assert list((temp_workdir / "logs").iterdir()) == []


def test_run_with_rejected_rows_xlsx(temp_workdir: Path, write_config, mock_mode, sample_row, make_xlsx, capsys):
    rows = _rows(sample_row, 2)
    rows.append(dict(sample_row, **{"Property Address": None, "Location/Area": None}))
    rows.append(dict(sample_row, **{"Price (THB)": "50,000"}))
    sheet = make_xlsx(temp_workdir / "data" / "listings.xlsx", rows)

    code = cli_main([str(sheet)])

    out = capsys.readouterr().out
    assert code == 2
    assert SUMMARY_RE.search(out).groups() == ("4", "2", "0", "2", "0", "0")
    assert "WARN Row 3: Untitled Property - Title is required; Location is required" in out
    assert "WARN Row 4: 88 Sukhumvit Soi 24 - Warning: Price seems too low" in out

    [log_file] = list((temp_workdir / "logs").glob("errors-*.log"))
    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert [r["row"] for r in records] == [3, 4]
    assert {r["error_type"] for r in records} == {"VALIDATION_ERROR"}
    assert all(r["file"] == "listings.xlsx" for r in records)


def test_run_persist_failure_is_partial(temp_workdir: Path, write_config, mock_mode, sample_row, make_csv, capsys):
    sheet = make_csv(temp_workdir / "data" / "listings.csv", _rows(sample_row, 3))
    calls = {"n": 0}

    from property_import.db.record_store import InMemoryRecordStore, RecordStoreError

    original_create = InMemoryRecordStore.create

    def flaky_create(self, record):
        calls["n"] += 1
        if calls["n"] == 2:
            raise RecordStoreError("value too long for type character varying(255)")
        return original_create(self, record)

    with patch.object(InMemoryRecordStore, "create", flaky_create):
        code = cli_main([str(sheet)])

    out = capsys.readouterr().out
    assert code == 2
    assert SUMMARY_RE.search(out).groups() == ("3", "2", "1", "0", "0", "0")
    assert "ERROR failed to import 2 Sukhumvit Soi 24: value too long" in out
    [log_file] = list((temp_workdir / "logs").glob("errors-*.log"))
    record = json.loads(log_file.read_text(encoding="utf-8").splitlines()[0])
    assert record["error_type"] == "PERSIST_ERROR"
    assert record["row"] == 2


def test_run_missing_file_is_fatal(temp_workdir: Path, write_config, mock_mode, capsys):
    code = cli_main([str(temp_workdir / "data" / "nope.csv")])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR read: file not found" in out
    [log_file] = list((temp_workdir / "logs").glob("errors-*.log"))
    record = json.loads(log_file.read_text(encoding="utf-8"))
    assert record["error_type"] == "FILE_READ_ERROR"
    assert record["row"] == -1


def test_run_without_config_is_fatal(temp_workdir: Path, capsys):
    code = cli_main(["listings.csv"])
    assert code == 1
    assert "ERROR config: config file not found" in capsys.readouterr().out


def test_dry_run(temp_workdir: Path, write_config, sample_row, make_csv, capsys):
    rows = _rows(sample_row, 2) + [dict(sample_row, **{"Property Size (sqm)": None})]
    sheet = make_csv(temp_workdir / "data" / "listings.csv", rows)

    with patch("property_import.cli.runner._open_connection") as open_conn:
        code = cli_main([str(sheet), "--dry-run"])

    out = capsys.readouterr().out
    assert code == 2
    assert "SUMMARY records=3 valid=2 rejected=1 dry_run=1" in out
    open_conn.assert_not_called()


def test_inspect_data(temp_workdir: Path, write_config, sample_row, make_csv, capsys):
    sheet = make_csv(temp_workdir / "data" / "listings.csv", _rows(sample_row, 4))
    code = cli_main([str(sheet), "--inspect-data"])
    out = capsys.readouterr().out
    assert code == 0
    assert "FILE: listings.csv rows=4" in out
    assert "'Quata'" in out
    assert out.count("sample_row=") == 3


def test_live_mode_uses_postgres_store(temp_workdir: Path, write_config, sample_row, make_csv, capsys, monkeypatch):
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    sheet = make_csv(temp_workdir / "data" / "listings.csv", _rows(sample_row, 2))

    conn = MagicMock()
    cursor = conn.cursor.return_value
    cursor.fetchone.side_effect = [(101,), (102,)]
    with patch("property_import.cli.runner._open_connection", return_value=conn):
        code = cli_main([str(sheet)])

    out = capsys.readouterr().out
    assert code == 0
    assert "INFO mode=live imported=2" in out
    assert cursor.execute.call_count == 2
    sql = cursor.execute.call_args_list[0][0][0]
    assert sql.startswith('INSERT INTO properties ("title",')
    conn.close.assert_called_once()


def test_connection_failure_falls_back_to_mock(temp_workdir: Path, write_config, sample_row, make_csv, capsys, monkeypatch):
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    sheet = make_csv(temp_workdir / "data" / "listings.csv", _rows(sample_row, 1))

    with patch(
        "property_import.cli.runner._open_connection",
        side_effect=psycopg2.OperationalError("could not connect to server"),
    ):
        code = cli_main([str(sheet)])

    out = capsys.readouterr().out
    assert code == 0
    assert "WARN DB connection failed -> fallback to mock mode" in out
    assert "INFO mode=mock imported=1" in out
