from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from property_import.models.parsed_property import RawRow

"""Spreadsheet reader for Google Sheets exports (CSV / Excel).

- The decoder is selected by file extension (.csv → read_csv, .xlsx/.xlsm/.xls → ExcelFile).
- Excel workbooks: first sheet only.
- Row 1 is the header row; header text is kept literally (the upstream sheet
  has a misspelled "Quata" column that must still match).
- Fully empty rows are skipped; cells are rendered to text, blanks become None.

Any decode problem is reported as a single SpreadsheetReadError: the batch
gets either all rows or none.
"""

__all__ = [
    "SpreadsheetReadError",
    "SheetData",
    "CSV_EXTENSIONS",
    "EXCEL_EXTENSIONS",
    "read_raw_frame",
    "normalize_sheet",
    "read_sheet",
    "read_spreadsheet",
    "read_spreadsheet_bytes",
]

CSV_EXTENSIONS = {".csv"}
EXCEL_EXTENSIONS = {".xlsx", ".xlsm", ".xls"}


class SpreadsheetReadError(Exception):
    """Raised when a file cannot be decoded into rows."""


@dataclass
class SheetData:
    source: str
    columns: list[str]
    rows: list[RawRow]  # 列名 (見出しそのまま) → 文字列 or None


def _suffix_of(name: str) -> str:
    return Path(name).suffix.lower()


def read_raw_frame(source: Path | io.BytesIO, suffix: str) -> pd.DataFrame:
    """Decode the file into a header-less DataFrame (row 0 = header row)."""
    if suffix in CSV_EXTENSIONS:
        # 全セル文字列で読み込み、"NA" 等の自動 NaN 変換は行わない
        return pd.read_csv(
            source,
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8",
        )
    if suffix in EXCEL_EXTENSIONS:
        with pd.ExcelFile(source) as xls:
            if not xls.sheet_names:
                raise SpreadsheetReadError("workbook has no sheets")
            first = xls.sheet_names[0]
            return xls.parse(first, header=None, dtype=object, keep_default_na=False)
    raise SpreadsheetReadError(
        f"unsupported file type '{suffix or '<none>'}' (expected .csv, .xlsx, .xlsm or .xls)"
    )


def _cell_to_text(val: Any) -> str | None:
    if val is None or val is pd.NaT:
        return None
    if isinstance(val, bool):
        return "TRUE" if val else "FALSE"
    if isinstance(val, float):
        if pd.isna(val):
            return None
        # Excel stores 3 as 3.0
        if val.is_integer():
            return str(int(val))
        return str(val)
    if isinstance(val, (pd.Timestamp, datetime)):
        if pd.isna(val):
            return None
        if val.hour == 0 and val.minute == 0 and val.second == 0 and val.microsecond == 0:
            return val.date().isoformat()
        return val.isoformat()
    if isinstance(val, date):
        return val.isoformat()
    text = str(val)
    if text.strip() == "":
        return None
    return text


def normalize_sheet(df: pd.DataFrame, source: str) -> SheetData:
    """Turn a header-less DataFrame into header-keyed RawRows.

    Steps:
    1. Validate a header row exists
    2. Take header names from row 0 as-is
    3. Remaining rows become data rows; rows with no non-blank cell are dropped
    """
    if df.shape[0] < 1:
        raise SpreadsheetReadError(f"'{source}' has no header row")
    columns = [_cell_to_text(c) or "" for c in df.iloc[0].tolist()]
    if not any(columns):
        raise SpreadsheetReadError(f"'{source}' has an empty header row")

    rows: list[RawRow] = []
    for raw in df.iloc[1:].itertuples(index=False, name=None):
        row: RawRow = {}
        for col, val in zip(columns, raw, strict=False):
            if not col or col in row:
                # 見出し無し列 / 重複見出しは先勝ち
                continue
            row[col] = _cell_to_text(val)
        if all(v is None for v in row.values()):
            continue
        rows.append(row)
    return SheetData(source=source, columns=columns, rows=rows)


def read_sheet(path: Path) -> SheetData:
    """Read a CSV/Excel file from disk into SheetData.

    Raises:
        SpreadsheetReadError: missing file, unsupported extension or any
            decode failure.
    """
    if not path.exists():
        raise SpreadsheetReadError(f"file not found: {path}")
    try:
        df = read_raw_frame(path, _suffix_of(path.name))
    except SpreadsheetReadError:
        raise
    except Exception as e:
        raise SpreadsheetReadError(f"failed to decode '{path.name}': {e}") from e
    return normalize_sheet(df, path.name)


def read_spreadsheet(path: Path) -> list[RawRow]:
    return read_sheet(path).rows


def read_spreadsheet_bytes(data: bytes, filename: str) -> list[RawRow]:
    """Decode an uploaded file held in memory; the extension of ``filename`` picks the decoder."""
    try:
        df = read_raw_frame(io.BytesIO(data), _suffix_of(filename))
    except SpreadsheetReadError:
        raise
    except Exception as e:
        raise SpreadsheetReadError(f"failed to decode '{filename}': {e}") from e
    return normalize_sheet(df, filename).rows
