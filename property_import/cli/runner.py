from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from property_import.config.loader import ConfigError, load_config
from property_import.db.record_store import InMemoryRecordStore, PostgresRecordStore, RecordStore
from property_import.logging.error_log import ErrorLogBuffer
from property_import.logging.init import log_summary, setup_logging
from property_import.models.config_models import ImportConfig
from property_import.models.error_record import FILE_READ_ERROR, VALIDATION_ERROR, ErrorRecord
from property_import.models.import_result import ImportResult
from property_import.models.parsed_property import ParsedProperty
from property_import.models.validation import ValidationOutcome
from property_import.services.image_resolver import ImageResolver
from property_import.services.normalizer import convert_rows
from property_import.services.orchestrator import import_properties
from property_import.services.summary import render_summary_line
from property_import.services.validator import validate_properties
from property_import.spreadsheet.reader import SpreadsheetReadError, read_sheet

"""CLI entrypoint.

Flow:
- Load .env and config/import.yml
- Read + normalize + validate one CSV/Excel export
- Report rejected rows (WARN lines + error log)
- Import the valid rows (images, record store) unless --dry-run
- Print the SUMMARY line and exit with 0 / 2 (partial) / 1 (fatal)
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG_PATH = Path("config/import.yml")


def _resolve_dsn(cfg: ImportConfig) -> str:
    """Connection string resolution order:

    1. DATABASE_URL / PGDSN (the .env file is loaded with override first)
    2. individual PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    3. the `database` section of config/import.yml for anything missing
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


def _open_connection(cfg: ImportConfig) -> Any:  # pragma: no cover (needs a live database)
    conn = psycopg2.connect(_resolve_dsn(cfg))
    # 1 レコード = 1 トランザクション (失敗レコードが後続を巻き込まない)
    conn.autocommit = True
    return conn


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; .env values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Google Sheets (CSV/Excel) -> property listings bulk importer")
    p.add_argument("file", type=Path, help="CSV or Excel export to import")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to import.yml")
    p.add_argument("--dry-run", action="store_true", help="Parse and validate only, import nothing")
    p.add_argument("--inspect-data", action="store_true", help="Print headers & first rows then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _inspect_data(path: Path) -> int:
    try:
        sheet = read_sheet(path)
    except SpreadsheetReadError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    print(f"FILE: {sheet.source} rows={len(sheet.rows)}")
    print(f"  columns={sheet.columns}")
    for row in sheet.rows[:3]:
        print("  sample_row=", {k: v for k, v in row.items() if v is not None})
    return EXIT_SUCCESS_ALL


def _report_rejections(outcome: ValidationOutcome, error_log: ErrorLogBuffer, source: str, logger: Any) -> None:
    for row_error in outcome.errors:
        title = row_error.property.title or "Untitled Property"
        reasons = "; ".join(row_error.errors)
        logger.warning(f"{row_error.row_label}: {title} - {reasons}")
        error_log.append(
            ErrorRecord.create(
                file=source,
                row=row_error.index + 1,
                error_type=VALIDATION_ERROR,
                message=f"{title}: {reasons}",
            )
        )


def _validate_and_report(
    properties: list[ParsedProperty], error_log: ErrorLogBuffer, source: str, logger: Any
) -> ValidationOutcome:
    outcome = validate_properties(properties)
    logger.info(f"parsed {len(properties)} rows: valid={len(outcome.valid)} rejected={len(outcome.errors)}")
    _report_rejections(outcome, error_log, source, logger)
    return outcome


async def _run_import(
    cfg: ImportConfig,
    valid: list[ParsedProperty],
    store: RecordStore,
    error_log: ErrorLogBuffer,
    source: str,
    row_numbers: list[int],
) -> ImportResult:
    async with ImageResolver(cfg.images) as resolver:
        return await import_properties(
            valid,
            store,
            resolver,
            error_log=error_log,
            source_name=source,
            row_numbers=row_numbers,
            image_cache={},
        )


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみ sys.argv を読む (テストで main([...]) を呼ぶため)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        for h in logger.handlers:
            h.setLevel("DEBUG")
        logger.setLevel("DEBUG")
        logger.debug("debug mode enabled")

    path: Path = args.file
    if args.inspect_data:
        return _inspect_data(path)

    logger.info(f"Processing file: {path}")
    error_log = ErrorLogBuffer()
    source = path.name

    try:
        rows = read_sheet(path).rows
    except SpreadsheetReadError as e:
        logger.error(f"read: {e}")
        error_log.append(ErrorRecord.create(file=source, row=-1, error_type=FILE_READ_ERROR, message=str(e)))
        error_log.flush()
        return EXIT_FATAL

    properties = convert_rows(rows, import_source=cfg.import_source)
    outcome = _validate_and_report(properties, error_log, source, logger)
    rejected = {e.index for e in outcome.errors}
    row_numbers = [i + 1 for i in range(len(properties)) if i not in rejected]

    if args.dry_run:
        log_summary(f"records={len(properties)} valid={len(outcome.valid)} rejected={len(outcome.errors)} dry_run=1")
        _flush_error_log(error_log, logger)
        return EXIT_PARTIAL_FAILURE if outcome.errors else EXIT_SUCCESS_ALL

    # DB 接続制御: テスト等で完全に無効化したい場合 DISABLE_DB_CONNECT=1
    conn = None
    store: RecordStore
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
    else:
        try:
            conn = _open_connection(cfg)
        except psycopg2.Error as db_e:
            logger.warning(f"DB connection failed -> fallback to mock mode: {db_e}")
    if conn is None:
        db_mode = "mock"
        store = InMemoryRecordStore()
    else:
        db_mode = "live"
        store = PostgresRecordStore(conn.cursor(), table=cfg.table)

    try:
        result = asyncio.run(_run_import(cfg, outcome.valid, store, error_log, source, row_numbers))
    finally:
        if conn is not None:
            conn.close()

    logger.info(f"mode={db_mode} imported={len(result.success)}")

    summary_line = render_summary_line(result, rejected=len(outcome.errors))
    # log_summary が "SUMMARY " を付与するため除去
    log_summary(summary_line[len("SUMMARY "):])
    _flush_error_log(error_log, logger)

    if result.failed or outcome.errors:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def _flush_error_log(error_log: ErrorLogBuffer, logger: Any) -> None:
    try:
        path = error_log.flush()
    except OSError as e:
        logger.warning(f"failed to write error log: {e}")
        return
    if path is not None:
        logger.info(f"error log: {path}")
