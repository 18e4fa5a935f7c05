# Shared pytest fixtures
from __future__ import annotations

import csv
import tempfile
from collections.abc import Callable
from pathlib import Path

import httpx
import pandas as pd
import pytest

from property_import.logging.init import reset_logging
from property_import.models.config_models import ImageConfig
from property_import.services.image_resolver import ImageResolver


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_config_yaml() -> str:
    return """media_directory: ./public/uploads/properties
media_url_prefix: /uploads/properties
share_hosts: [drive.google.com]
download_timeout_seconds: 5
import_source: google-sheets
table: properties
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def sample_row() -> dict[str, str | None]:
    """One fully populated row as read from the intake sheet."""
    return {
        "Timestamp": "2024-05-01",
        "Email Address": "form@example.com",
        "Line": "@somchai",
        "Name (Owner/Agent)": "Somchai (Owner)",
        "Phone Number": "0812345678",
        "Property Address": "88 Sukhumvit Soi 24",
        "Listing Type": "Sale",
        "Price (THB)": "1,500,000",
        "Commission Rate (%)": "5",
        "Short Term Let Available?": "Yes",
        "Property Type": "Condo",
        "Property Size (sqm)": "45",
        "Land Size (SQWha)": None,
        "Quata": "Foreign",
        "Number of Bedrooms": "2",
        "Number of Bathrooms": "1",
        "Location/Area": "Sukhumvit",
        "Views": "City, Pool",
        "Private Features": "Balcony",
        "Rooms & Spaces": "Study",
        "Communal Facilities": "Pool, Gym,  Parking",
        "Technical Equipment": None,
        "Security": "CCTV",
        "Location Features": "Near BTS",
        "Furnishing Status": "Fully furnished",
        "Kitchen & Layout Features": "Open kitchen",
        "Maintenance Charges (Baht/Month)": "2000",
        "Common Area Fee (Baht/sqm/Month)": "45.5",
        "Transfer Costs Payment": "Split 50/50",
        "Special Features or Remarks": None,
        "Available From": "Immediately",
        "Property Photos": None,
        "Email": "owner@example.com",
    }


def _write_csv(path: Path, rows: list[dict[str, str | None]]) -> Path:
    headers = list(rows[0].keys())
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=headers)
        writer.writeheader()
        for row in rows:
            writer.writerow({k: ("" if v is None else v) for k, v in row.items()})
    return path


def _write_xlsx(path: Path, rows: list[dict[str, object]]) -> Path:
    df = pd.DataFrame(rows)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Form Responses 1", index=False)
    return path


@pytest.fixture()
def make_csv() -> Callable[[Path, list[dict[str, str | None]]], Path]:
    return _write_csv


@pytest.fixture()
def make_xlsx() -> Callable[[Path, list[dict[str, object]]], Path]:
    return _write_xlsx


@pytest.fixture()
def image_config(tmp_path: Path) -> ImageConfig:
    return ImageConfig(
        media_directory=str(tmp_path / "media"),
        media_url_prefix="/uploads/properties",
        download_timeout_seconds=5,
    )


@pytest.fixture()
def make_resolver(image_config: ImageConfig) -> Callable[..., ImageResolver]:
    """Build an ImageResolver whose HTTP traffic goes to ``handler``."""
    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> ImageResolver:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return ImageResolver(image_config, client=client)
    return _make
