from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from property_import.models.config_models import DatabaseConfig, ImageConfig, ImportConfig

"""Config loader.

Responsibilities:
- Load YAML config/import.yml
- Validate against config_schema.json (unknown keys rejected)
- Apply defaults for optional keys
"""

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"

DEFAULT_SHARE_HOSTS = ("drive.google.com",)
DEFAULT_DOWNLOAD_TEMPLATE = "https://drive.google.com/uc?export=download&id={file_id}"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data fails schema validation (missing required keys,
            wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    images = ImageConfig(
        media_directory=data["media_directory"],
        media_url_prefix=data["media_url_prefix"].rstrip("/"),
        image_extension=data.get("image_extension", ".jpg"),
        share_hosts=tuple(data.get("share_hosts", DEFAULT_SHARE_HOSTS)),
        download_url_template=data.get("download_url_template", DEFAULT_DOWNLOAD_TEMPLATE),
        download_timeout_seconds=float(data.get("download_timeout_seconds", 30)),
    )
    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return ImportConfig(
        images=images,
        database=db,
        import_source=data.get("import_source", "google-sheets"),
        table=data.get("table", "properties"),
    )
