from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the property import tool.

Populated by property_import.config.loader from config/import.yml after
schema validation and default application.
"""


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImageConfig:
    """Remote image resolution and local media layout."""
    media_directory: str  # filesystem directory receiving downloaded images
    media_url_prefix: str  # public path prefix returned to the record store
    image_extension: str = ".jpg"  # applied regardless of source content type
    share_hosts: tuple[str, ...] = ("drive.google.com",)
    download_url_template: str = "https://drive.google.com/uc?export=download&id={file_id}"
    download_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for an import run."""
    images: ImageConfig
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    import_source: str = "google-sheets"
    table: str = "properties"  # target table for PostgresRecordStore
