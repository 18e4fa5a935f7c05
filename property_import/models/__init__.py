"""Domain models for the bulk property import pipeline."""

from .config_models import DatabaseConfig, ImageConfig, ImportConfig
from .error_record import ErrorRecord
from .import_result import FailedImport, ImportResult, ImportResultBuilder, RecordState
from .parsed_property import ParsedProperty, RawRow
from .validation import RowError, ValidationOutcome

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImageConfig",
    "ImportConfig",
    # Pipeline records
    "RawRow",
    "ParsedProperty",
    "RowError",
    "ValidationOutcome",
    # Run accounting
    "ErrorRecord",
    "FailedImport",
    "ImportResult",
    "ImportResultBuilder",
    "RecordState",
]
