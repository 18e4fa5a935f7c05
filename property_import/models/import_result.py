from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

"""Import run result models.

ImportResult is the run-level accounting returned by the orchestrator. It is
accumulated one record at a time through ImportResultBuilder and frozen when
the run completes.
"""

__all__ = [
    "RecordState",
    "FailedImport",
    "ImportResult",
    "ImportResultBuilder",
]


class RecordState(Enum):
    """Per-record lifecycle during an import run.

    State transitions: pending → images_resolved → (persisted | persist_failed)

    - PENDING: record received, nothing done yet
    - IMAGES_RESOLVED: image URLs downloaded or passed through
    - PERSISTED: record store returned an identifier
    - PERSIST_FAILED: record store write raised (terminal, reported)
    """
    PENDING = "pending"
    IMAGES_RESOLVED = "images_resolved"
    PERSISTED = "persisted"
    PERSIST_FAILED = "persist_failed"


@dataclass(frozen=True)
class FailedImport:
    property: str  # record title
    error: str  # failure message

    def to_dict(self) -> dict[str, str]:
        return {"property": self.property, "error": self.error}


@dataclass(frozen=True)
class ImportResult:
    """Aggregated outcome of one bulk import run."""
    total: int
    success: list[str]  # persisted record ids, in processing order
    failed: list[FailedImport]
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    images_downloaded: int = 0
    images_fallback: int = 0

    @property
    def throughput_records_per_sec(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return len(self.success) / self.elapsed_seconds

    def to_response(self) -> dict[str, Any]:
        """Render the ``results`` object of the import endpoint response."""
        return {
            "total": self.total,
            "success": len(self.success),
            "failed": len(self.failed),
            "successIds": list(self.success),
            "errors": [f.to_dict() for f in self.failed],
        }


class ImportResultBuilder:
    """Accumulates per-record outcomes for an ImportResult."""

    def __init__(self, total: int) -> None:
        self.total = total
        self.start_time = datetime.now(UTC)
        self.success: list[str] = []
        self.failed: list[FailedImport] = []
        self.images_downloaded = 0
        self.images_fallback = 0

    def add_success(self, record_id: str) -> None:
        self.success.append(record_id)

    def add_failure(self, title: str, error: str) -> None:
        self.failed.append(FailedImport(property=title, error=error))

    def count_images(self, downloaded: int, fallback: int) -> None:
        self.images_downloaded += downloaded
        self.images_fallback += fallback

    def build(self) -> ImportResult:
        end_time = datetime.now(UTC)
        return ImportResult(
            total=self.total,
            success=list(self.success),
            failed=list(self.failed),
            start_time=self.start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - self.start_time).total_seconds(),
            images_downloaded=self.images_downloaded,
            images_fallback=self.images_fallback,
        )
