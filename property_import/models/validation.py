from __future__ import annotations

from dataclasses import dataclass, field

from .parsed_property import ParsedProperty

"""Validation outcome models.

A ValidationOutcome partitions the normalized rows of one file: every input
record lands in exactly one of ``valid`` or ``errors``.
"""

__all__ = [
    "RowError",
    "ValidationOutcome",
]


@dataclass(frozen=True)
class RowError:
    """A rejected record with its reasons.

    ``index`` is the 0-based position in the original row sequence; operator
    facing messages print it as ``Row index+1``.
    """
    index: int
    property: ParsedProperty
    errors: list[str]

    @property
    def row_label(self) -> str:
        return f"Row {self.index + 1}"


@dataclass(frozen=True)
class ValidationOutcome:
    valid: list[ParsedProperty] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.valid) + len(self.errors)
