from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from typing import Any

"""ParsedProperty: canonical intermediate record for one spreadsheet row.

The normalizer produces one ParsedProperty per non-empty RawRow. The same
record is accepted back from the import endpoint as camelCase JSON
(see ``to_dict`` / ``from_dict``), so the JSON key names are part of the
contract with the browser-side preview step.
"""

__all__ = [
    "RawRow",
    "ParsedProperty",
    "LIST_FIELDS",
]

# 列見出し (スプレッドシートの文字列そのまま) -> セル値
RawRow = dict[str, "str | None"]

# Feature columns split from comma-separated cells
LIST_FIELDS: tuple[str, ...] = (
    "views",
    "private_features",
    "rooms_spaces",
    "communal_facilities",
    "technical_equipment",
    "security",
    "location_features",
    "kitchen_features",
    "layout_features",
    "images",
)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now(UTC)


@dataclass(frozen=True)
class ParsedProperty:
    """Normalized property listing ready for validation and import."""

    # Basic info
    title: str
    price: int | None
    location: str
    bedrooms: int | None
    bathrooms: int | None
    area: float | None
    property_type: str = "condo"
    listing_type: str = "sale"
    status: str = "active"

    # Owner info
    owner_name: str | None = None
    owner_line: str | None = None
    owner_phone: str | None = None
    owner_email: str | None = None
    owner_type: str | None = None

    # Listing details
    commission: float | None = None
    short_term_let: bool = False
    quota: str | None = None
    land_size: str | None = None

    # Features
    views: list[str] = field(default_factory=list)
    private_features: list[str] = field(default_factory=list)
    rooms_spaces: list[str] = field(default_factory=list)
    communal_facilities: list[str] = field(default_factory=list)
    technical_equipment: list[str] = field(default_factory=list)
    security: list[str] = field(default_factory=list)
    location_features: list[str] = field(default_factory=list)

    # Kitchen & layout
    furnishing_status: str | None = None
    kitchen_features: list[str] = field(default_factory=list)
    layout_features: list[str] = field(default_factory=list)

    # Financial
    maintenance_charges: int | None = None
    common_area_fee: float | None = None
    transfer_costs: str | None = None

    # Availability
    available_from: str | None = None
    special_remarks: str | None = None

    # Raw image URLs, index 0 is the primary image
    images: list[str] = field(default_factory=list)

    description: str = ""

    # Import tracking
    import_source: str = "google-sheets"
    import_date: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape used by the import endpoint."""
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                value = value.isoformat().replace("+00:00", "Z")
            elif isinstance(value, list):
                value = list(value)
            out[_camel(f.name)] = value
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ParsedProperty:
        """Build a record from endpoint JSON.

        Missing keys fall back to the dataclass defaults; required keys that
        are absent become ``None`` / empty so the validator can report them
        instead of raising here.
        """
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            key = _camel(f.name)
            if key not in data or data[key] is None:
                continue
            value = data[key]
            if f.name in LIST_FIELDS:
                value = [str(v) for v in value] if isinstance(value, list) else []
            elif f.name == "import_date":
                value = _parse_datetime(value)
            kwargs[f.name] = value
        kwargs.setdefault("title", "")
        kwargs.setdefault("price", None)
        kwargs.setdefault("location", "")
        kwargs.setdefault("bedrooms", None)
        kwargs.setdefault("bathrooms", None)
        kwargs.setdefault("area", None)
        return cls(**kwargs)
