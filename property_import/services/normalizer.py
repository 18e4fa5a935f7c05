from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import UTC, datetime

from ..models.parsed_property import ParsedProperty, RawRow

"""Row normalizer: Google Sheets RawRow → ParsedProperty.

Bad or missing cell data never raises here. Every field degrades to a default
so that the validator is the single place where rows are accepted or
rejected.
"""

__all__ = [
    "PROPERTY_TYPE_MAP",
    "LISTING_TYPE_MAP",
    "split_and_clean",
    "parse_int",
    "parse_float",
    "map_property_type",
    "map_listing_type",
    "build_description",
    "convert_row_to_property",
    "convert_rows",
]

# Column headers exactly as they appear in the upstream sheet
COL_EMAIL_ADDRESS = "Email Address"
COL_LINE = "Line"
COL_OWNER_NAME = "Name (Owner/Agent)"
COL_PHONE = "Phone Number"
COL_ADDRESS = "Property Address"
COL_LISTING_TYPE = "Listing Type"
COL_PRICE = "Price (THB)"
COL_COMMISSION = "Commission Rate (%)"
COL_SHORT_TERM = "Short Term Let Available?"
COL_PROPERTY_TYPE = "Property Type"
COL_SIZE = "Property Size (sqm)"
COL_LAND_SIZE = "Land Size (SQWha)"
COL_QUOTA = "Quata"  # sic: the sheet's header is misspelled
COL_BEDROOMS = "Number of Bedrooms"
COL_BATHROOMS = "Number of Bathrooms"
COL_LOCATION = "Location/Area"
COL_VIEWS = "Views"
COL_PRIVATE_FEATURES = "Private Features"
COL_ROOMS_SPACES = "Rooms & Spaces"
COL_COMMUNAL = "Communal Facilities"
COL_TECHNICAL = "Technical Equipment"
COL_SECURITY = "Security"
COL_LOCATION_FEATURES = "Location Features"
COL_FURNISHING = "Furnishing Status"
COL_KITCHEN_LAYOUT = "Kitchen & Layout Features"
COL_MAINTENANCE = "Maintenance Charges (Baht/Month)"
COL_COMMON_AREA_FEE = "Common Area Fee (Baht/sqm/Month)"
COL_TRANSFER_COSTS = "Transfer Costs Payment"
COL_REMARKS = "Special Features or Remarks"
COL_AVAILABLE_FROM = "Available From"
COL_PHOTOS = "Property Photos"
COL_EMAIL = "Email"

PROPERTY_TYPE_MAP: dict[str, str] = {
    "Condo": "condo",
    "House": "house",
    "Villa": "villa",
    "Land": "land",
}
DEFAULT_PROPERTY_TYPE = "condo"

LISTING_TYPE_MAP: dict[str, str] = {
    "Sale": "sale",
    "Rent": "rent",
}
DEFAULT_LISTING_TYPE = "sale"

STUDIO = "Studio"
DEFAULT_BEDROOMS = 1
DEFAULT_BATHROOMS = 1
DEFAULT_COMMISSION = 3.0
IMPORT_SOURCE = "google-sheets"

# Leading-number parsing: "3 beds" → 3, "2.5%" → 2.5, "abc" → None
_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def _text(row: RawRow, column: str) -> str | None:
    value = row.get(column)
    if value is None:
        return None
    value = str(value)
    return value if value.strip() else None


def split_and_clean(value: str | None) -> list[str]:
    """Split a comma-separated cell, trim tokens and drop empty ones."""
    if not value:
        return []
    return [token.strip() for token in value.split(",") if token.strip()]


def parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    m = _INT_RE.match(value)
    return int(m.group(1)) if m else None


def parse_float(value: str | None) -> float | None:
    if value is None:
        return None
    m = _FLOAT_RE.match(value)
    return float(m.group(1)) if m else None


def map_property_type(value: str | None) -> str:
    return PROPERTY_TYPE_MAP.get((value or "").strip(), DEFAULT_PROPERTY_TYPE)


def map_listing_type(value: str | None) -> str:
    return LISTING_TYPE_MAP.get((value or "").strip(), DEFAULT_LISTING_TYPE)


def _sentence(text: str) -> str:
    return text.rstrip().rstrip(".") + "."


def build_description(
    *,
    studio: bool,
    bedrooms: int,
    property_type: str,
    listing_type: str,
    location: str,
    area: str | None,
    furnishing: str | None,
    views: str | None,
    remarks: str | None,
) -> str:
    """Compose the generated listing description.

    Optional clauses are only added when their source value is present.
    """
    bedrooms_text = STUDIO if studio else f"{bedrooms} bedroom"
    head = f"{bedrooms_text} {property_type} for {listing_type.lower()}"
    if location:
        head += f" in {location}"
    parts = [_sentence(head)]
    if area:
        parts.append(_sentence(f"{area.strip()} sqm"))
    if furnishing:
        parts.append(_sentence(furnishing))
    if views:
        parts.append(_sentence(f"Views: {views.strip()}"))
    if remarks:
        parts.append(remarks.strip())
    return " ".join(parts)


def convert_row_to_property(row: RawRow, *, import_source: str = IMPORT_SOURCE) -> ParsedProperty:
    """Convert one Google Sheets row to a ParsedProperty."""
    location = (_text(row, COL_LOCATION) or "").strip()
    address = (_text(row, COL_ADDRESS) or "").strip()
    title = address or (f"Property in {location}" if location else "")

    raw_bedrooms = _text(row, COL_BEDROOMS)
    studio = raw_bedrooms is not None and raw_bedrooms.strip() == STUDIO
    if studio:
        bedrooms = 0
    else:
        bedrooms = parse_int(raw_bedrooms) or DEFAULT_BEDROOMS

    raw_price = _text(row, COL_PRICE)
    price = parse_int(raw_price.replace(",", "")) if raw_price else None

    raw_type = _text(row, COL_PROPERTY_TYPE)
    raw_listing = _text(row, COL_LISTING_TYPE)
    property_type = map_property_type(raw_type)
    listing_type = map_listing_type(raw_listing)

    raw_area = _text(row, COL_SIZE)
    furnishing = _text(row, COL_FURNISHING)
    raw_views = _text(row, COL_VIEWS)
    remarks = _text(row, COL_REMARKS)

    owner_name = _text(row, COL_OWNER_NAME)

    description = build_description(
        studio=studio,
        bedrooms=bedrooms,
        property_type=(raw_type or property_type).strip(),
        listing_type=(raw_listing or listing_type).strip(),
        location=location,
        area=raw_area,
        furnishing=furnishing,
        views=raw_views,
        remarks=remarks,
    )

    return ParsedProperty(
        title=title,
        price=price or 0,
        location=location,
        bedrooms=bedrooms,
        bathrooms=parse_int(_text(row, COL_BATHROOMS)) or DEFAULT_BATHROOMS,
        area=parse_float(raw_area) or 0.0,
        property_type=property_type,
        listing_type=listing_type,
        status="active",
        owner_name=owner_name,
        owner_line=_text(row, COL_LINE),
        owner_phone=_text(row, COL_PHONE),
        owner_email=_text(row, COL_EMAIL) or _text(row, COL_EMAIL_ADDRESS),
        owner_type="Owner" if owner_name and "Owner" in owner_name else "Agent",
        commission=parse_float(_text(row, COL_COMMISSION)) or DEFAULT_COMMISSION,
        short_term_let=(_text(row, COL_SHORT_TERM) or "").strip() == "Yes",
        quota=_text(row, COL_QUOTA),
        land_size=_text(row, COL_LAND_SIZE),
        views=split_and_clean(raw_views),
        private_features=split_and_clean(_text(row, COL_PRIVATE_FEATURES)),
        rooms_spaces=split_and_clean(_text(row, COL_ROOMS_SPACES)),
        communal_facilities=split_and_clean(_text(row, COL_COMMUNAL)),
        technical_equipment=split_and_clean(_text(row, COL_TECHNICAL)),
        security=split_and_clean(_text(row, COL_SECURITY)),
        location_features=split_and_clean(_text(row, COL_LOCATION_FEATURES)),
        furnishing_status=furnishing,
        kitchen_features=split_and_clean(_text(row, COL_KITCHEN_LAYOUT)),
        maintenance_charges=parse_int(_text(row, COL_MAINTENANCE)) or None,
        common_area_fee=parse_float(_text(row, COL_COMMON_AREA_FEE)) or None,
        transfer_costs=_text(row, COL_TRANSFER_COSTS),
        available_from=_text(row, COL_AVAILABLE_FROM),
        special_remarks=remarks,
        images=split_and_clean(_text(row, COL_PHOTOS)),
        description=description,
        import_source=import_source,
        import_date=datetime.now(UTC),
    )


def convert_rows(rows: Iterable[RawRow], *, import_source: str = IMPORT_SOURCE) -> list[ParsedProperty]:
    """Normalize every row; output order and length match the input."""
    return [convert_row_to_property(row, import_source=import_source) for row in rows]
