from __future__ import annotations

from collections.abc import Sequence

from ..models.parsed_property import ParsedProperty
from ..models.validation import RowError, ValidationOutcome

"""Record validation.

Each record is checked on its own; the outcome partitions the input so that
every record appears exactly once, either in ``valid`` or in ``errors``.

Price plausibility warnings go into the same error list as the hard checks,
so a record with only a warning is still kept out of ``valid``.
"""

__all__ = [
    "MIN_PLAUSIBLE_PRICE",
    "MAX_PLAUSIBLE_PRICE",
    "check_property",
    "validate_properties",
]

MIN_PLAUSIBLE_PRICE = 100_000
MAX_PLAUSIBLE_PRICE = 100_000_000

TITLE_REQUIRED = "Title is required"
PRICE_REQUIRED = "Valid price is required"
LOCATION_REQUIRED = "Location is required"
BEDROOMS_REQUIRED = "Bedrooms is required"
BATHROOMS_REQUIRED = "Bathrooms is required"
AREA_REQUIRED = "Area is required"
PRICE_TOO_LOW = "Warning: Price seems too low"
PRICE_TOO_HIGH = "Warning: Price seems too high"


def check_property(prop: ParsedProperty) -> list[str]:
    """Return every error/warning message for one record (empty list = valid)."""
    errors: list[str] = []

    if not prop.title:
        errors.append(TITLE_REQUIRED)
    if not prop.price or prop.price <= 0:
        errors.append(PRICE_REQUIRED)
    if not prop.location:
        errors.append(LOCATION_REQUIRED)
    # 0 はスタジオ (有効値)、None のみ欠落扱い
    if prop.bedrooms is None:
        errors.append(BEDROOMS_REQUIRED)
    if not prop.bathrooms:
        errors.append(BATHROOMS_REQUIRED)
    if not prop.area or prop.area <= 0:
        errors.append(AREA_REQUIRED)

    if prop.price is not None:
        if prop.price < MIN_PLAUSIBLE_PRICE:
            errors.append(PRICE_TOO_LOW)
        if prop.price > MAX_PLAUSIBLE_PRICE:
            errors.append(PRICE_TOO_HIGH)

    return errors


def validate_properties(properties: Sequence[ParsedProperty]) -> ValidationOutcome:
    valid: list[ParsedProperty] = []
    errors: list[RowError] = []
    for index, prop in enumerate(properties):
        messages = check_property(prop)
        if messages:
            errors.append(RowError(index=index, property=prop, errors=messages))
        else:
            valid.append(prop)
    return ValidationOutcome(valid=valid, errors=errors)
