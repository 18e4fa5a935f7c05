from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from ..db.record_store import RecordStore
from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import PERSIST_ERROR, ErrorRecord
from ..models.import_result import ImportResult, ImportResultBuilder, RecordState
from ..models.parsed_property import ParsedProperty
from .image_resolver import ImageResolver
from .progress import ProgressTracker

"""Bulk import orchestration.

Validated records are imported strictly one at a time, in input order:

1. resolve the record's images (sequential downloads, original URL on failure)
2. build the persistence payload
3. write it through the record store
4. account the outcome (id on success, title + message on failure)

A failing record is reported and the loop moves on; there is no rollback
across records and no automatic retry.
"""

__all__ = [
    "DEFAULT_IMPORT_SOURCE",
    "build_record_payload",
    "import_properties",
]

logger = logging.getLogger(__name__)

DEFAULT_IMPORT_SOURCE = "google-sheets-import"


def build_record_payload(
    prop: ParsedProperty, images: Sequence[str], import_date: datetime | None = None
) -> dict[str, Any]:
    """Full record-store payload for one property.

    ``features`` is the legacy aggregate (views + private features + rooms &
    spaces) still read by older listing pages.
    """
    return {
        # Basic info
        "title": prop.title,
        "description": prop.description,
        "price": prop.price,
        "location": prop.location,
        "bedrooms": prop.bedrooms,
        "bathrooms": prop.bathrooms,
        "area": prop.area,
        "property_type": prop.property_type,
        "listing_type": prop.listing_type,
        "status": prop.status,
        # Owner info
        "owner_name": prop.owner_name,
        "owner_line": prop.owner_line,
        "owner_phone": prop.owner_phone,
        "owner_email": prop.owner_email,
        "owner_type": prop.owner_type,
        # Listing details
        "commission": prop.commission,
        "short_term_let": prop.short_term_let,
        "quota": prop.quota,
        "land_size": prop.land_size,
        # Features
        "views": list(prop.views),
        "private_features": list(prop.private_features),
        "rooms_spaces": list(prop.rooms_spaces),
        "communal_facilities": list(prop.communal_facilities),
        "technical_equipment": list(prop.technical_equipment),
        "security": list(prop.security),
        "location_features": list(prop.location_features),
        # Kitchen & layout
        "furnishing_status": prop.furnishing_status,
        "kitchen_features": list(prop.kitchen_features),
        "layout_features": list(prop.layout_features or []),
        # Financial
        "maintenance_charges": prop.maintenance_charges,
        "common_area_fee": prop.common_area_fee,
        "transfer_costs": prop.transfer_costs,
        # Availability
        "available_from": prop.available_from,
        "special_remarks": prop.special_remarks,
        # Processed images (downloaded paths or original URLs)
        "images": list(images),
        "features": [*prop.views, *prop.private_features, *prop.rooms_spaces],
        # Import tracking
        "import_source": prop.import_source or DEFAULT_IMPORT_SOURCE,
        "import_date": import_date or datetime.now(UTC),
    }


async def import_properties(
    properties: Sequence[ParsedProperty],
    store: RecordStore,
    resolver: ImageResolver,
    *,
    error_log: ErrorLogBuffer | None = None,
    source_name: str = "<api>",
    row_numbers: Sequence[int] | None = None,
    image_cache: dict[str, str] | None = None,
) -> ImportResult:
    """Import validated properties and return the run accounting.

    Args:
        properties: records that passed validation
        store: record store receiving one ``create`` per record
        resolver: image resolver used for each record's image list
        error_log: optional buffer receiving PERSIST_ERROR records
        source_name: file name written to the error log
        row_numbers: 1-based spreadsheet row of each record, for the error log
        image_cache: optional URL → stored path map shared across records

    Returns:
        ImportResult with ``success`` / ``failed`` in processing order
    """
    builder = ImportResultBuilder(total=len(properties))

    with ProgressTracker(len(properties)) as progress:
        for position, prop in enumerate(properties):
            progress.start_record(prop.title)
            state = RecordState.PENDING
            downloaded_before = resolver.stats.downloaded
            fallback_before = resolver.stats.fallback
            try:
                images: list[str] = []
                if prop.images:
                    logger.info(f"downloading {len(prop.images)} images for {prop.title}...")
                    images = await resolver.process_property_images(prop.images, cache=image_cache)
                state = RecordState.IMAGES_RESOLVED

                payload = build_record_payload(prop, images)
                record_id = store.create(payload)
                state = RecordState.PERSISTED
            except Exception as e:
                message = str(e) or "Unknown error"
                logger.error(f"failed to import {prop.title}: {message}")
                builder.add_failure(prop.title, message)
                if error_log is not None:
                    row = row_numbers[position] if row_numbers is not None else -1
                    error_log.append(
                        ErrorRecord.create(
                            file=source_name,
                            row=row,
                            error_type=PERSIST_ERROR,
                            message=f"{prop.title}: {message}",
                        )
                    )
                state = RecordState.PERSIST_FAILED
            else:
                builder.add_success(record_id)
                logger.info(f"imported: {prop.title} (ID: {record_id})")
            finally:
                builder.count_images(
                    resolver.stats.downloaded - downloaded_before,
                    resolver.stats.fallback - fallback_before,
                )
                logger.debug(f"record {position + 1}/{len(properties)} state={state.value}")

            progress.set_postfix(success=len(builder.success), failed=len(builder.failed))
            progress.finish_record(success=(state == RecordState.PERSISTED))

    return builder.build()
