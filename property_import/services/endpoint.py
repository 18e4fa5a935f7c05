from __future__ import annotations

import logging
from typing import Any

from ..db.record_store import RecordStore
from ..logging.error_log import ErrorLogBuffer
from ..models.parsed_property import ParsedProperty
from .image_resolver import ImageResolver
from .orchestrator import import_properties

"""Bulk import endpoint contract (POST /api/properties/import).

Framework-agnostic: the hosting web layer resolves the session and decodes
the JSON body, then returns the (status, payload) pair produced here.
"""

__all__ = [
    "handle_import_request",
]

logger = logging.getLogger(__name__)


async def handle_import_request(
    method: str,
    authenticated: bool,
    body: Any,
    store: RecordStore,
    resolver: ImageResolver,
    *,
    error_log: ErrorLogBuffer | None = None,
) -> tuple[int, dict[str, Any]]:
    """Run a bulk import for ``{"properties": [...]}`` and map it to an HTTP answer.

    - 405 for anything but POST
    - 401 when the caller has no session
    - 400 when ``properties`` is not a list
    - 200 ``{message, results}`` once every record has been attempted
    - 500 ``{error, message}`` on an unexpected failure
    """
    if method.upper() != "POST":
        return 405, {"error": "Method not allowed"}
    if not authenticated:
        return 401, {"error": "Unauthorized"}

    try:
        items = body.get("properties") if isinstance(body, dict) else None
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            return 400, {"error": "Invalid request: properties array required"}

        properties = [ParsedProperty.from_dict(item) for item in items]
        result = await import_properties(properties, store, resolver, error_log=error_log)
        return 200, {"message": "Import completed", "results": result.to_response()}
    except Exception as e:
        logger.error(f"import error: {e}")
        return 500, {"error": "Import failed", "message": str(e)}
