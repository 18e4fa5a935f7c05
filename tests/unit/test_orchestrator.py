from __future__ import annotations

import asyncio
import json
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

import httpx

from property_import.db.record_store import InMemoryRecordStore, RecordStoreError
from property_import.logging.error_log import ErrorLogBuffer
from property_import.models.error_record import PERSIST_ERROR
from property_import.models.parsed_property import ParsedProperty
from property_import.services.orchestrator import build_record_payload, import_properties

JPEG = b"\xff\xd8\xff\xe0fake"


def _prop(title: str, **overrides: Any) -> ParsedProperty:
    base = ParsedProperty(
        title=title,
        price=3_000_000,
        location="Thonglor",
        bedrooms=2,
        bathrooms=2,
        area=70.0,
    )
    return replace(base, **overrides)


class FailingStore(InMemoryRecordStore):
    """Raises on the N-th create call (1-based)."""

    def __init__(self, fail_on: int, message: str = "duplicate key value") -> None:
        super().__init__()
        self.fail_on = fail_on
        self.message = message
        self.calls = 0

    def create(self, record):
        self.calls += 1
        if self.calls == self.fail_on:
            raise RecordStoreError(self.message)
        return super().create(record)


def _ok_resolver(make_resolver):
    return make_resolver(lambda request: httpx.Response(200, content=JPEG))


def test_failure_does_not_stop_the_batch(make_resolver, tmp_path):
    props = [_prop(f"Listing {i}") for i in range(1, 11)]
    store = FailingStore(fail_on=7)
    error_log = ErrorLogBuffer(logs_dir=tmp_path / "logs")

    result = asyncio.run(
        import_properties(
            props,
            store,
            _ok_resolver(make_resolver),
            error_log=error_log,
            source_name="listings.csv",
            row_numbers=list(range(2, 12)),
        )
    )

    assert result.total == 10
    assert len(result.success) == 9
    assert len(result.failed) == 1
    assert result.failed[0].property == "Listing 7"
    assert result.failed[0].error == "duplicate key value"
    # records 8..10 were still attempted and persisted
    assert store.calls == 10
    titles = [store.find_unique(i)["title"] for i in result.success]
    assert titles == [f"Listing {i}" for i in range(1, 11) if i != 7]

    [rec] = error_log.records
    assert rec.error_type == PERSIST_ERROR
    assert rec.file == "listings.csv"
    assert rec.row == 8
    assert "Listing 7" in rec.message


def test_exception_without_message_is_reported_as_unknown(make_resolver):
    class SilentStore(InMemoryRecordStore):
        def create(self, record):
            raise RuntimeError()

    result = asyncio.run(import_properties([_prop("X")], SilentStore(), _ok_resolver(make_resolver)))
    assert result.success == []
    assert result.failed[0].error == "Unknown error"


def test_accounting_is_exact(make_resolver):
    props = [_prop(f"P{i}") for i in range(5)]
    result = asyncio.run(import_properties(props, FailingStore(fail_on=2), _ok_resolver(make_resolver)))
    assert len(result.success) + len(result.failed) == result.total == 5


def test_empty_input(make_resolver):
    result = asyncio.run(import_properties([], InMemoryRecordStore(), _ok_resolver(make_resolver)))
    assert result.total == 0
    assert result.success == []
    assert result.failed == []


def test_image_failure_still_persists_record(make_resolver):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("id") == "BROKEN":
            return httpx.Response(404)
        return httpx.Response(200, content=JPEG)

    images = [
        "https://drive.google.com/file/d/GOOD/view",
        "https://drive.google.com/open?id=BROKEN",
        "https://cdn.example.com/direct.jpg",
    ]
    store = InMemoryRecordStore()
    result = asyncio.run(import_properties([_prop("With photos", images=images)], store, make_resolver(handler)))

    assert len(result.success) == 1
    assert result.images_downloaded == 1
    assert result.images_fallback == 1
    stored = store.find_unique(result.success[0])
    assert stored["images"][0].startswith("/uploads/properties/")
    assert stored["images"][1:] == images[1:]


def test_image_cache_shared_across_records(make_resolver):
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return httpx.Response(200, content=JPEG)

    shared = ["https://drive.google.com/file/d/SHARED/view"]
    props = [_prop("A", images=shared), _prop("B", images=shared)]
    store = InMemoryRecordStore()
    result = asyncio.run(import_properties(props, store, make_resolver(handler), image_cache={}))

    assert len(calls) == 1
    a, b = (store.find_unique(i) for i in result.success)
    assert a["images"] == b["images"]


def test_round_trip_preserves_fields(make_resolver):
    images = ["https://cdn.example.com/1.jpg", "https://cdn.example.com/2.jpg", "https://cdn.example.com/3.jpg"]
    prop = _prop(
        "Roundtrip",
        price=4_250_000,
        images=images,
        views=["River"],
        private_features=["Balcony"],
        rooms_spaces=["Study"],
        commission=3.0,
    )
    store = InMemoryRecordStore()
    result = asyncio.run(import_properties([prop], store, _ok_resolver(make_resolver)))

    stored = store.find_unique(result.success[0])
    assert stored["title"] == "Roundtrip"
    assert stored["price"] == 4_250_000
    assert stored["images"] == images
    assert stored["features"] == ["River", "Balcony", "Study"]


def test_build_record_payload():
    prop = _prop(
        "Payload",
        views=["Sea"],
        private_features=["Pool"],
        rooms_spaces=[],
        import_source="",
    )
    when = datetime(2024, 5, 1, tzinfo=UTC)
    payload = build_record_payload(prop, ["/uploads/properties/x.jpg"], import_date=when)

    assert payload["features"] == ["Sea", "Pool"]
    assert payload["layout_features"] == []
    assert payload["images"] == ["/uploads/properties/x.jpg"]
    assert payload["import_source"] == "google-sheets-import"
    assert payload["import_date"] == when
    assert payload["property_type"] == "condo"
    assert "id" not in payload
    json.dumps({k: v for k, v in payload.items() if k != "import_date"})
