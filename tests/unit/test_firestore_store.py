# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the Firestore REST event store."""

import json
from datetime import datetime, timezone
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest

from src.domains.scoring.models import AttendanceStatus, RewardType
from src.infrastructure.stores.errors import EventStoreError, EventStoreUnavailableError
from src.infrastructure.stores.firestore import (
    ATTENDANCE_RECORDS,
    STUDENTS,
    FirestoreEventStore,
    build_query,
    decode_value,
    encode_value,
)

DOCUMENTS = "projects/demo/databases/(default)/documents"


def document(collection: str, doc_id: str, **fields: Any) -> dict[str, Any]:
    return {
        "document": {
            "name": f"{DOCUMENTS}/{collection}/{doc_id}",
            "fields": {name: encode_value(value) for name, value in fields.items()},
        },
        "readTime": "2024-03-15T10:00:00Z",
    }


def in_values(body: dict[str, Any]) -> list[str]:
    where = body["structuredQuery"]["where"]
    filters = where["compositeFilter"]["filters"] if "compositeFilter" in where else [where]
    for item in filters:
        field_filter = item["fieldFilter"]
        if field_filter["op"] == "IN":
            return [value["stringValue"] for value in field_filter["value"]["arrayValue"]["values"]]
    return []


class Recorder:
    """Collects request bodies and serves canned responses."""

    def __init__(self, respond) -> None:
        self.requests: list[httpx.Request] = []
        self.bodies: list[dict[str, Any]] = []
        self.respond = respond

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content)
        self.bodies.append(body)
        return self.respond(body)


def make_store(handler, **kwargs: Any) -> FirestoreEventStore:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url="http://firestore.test/v1",
    )
    return FirestoreEventStore(client, project_id="demo", **kwargs)


class TestValueCodec:
    """Tests for Firestore value encoding and decoding."""

    def test_encode_scalars(self) -> None:
        """Test that bools are not encoded as integers."""
        assert encode_value(True) == {"booleanValue": True}
        assert encode_value(7) == {"integerValue": "7"}
        assert encode_value(None) == {"nullValue": None}
        assert encode_value(["a"]) == {"arrayValue": {"values": [{"stringValue": "a"}]}}

    def test_decode_integer_strings(self) -> None:
        """Test that 64-bit integers arrive as strings."""
        assert decode_value({"integerValue": "5"}) == 5

    def test_decode_timestamp_truncates_nanoseconds(self) -> None:
        """Test nanosecond timestamps."""
        value = decode_value({"timestampValue": "2024-01-10T21:30:00.123456789Z"})

        assert value == datetime(2024, 1, 10, 21, 30, 0, 123456, tzinfo=timezone.utc)

    def test_decode_nested(self) -> None:
        """Test maps and arrays."""
        value = decode_value(
            {
                "mapValue": {
                    "fields": {
                        "seconds": {"integerValue": "1704922200"},
                        "tags": {"arrayValue": {"values": [{"doubleValue": 1.5}]}},
                    }
                }
            }
        )

        assert value == {"seconds": 1704922200, "tags": [1.5]}

    def test_decode_unknown_kind(self) -> None:
        """Test that unknown value kinds decode to None."""
        assert decode_value({"bytesValue": "AAE="}) is None


class TestBuildQuery:
    """Tests for build_query."""

    def test_single_filter_is_not_wrapped(self) -> None:
        """Test that one filter is sent as a plain fieldFilter."""
        body = build_query(STUDENTS, [("teacher_id", "==", "t-1")])

        assert body == {
            "structuredQuery": {
                "from": [{"collectionId": "students"}],
                "where": {
                    "fieldFilter": {
                        "field": {"fieldPath": "teacher_id"},
                        "op": "EQUAL",
                        "value": {"stringValue": "t-1"},
                    }
                },
            }
        }

    def test_multiple_filters_are_anded(self) -> None:
        """Test composite AND filters."""
        body = build_query(STUDENTS, [("teacher_id", "==", "t-1"), ("is_active", "==", True)])

        where = body["structuredQuery"]["where"]["compositeFilter"]
        assert where["op"] == "AND"
        assert len(where["filters"]) == 2

    def test_no_filters(self) -> None:
        """Test that an unfiltered query has no where clause."""
        assert "where" not in build_query(STUDENTS, [])["structuredQuery"]


class TestFirestoreEventStore:
    """Tests for FirestoreEventStore."""

    def test_batch_size_is_validated(self) -> None:
        """Test that IN batches cannot exceed the Firestore limit."""
        with pytest.raises(ValueError):
            make_store(Recorder(lambda body: httpx.Response(200, json=[])), in_batch_size=31)

    @pytest.mark.asyncio
    async def test_fetch_students(self) -> None:
        """Test that student documents validate with their document id."""
        recorder = Recorder(
            lambda body: httpx.Response(
                200,
                json=[
                    document(
                        STUDENTS,
                        "s1",
                        name="Akmal",
                        group_name="7-A",
                        teacher_id="t-1",
                        is_active=True,
                    ),
                    {"readTime": "2024-03-15T10:00:00Z"},
                ],
            )
        )
        store = make_store(recorder)

        students = await store.fetch_students("t-1", group_name="7-A")

        assert [(s.id, s.name, s.group_name) for s in students] == [("s1", "Akmal", "7-A")]
        request = recorder.requests[0]
        assert request.url.path == f"/v1/{DOCUMENTS}:runQuery"
        assert "authorization" not in request.headers
        filters = recorder.bodies[0]["structuredQuery"]["where"]["compositeFilter"]["filters"]
        assert [f["fieldFilter"]["field"]["fieldPath"] for f in filters] == [
            "teacher_id",
            "is_active",
            "group_name",
        ]
        await store.close()

    @pytest.mark.asyncio
    async def test_attendance_ids_are_chunked(self) -> None:
        """Test that 65 student ids are read with three concurrent IN queries."""
        def respond(body: dict[str, Any]) -> httpx.Response:
            return httpx.Response(
                200,
                json=[
                    document(
                        ATTENDANCE_RECORDS,
                        f"r-{student_id}",
                        student_id=student_id,
                        date="2024-03-01",
                        status="late",
                    )
                    for student_id in in_values(body)
                ],
            )

        recorder = Recorder(respond)
        store = make_store(recorder)
        ids = [f"s{i}" for i in range(65)]

        records = await store.fetch_attendance("t-1", ids + ["s0"])

        assert sorted(len(in_values(body)) for body in recorder.bodies) == [5, 30, 30]
        assert sorted(record.student_id for record in records) == sorted(ids)
        assert all(record.status is AttendanceStatus.LATE for record in records)

    @pytest.mark.asyncio
    async def test_empty_ids_make_no_request(self) -> None:
        """Test that an explicitly empty id filter short-circuits."""
        recorder = Recorder(lambda body: httpx.Response(200, json=[]))
        store = make_store(recorder)

        assert await store.fetch_reward_events("t-1", []) == []
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_reward_timestamps_become_calendar_days(self) -> None:
        """Test that timestamp fields are normalized to Tashkent days."""
        recorder = Recorder(
            lambda body: httpx.Response(
                200,
                json=[
                    {
                        "document": {
                            "name": f"{DOCUMENTS}/reward_penalty_history/e1",
                            "fields": {
                                "student_id": {"stringValue": "s1"},
                                "type": {"stringValue": "Mukofot"},
                                "points": {"integerValue": "3"},
                                "date": {"timestampValue": "2024-01-10T21:30:00Z"},
                            },
                        }
                    }
                ],
            )
        )
        store = make_store(recorder)

        events = await store.fetch_reward_events("t-1")

        assert len(events) == 1
        assert events[0].date == "2024-01-11"
        assert events[0].type is RewardType.REWARD
        assert events[0].points == 3.0

    @pytest.mark.asyncio
    async def test_unavailable_status(self) -> None:
        """Test that 503 responses are reported as unavailability."""
        store = make_store(
            Recorder(
                lambda body: httpx.Response(
                    503, json=[{"error": {"code": 503, "message": "backend down"}}]
                )
            )
        )

        with pytest.raises(EventStoreUnavailableError, match="backend down"):
            await store.fetch_groups("t-1")

    @pytest.mark.asyncio
    async def test_query_error_status(self) -> None:
        """Test that other error statuses are plain store errors."""
        store = make_store(
            Recorder(lambda body: httpx.Response(400, json={"error": {"message": "bad filter"}}))
        )

        with pytest.raises(EventStoreError) as exc_info:
            await store.fetch_groups("t-1")

        assert not isinstance(exc_info.value, EventStoreUnavailableError)
        assert exc_info.value.backend == "firestore"

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        """Test that connection failures are reported as unavailability."""
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = make_store(fail)

        with pytest.raises(EventStoreUnavailableError):
            await store.fetch_students("t-1")
        assert await store.health_check() is False

    @pytest.mark.asyncio
    async def test_bearer_token_from_credentials(self) -> None:
        """Test that valid credentials are sent as a bearer token."""
        recorder = Recorder(lambda body: httpx.Response(200, json=[]))
        credentials = MagicMock(valid=True, token="token-123")
        store = make_store(recorder, credentials=credentials)

        await store.fetch_groups("t-1")

        assert recorder.requests[0].headers["authorization"] == "Bearer token-123"
        credentials.refresh.assert_not_called()
