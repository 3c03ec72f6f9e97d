# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Firestore event store over the Firestore REST API.

Reads the teacher-scoped collections with structured queries sent to the
``documents:runQuery`` endpoint:

    students                 one document per student (document id = student id)
    groups                   one document per group
    attendance_records       one document per (student, day) mark
    reward_penalty_history   append-only ledger of rewards, penalties and grades

Firestore limits ``IN`` filters to 30 values, so student id filters are
split into batches that are queried concurrently and concatenated.

Requests are authenticated with google-auth credentials (service account
file or application default credentials). Against the local emulator no
credentials are used.

Example:
    store = FirestoreEventStore.from_settings(settings)
    students = await store.fetch_students("teacher-1", group_name="7-A")
    records = await store.fetch_attendance("teacher-1", [s.id for s in students])
    await store.close()
"""

import asyncio
import logging
import re
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any

import google.auth
import httpx
from google.auth import exceptions as auth_exceptions
from google.auth.credentials import Credentials
from google.auth.transport.requests import Request as AuthRequest
from google.oauth2 import service_account

from src.domains.scoring.models import AttendanceRecord, Group, RewardEvent, Student
from src.infrastructure.stores.base import (
    EventStore,
    chunked,
    parse_rows,
    unique_ids,
)
from src.infrastructure.stores.errors import EventStoreError, EventStoreUnavailableError

if TYPE_CHECKING:
    from src.core.config.settings import Settings

logger = logging.getLogger(__name__)

STUDENTS = "students"
GROUPS = "groups"
ATTENDANCE_RECORDS = "attendance_records"
REWARD_PENALTY_HISTORY = "reward_penalty_history"

MAX_IN_FILTER_VALUES = 30
DATASTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
EMULATOR_PROJECT = "demo-project"

_OPERATORS = {"==": "EQUAL", "in": "IN"}
_UNAVAILABLE_STATUS = {429, 502, 503, 504}
_TIMESTAMP = re.compile(r"^(?P<head>[^.]+?)(?:\.(?P<fraction>\d+))?(?P<tz>Z|[+-]\d{2}:\d{2})$")

# (field, operator, value)
FieldFilter = tuple[str, str, Any]


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a Python value as a Firestore REST Value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    return {"stringValue": str(value)}


def _parse_timestamp(text: str) -> datetime | str:
    # Firestore returns nanoseconds; datetime keeps microseconds
    match = _TIMESTAMP.match(text)
    if match is None:
        return text
    fraction = (match["fraction"] or "")[:6].ljust(6, "0")
    tz = "+00:00" if match["tz"] == "Z" else match["tz"]
    try:
        return datetime.fromisoformat(f"{match['head']}.{fraction}{tz}")
    except ValueError:
        return text


def decode_value(value: dict[str, Any]) -> Any:
    """Decode a Firestore REST Value into a Python value.

    Timestamps become aware datetimes; maps and arrays are decoded
    recursively. Unknown value kinds decode to None.
    """
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return value["booleanValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "timestampValue" in value:
        return _parse_timestamp(value["timestampValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "referenceValue" in value:
        return value["referenceValue"]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(item) for item in value["arrayValue"].get("values", [])]
    if "geoPointValue" in value:
        return dict(value["geoPointValue"])
    return None


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Decode a document's fields map."""
    return {name: decode_value(value) for name, value in fields.items()}


def build_query(collection: str, filters: Sequence[FieldFilter]) -> dict[str, Any]:
    """Build a runQuery request body with AND-combined field filters."""
    field_filters = [
        {
            "fieldFilter": {
                "field": {"fieldPath": field},
                "op": _OPERATORS[op],
                "value": encode_value(value),
            }
        }
        for field, op, value in filters
    ]
    query: dict[str, Any] = {"from": [{"collectionId": collection}]}
    if len(field_filters) == 1:
        query["where"] = field_filters[0]
    elif field_filters:
        query["where"] = {"compositeFilter": {"op": "AND", "filters": field_filters}}
    return {"structuredQuery": query}


class FirestoreEventStore(EventStore):
    """Event store backed by Cloud Firestore.

    Attributes:
        client: HTTP client whose base_url is the REST root (".../v1").
        project_id: Google Cloud project id.
        database: Firestore database id.
        credentials: google-auth credentials, None for the emulator.
        in_batch_size: Student ids per IN query.
    """

    backend_name = "firestore"

    def __init__(
        self,
        client: httpx.AsyncClient,
        project_id: str,
        database: str = "(default)",
        credentials: Credentials | None = None,
        in_batch_size: int = MAX_IN_FILTER_VALUES,
    ) -> None:
        if not 1 <= in_batch_size <= MAX_IN_FILTER_VALUES:
            raise ValueError(f"in_batch_size must be between 1 and {MAX_IN_FILTER_VALUES}")
        self.client = client
        self.project_id = project_id
        self.database = database
        self.credentials = credentials
        self.in_batch_size = in_batch_size

    @classmethod
    def from_settings(cls, settings: "Settings") -> "FirestoreEventStore":
        """Create a store configured from settings.

        Raises:
            EventStoreError: If credentials cannot be loaded.
        """
        config = settings.firestore
        credentials: Credentials | None = None
        project_id = config.project_id

        try:
            if config.emulator_host:
                project_id = project_id or EMULATOR_PROJECT
            elif config.credentials_file:
                credentials = service_account.Credentials.from_service_account_file(
                    config.credentials_file, scopes=[DATASTORE_SCOPE]
                )
                project_id = project_id or credentials.project_id
            else:
                credentials, default_project = google.auth.default(scopes=[DATASTORE_SCOPE])
                project_id = project_id or default_project
        except (auth_exceptions.GoogleAuthError, OSError, ValueError) as e:
            raise EventStoreError(
                "Failed to load Firestore credentials",
                backend=cls.backend_name,
                original_error=e,
            ) from e

        if not project_id:
            raise EventStoreError(
                "Firestore project id is not configured. Set FIRESTORE_PROJECT_ID.",
                backend=cls.backend_name,
            )

        client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout,
            headers={"Content-Type": "application/json"},
        )
        return cls(
            client,
            project_id=project_id,
            database=config.database,
            credentials=credentials,
            in_batch_size=config.in_batch_size,
        )

    @property
    def query_path(self) -> str:
        """Get the runQuery path relative to the REST root."""
        return f"/projects/{self.project_id}/databases/{self.database}/documents:runQuery"

    async def _auth_headers(self) -> dict[str, str]:
        if self.credentials is None:
            return {}
        if not self.credentials.valid:
            try:
                await asyncio.to_thread(self.credentials.refresh, AuthRequest())
            except auth_exceptions.GoogleAuthError as e:
                raise EventStoreError(
                    "Failed to refresh Firestore credentials",
                    backend=self.backend_name,
                    original_error=e,
                ) from e
        return {"Authorization": f"Bearer {self.credentials.token}"}

    def _raise_for_status(self, response: httpx.Response, collection: str) -> None:
        if response.is_success:
            return

        try:
            payload = response.json()
            if isinstance(payload, list):
                payload = payload[0]
            detail = payload["error"]["message"]
        except (ValueError, LookupError, TypeError):
            detail = response.text

        message = f"Firestore query on {collection} failed ({response.status_code}): {detail}"
        if response.status_code in _UNAVAILABLE_STATUS:
            raise EventStoreUnavailableError(message, backend=self.backend_name)
        raise EventStoreError(message, backend=self.backend_name)

    async def _run_query(self, collection: str, *filters: FieldFilter) -> list[dict[str, Any]]:
        body = build_query(collection, filters)
        headers = await self._auth_headers()
        try:
            response = await self.client.post(self.query_path, json=body, headers=headers)
        except httpx.TransportError as e:
            logger.error("Connection error to Firestore: %s", e)
            raise EventStoreUnavailableError(
                f"Firestore unavailable while reading {collection}",
                backend=self.backend_name,
                original_error=e,
            ) from e

        self._raise_for_status(response, collection)

        rows = []
        for item in response.json():
            document = item.get("document")
            if not document:
                continue
            row = decode_fields(document.get("fields", {}))
            row["id"] = document["name"].rsplit("/", 1)[-1]
            rows.append(row)
        return rows

    async def _query_for_students(
        self,
        collection: str,
        owner_id: str,
        student_ids: Sequence[str] | None,
    ) -> list[dict[str, Any]]:
        owner: FieldFilter = ("teacher_id", "==", owner_id)
        if student_ids is None:
            return await self._run_query(collection, owner)

        ids = unique_ids(student_ids)
        if not ids:
            return []

        batches = await asyncio.gather(
            *(
                self._run_query(collection, owner, ("student_id", "in", batch))
                for batch in chunked(ids, self.in_batch_size)
            )
        )
        return [row for batch in batches for row in batch]

    async def fetch_students(
        self,
        owner_id: str,
        group_name: str | None = None,
        active_only: bool = True,
    ) -> list[Student]:
        filters: list[FieldFilter] = [("teacher_id", "==", owner_id)]
        if active_only:
            filters.append(("is_active", "==", True))
        if group_name is not None:
            filters.append(("group_name", "==", group_name))

        rows = await self._run_query(STUDENTS, *filters)
        logger.debug("Fetched %d students for %s", len(rows), owner_id)
        return parse_rows(Student, rows, self.backend_name)

    async def fetch_groups(self, owner_id: str) -> list[Group]:
        rows = await self._run_query(
            GROUPS,
            ("teacher_id", "==", owner_id),
            ("is_active", "==", True),
        )
        return parse_rows(Group, rows, self.backend_name)

    async def fetch_attendance(
        self,
        owner_id: str,
        student_ids: Sequence[str] | None = None,
    ) -> list[AttendanceRecord]:
        rows = await self._query_for_students(ATTENDANCE_RECORDS, owner_id, student_ids)
        logger.debug("Fetched %d attendance records for %s", len(rows), owner_id)
        return parse_rows(AttendanceRecord, rows, self.backend_name)

    async def fetch_reward_events(
        self,
        owner_id: str,
        student_ids: Sequence[str] | None = None,
    ) -> list[RewardEvent]:
        rows = await self._query_for_students(REWARD_PENALTY_HISTORY, owner_id, student_ids)
        logger.debug("Fetched %d reward events for %s", len(rows), owner_id)
        return parse_rows(RewardEvent, rows, self.backend_name)

    async def close(self) -> None:
        await self.client.aclose()

    async def health_check(self) -> bool:
        try:
            await self._run_query(GROUPS, ("teacher_id", "==", ""))
        except EventStoreError as e:
            logger.warning("Firestore health check failed: %s", e)
            return False
        return True
