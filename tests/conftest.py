from __future__ import annotations

import copy
import sys
from pathlib import Path
from typing import Any, Callable, Mapping

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
SDK_SRC = BASE_DIR / "src"

sys.path.insert(0, str(SDK_SRC))

from tac_scan_sdk.arrival_audit import ArrivalAuditEngine  # noqa: E402
from tac_scan_sdk.audit_repository import AuditRepository  # noqa: E402
from tac_scan_sdk.context import OrgContext  # noqa: E402
from tac_scan_sdk.feedback import RecordingFeedback  # noqa: E402

ORG_ID = "org-1"
MANIFEST_ID = "0b7c6f1e-2d4a-4c59-9a7e-5f3d2c1b0a99"
MANIFEST_NO = "MNF-2026-000001"


class FakeRecordStore:
    """In-memory RecordStore with just enough PostgREST behaviour for the audit."""

    def __init__(self, tables: Mapping[str, list[dict[str, Any]]]) -> None:
        self.tables = {name: [dict(row) for row in rows] for name, rows in tables.items()}
        self.find_calls: list[tuple[str, dict[str, str]]] = []
        self.update_calls: list[tuple[str, str, dict[str, Any]]] = []
        self.fail_finds: dict[str, list[Exception]] = {}
        self.fail_updates: list[Exception] = []
        self.on_update: Callable[[str, str, Mapping[str, Any]], None] | None = None

    def find(
        self,
        table: str,
        filters: Mapping[str, str],
        *,
        select: str | None = None,
        limit: int | None = None,
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        self.find_calls.append((table, dict(filters)))
        pending = self.fail_finds.get(table)
        if pending:
            raise pending.pop(0)
        rows = [row for row in self.tables.get(table, []) if _matches(row, filters)]
        rows = [self._embed(table, row, select or "*") for row in rows]
        if limit is not None:
            rows = rows[:limit]
        return rows

    def update(self, table: str, record_id: str, patch: Mapping[str, Any]) -> dict[str, Any]:
        self.update_calls.append((table, record_id, dict(patch)))
        if self.on_update is not None:
            hook, self.on_update = self.on_update, None
            hook(table, record_id, patch)
        if self.fail_updates:
            raise self.fail_updates.pop(0)
        for row in self.tables.get(table, []):
            if row["id"] == record_id:
                row.update(patch)
                return copy.deepcopy(row)
        raise AssertionError(f"unknown {table} row {record_id}")

    def set_status(self, shipment_id: str, status: str) -> None:
        for row in self.tables["shipments"]:
            if row["id"] == shipment_id:
                row["status"] = status

    def _embed(self, table: str, row: dict[str, Any], select: str) -> dict[str, Any]:
        result = copy.deepcopy(row)
        if table == "manifest_items" and "shipment:shipments" in select:
            result["shipment"] = next(
                (copy.deepcopy(s) for s in self.tables["shipments"] if s["id"] == row["shipment_id"]),
                None,
            )
        if table == "manifests" and "from_hub:" in select:
            hubs = {hub["id"]: hub for hub in self.tables.get("hubs", [])}
            for key in ("from_hub", "to_hub"):
                hub = hubs.get(row.get(f"{key}_id"))
                result[key] = {"code": hub["code"], "name": hub["name"]} if hub else None
        return result


def _matches(row: Mapping[str, Any], filters: Mapping[str, str]) -> bool:
    for column, expression in filters.items():
        operator, _, value = expression.partition(".")
        if operator != "eq":
            raise AssertionError(f"unsupported filter {expression}")
        if str(row.get(column)) != value:
            return False
    return True


def _shipment(shipment_id: str, cn_number: str, status: str) -> dict[str, Any]:
    return {
        "id": shipment_id,
        "cn_number": cn_number,
        "status": status,
        "org_id": ORG_ID,
        "consignee_name": f"Consignee {shipment_id}",
        "package_count": 2,
        "total_weight": 12.5,
    }


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore(
        {
            "hubs": [
                {"id": "hub-imf", "code": "IMF", "name": "Imphal"},
                {"id": "hub-del", "code": "DEL", "name": "New Delhi"},
            ],
            "manifests": [
                {
                    "id": MANIFEST_ID,
                    "manifest_no": MANIFEST_NO,
                    "org_id": ORG_ID,
                    "status": "ARRIVED",
                    "from_hub_id": "hub-imf",
                    "to_hub_id": "hub-del",
                },
                {
                    "id": "5a1e3c2b-0000-4000-8000-000000000002",
                    "manifest_no": "MNF-2026-000002",
                    "org_id": "org-2",
                    "status": "ARRIVED",
                    "from_hub_id": "hub-imf",
                    "to_hub_id": "hub-del",
                },
            ],
            "shipments": [
                _shipment("s1", "TAC12345678", "IN_TRANSIT"),
                _shipment("s2", "CN-2026-0001", "IN_TRANSIT"),
                _shipment("s3", "TAC87654321", "RECEIVED_AT_DEST"),
                _shipment("s4", "WGS11112222", "EXCEPTION"),
            ],
            "manifest_items": [
                {"id": "mi-1", "manifest_id": MANIFEST_ID, "shipment_id": "s1"},
                {"id": "mi-2", "manifest_id": MANIFEST_ID, "shipment_id": "s2"},
                {"id": "mi-3", "manifest_id": MANIFEST_ID, "shipment_id": "s3"},
                {"id": "mi-4", "manifest_id": MANIFEST_ID, "shipment_id": "s4"},
            ],
        }
    )


@pytest.fixture
def feedback() -> RecordingFeedback:
    return RecordingFeedback()


@pytest.fixture
def context() -> OrgContext:
    return OrgContext(org_id=ORG_ID, staff_id="staff-1", trace_id="trace-1")


@pytest.fixture
def engine(store: FakeRecordStore, feedback: RecordingFeedback, context: OrgContext) -> ArrivalAuditEngine:
    return ArrivalAuditEngine(AuditRepository(store=store), context=context, feedback=feedback)


@pytest.fixture
def active_engine(engine: ArrivalAuditEngine, feedback: RecordingFeedback) -> ArrivalAuditEngine:
    engine.resolve_manifest(MANIFEST_NO)
    feedback.signals.clear()
    return engine
