from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from pydantic import ValidationError as PydanticValidationError

from .audit_state import ShipmentStatus, audit_status_for_shipment
from .exceptions import ManifestNotFoundError, ScanValidationError
from .models import ManifestItemRecord, ManifestRecord
from .models_audit import AuditItem
from .record_store import Record, RecordStore, eq

logger = logging.getLogger(__name__)

MANIFESTS_TABLE = "manifests"
MANIFEST_ITEMS_TABLE = "manifest_items"
SHIPMENTS_TABLE = "shipments"

MANIFEST_SELECT = (
    "*,"
    "from_hub:hubs!manifests_from_hub_id_fkey(code,name),"
    "to_hub:hubs!manifests_to_hub_id_fkey(code,name)"
)
MANIFEST_ITEM_SELECT = "*,shipment:shipments(*)"

_UUID_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)


def is_uuid(value: str) -> bool:
    return bool(_UUID_RE.fullmatch(value))


@dataclass
class AuditRepository:
    store: RecordStore

    def find_manifest(self, org_id: str, code: str) -> ManifestRecord:
        """Exactly one manifest by id or manifest number inside ``org_id``."""
        value = (code or "").strip()
        if not value:
            raise ScanValidationError("Manifest code is required", code="EMPTY_SCAN")
        filters = {"org_id": eq(org_id)}
        if is_uuid(value):
            filters["id"] = eq(value.lower())
        else:
            filters["manifest_no"] = eq(value.upper())
        rows = self.store.find(MANIFESTS_TABLE, filters, select=MANIFEST_SELECT, limit=2)
        if not rows:
            raise ManifestNotFoundError(f"Manifest {value} not found", details={"code": value})
        if len(rows) > 1:
            raise ManifestNotFoundError(
                f"Manifest {value} matches more than one manifest",
                code="MANIFEST_AMBIGUOUS",
                details={"code": value, "matches": len(rows)},
            )
        try:
            return ManifestRecord.model_validate(rows[0])
        except PydanticValidationError as exc:
            raise ManifestNotFoundError(
                f"Manifest {value} has an unreadable record",
                code="MANIFEST_INVALID",
                details={"code": value, "errors": exc.error_count()},
            ) from exc

    def list_audit_items(self, manifest_id: str) -> list[AuditItem]:
        rows = self.store.find(
            MANIFEST_ITEMS_TABLE,
            {"manifest_id": eq(manifest_id)},
            select=MANIFEST_ITEM_SELECT,
        )
        items: list[AuditItem] = []
        seen: set[str] = set()
        for row in rows:
            try:
                record = ManifestItemRecord.model_validate(row)
            except PydanticValidationError:
                logger.warning("Skipping malformed manifest item row on manifest %s", manifest_id, exc_info=True)
                continue
            if record.shipment is None:
                logger.warning("Manifest item %s has no shipment, skipping", record.id)
                continue
            if record.shipment_id in seen:
                logger.warning(
                    "Shipment %s listed twice on manifest %s, keeping first line",
                    record.shipment_id,
                    manifest_id,
                )
                continue
            seen.add(record.shipment_id)
            items.append(to_audit_item(record))
        return items

    # Writes return the raw row; a successful PATCH may echo only some columns.
    def mark_received(self, shipment_id: str) -> Record:
        return self.store.update(SHIPMENTS_TABLE, shipment_id, {"status": ShipmentStatus.RECEIVED_AT_DEST})

    def mark_exception(self, shipment_id: str) -> Record:
        return self.store.update(SHIPMENTS_TABLE, shipment_id, {"status": ShipmentStatus.EXCEPTION})


def to_audit_item(record: ManifestItemRecord) -> AuditItem:
    shipment = record.shipment
    if shipment is None:
        raise ValueError(f"Manifest item {record.id} has no shipment")
    return AuditItem(
        shipment_id=record.shipment_id,
        tracking_code=shipment.cn_number.upper(),
        status=audit_status_for_shipment(shipment.status),
        manifest_item_id=record.id,
        consignee_name=shipment.consignee_name,
        package_count=shipment.package_count,
        total_weight=shipment.total_weight,
    )
