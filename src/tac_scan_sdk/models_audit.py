from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum

from .models_scan import ScanSource


class AuditItemStatus(str, Enum):
    PENDING = "PENDING"
    SCANNED = "SCANNED"
    EXCEPTION = "EXCEPTION"


@dataclass(frozen=True)
class AuditItem:
    shipment_id: str
    tracking_code: str
    status: AuditItemStatus = AuditItemStatus.PENDING
    manifest_item_id: str | None = None
    consignee_name: str | None = None
    package_count: int | None = None
    total_weight: Decimal | None = None

    def with_status(self, status: AuditItemStatus) -> "AuditItem":
        return replace(self, status=status)

    def matches(self, tracking_code: str) -> bool:
        return self.tracking_code.upper() == tracking_code.upper()


@dataclass(frozen=True)
class AuditStats:
    total: int
    scanned: int
    missing: int
    exceptions: int

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class ScanOutcome:
    success: bool
    message: str
    duplicate: bool = False
    tracking_code: str | None = None
    manifest_id: str | None = None


@dataclass(frozen=True)
class ScanHistoryEntry:
    tracking_code: str
    result: str
    message: str
    source: ScanSource
    timestamp: datetime


@dataclass(frozen=True)
class ScanCounters:
    success: int = 0
    duplicate: int = 0
    error: int = 0

    @property
    def total(self) -> int:
        return self.success + self.duplicate + self.error


@dataclass(frozen=True)
class AuditChange:
    kind: str
    manifest_id: str | None
    shipment_id: str | None = None
