from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

SCAN_PAYLOAD_VERSION = 1


class ScanType(str, Enum):
    SHIPMENT = "shipment"
    MANIFEST = "manifest"
    PACKAGE = "package"


class ScanSource(str, Enum):
    MANUAL = "MANUAL"
    SCANNER = "SCANNER"
    CAMERA = "CAMERA"


class ScanPayloadV1(BaseModel):
    """Structured QR envelope, version 1."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    v: int = SCAN_PAYLOAD_VERSION
    type: str | None = None
    awb: str | None = None
    id: str | None = None
    manifest_no: str | None = Field(default=None, alias="manifestNo")
    package_id: str | None = Field(default=None, alias="packageId")
    route: str | None = None
    metadata: dict[str, Any] | None = None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ScanResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ScanType
    raw: str
    awb: str | None = None
    manifest_id: str | None = None
    manifest_no: str | None = None
    package_id: str | None = None
    route: str | None = None
    metadata: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _check_identifiers(self) -> "ScanResult":
        if self.type is ScanType.SHIPMENT and not self.awb:
            raise ValueError("shipment scans require awb")
        if self.type is ScanType.MANIFEST and not (self.manifest_id or self.manifest_no):
            raise ValueError("manifest scans require manifest_id or manifest_no")
        if self.type is ScanType.PACKAGE and not self.package_id:
            raise ValueError("package scans require package_id")
        return self
