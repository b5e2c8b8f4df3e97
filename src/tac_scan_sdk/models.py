from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class HubRef(BaseModel):
    model_config = ConfigDict(extra="allow")

    code: str
    name: str | None = None


class ShipmentRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    cn_number: str
    status: str | None = None
    org_id: str | None = None
    consignee_name: str | None = None
    package_count: int | None = None
    total_weight: Decimal | None = None
    updated_at: datetime | None = None


class ManifestRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    manifest_no: str
    org_id: str | None = None
    status: str | None = None
    from_hub: HubRef | None = None
    to_hub: HubRef | None = None
    created_at: datetime | None = None

    @property
    def route(self) -> str | None:
        if self.from_hub is None or self.to_hub is None:
            return None
        return f"{self.from_hub.code}-{self.to_hub.code}"


class ManifestItemRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    manifest_id: str
    shipment_id: str
    shipment: ShipmentRecord | None = None
