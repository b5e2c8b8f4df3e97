from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .models_audit import AuditItemStatus


class ShipmentStatus:
    RECEIVED_AT_DEST = "RECEIVED_AT_DEST"
    EXCEPTION = "EXCEPTION"


class SessionState(str, Enum):
    NO_SESSION = "NO_SESSION"
    ACTIVE = "ACTIVE"


TERMINAL_STATUSES = frozenset({AuditItemStatus.SCANNED, AuditItemStatus.EXCEPTION})


def audit_status_for_shipment(status: str | None) -> AuditItemStatus:
    value = (status or "").upper()
    if value == ShipmentStatus.RECEIVED_AT_DEST:
        return AuditItemStatus.SCANNED
    if value == ShipmentStatus.EXCEPTION:
        return AuditItemStatus.EXCEPTION
    return AuditItemStatus.PENDING


def merge_status(local: AuditItemStatus, fresh: AuditItemStatus) -> AuditItemStatus:
    # Lines never leave SCANNED or EXCEPTION within a session.
    if local in TERMINAL_STATUSES:
        return local
    return fresh


@dataclass(frozen=True)
class AuditActionAvailability:
    can_open_manifest: bool
    can_scan: bool
    can_clear: bool
    is_complete: bool


def audit_action_availability(state: SessionState | str, *, has_pending: bool) -> AuditActionAvailability:
    value = SessionState(state) if isinstance(state, str) else state
    active = value is SessionState.ACTIVE
    return AuditActionAvailability(
        can_open_manifest=not active,
        can_scan=active,
        can_clear=active,
        is_complete=active and not has_pending,
    )
