from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OrgContext:
    """Caller identity already authorized upstream; scopes manifest lookups."""

    org_id: str
    staff_id: str | None = None
    trace_id: str | None = None


def build_org_context(
    *,
    org_id: str,
    staff_id: str | None = None,
    trace_id: str | None = None,
) -> OrgContext:
    if not org_id or not org_id.strip():
        raise ValueError("org_id is required to scope manifest lookups")
    return OrgContext(org_id=org_id.strip(), staff_id=staff_id, trace_id=trace_id)
