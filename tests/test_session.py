from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import pytest
import responses

from tac_scan_sdk.config import ClientConfig
from tac_scan_sdk.context import OrgContext
from tac_scan_sdk.feedback import RecordingFeedback
from tac_scan_sdk.models_audit import AuditStats
from tac_scan_sdk.session import ApiSession

BASE_URL = "https://project.example.co"
MANIFEST_ID = "0b7c6f1e-2d4a-4c59-9a7e-5f3d2c1b0a99"


def _cfg(org_id: str | None = "org-1") -> ClientConfig:
    return ClientConfig(
        env_name="test",
        api_base_url=BASE_URL,
        api_key="anon-key",
        org_id=org_id,
        retries=0,
    )


def _item(item_id: str, shipment_id: str, cn_number: str, status: str) -> dict:
    return {
        "id": item_id,
        "manifest_id": MANIFEST_ID,
        "shipment_id": shipment_id,
        "shipment": {"id": shipment_id, "cn_number": cn_number, "status": status, "org_id": "org-1"},
    }


def test_session_builds_context_from_config() -> None:
    session = ApiSession(_cfg())
    assert session.context is not None
    assert session.context.org_id == "org-1"
    assert session.context.trace_id == session.trace.trace_id


def test_arrival_audit_requires_an_org_context() -> None:
    session = ApiSession(_cfg(org_id=None))
    with pytest.raises(ValueError):
        session.arrival_audit()
    assert session.arrival_audit(context=OrgContext(org_id="org-9")) is not None


def test_establish_and_clear() -> None:
    session = ApiSession(_cfg())
    session.establish("user-jwt", OrgContext(org_id="org-2"))
    assert session.record_store().access_token == "user-jwt"
    assert session.context.org_id == "org-2"
    session.clear()
    assert session.access_token is None
    assert session.context is None


@responses.activate
def test_arrival_audit_end_to_end() -> None:
    responses.add(
        responses.GET,
        f"{BASE_URL}/rest/v1/manifests",
        json=[
            {
                "id": MANIFEST_ID,
                "manifest_no": "MNF-2026-000001",
                "org_id": "org-1",
                "from_hub": {"code": "IMF", "name": "Imphal"},
                "to_hub": {"code": "DEL", "name": "New Delhi"},
            }
        ],
    )
    responses.add(
        responses.GET,
        f"{BASE_URL}/rest/v1/manifest_items",
        json=[
            _item("mi-1", "s1", "TAC12345678", "IN_TRANSIT"),
            _item("mi-2", "s2", "CN-2026-0001", "IN_TRANSIT"),
        ],
    )
    responses.add(
        responses.PATCH,
        f"{BASE_URL}/rest/v1/shipments",
        json=[{"id": "s1", "cn_number": "TAC12345678", "status": "RECEIVED_AT_DEST"}],
    )
    responses.add(
        responses.GET,
        f"{BASE_URL}/rest/v1/manifest_items",
        json=[
            _item("mi-1", "s1", "TAC12345678", "RECEIVED_AT_DEST"),
            _item("mi-2", "s2", "CN-2026-0001", "IN_TRANSIT"),
        ],
    )

    feedback = RecordingFeedback()
    engine = ApiSession(_cfg(), access_token="user-jwt").arrival_audit(feedback=feedback)

    manifest = engine.resolve_manifest("MNF-2026-000001")
    outcome = engine.apply_scan("tac12345678")

    assert manifest.route == "IMF-DEL"
    assert outcome.success is True
    assert engine.stats() == AuditStats(total=2, scanned=1, missing=1, exceptions=0)
    assert feedback.signals == ["success", "success"]

    manifest_query = parse_qs(urlsplit(responses.calls[0].request.url).query)
    assert manifest_query["org_id"] == ["eq.org-1"]
    assert manifest_query["manifest_no"] == ["eq.MNF-2026-000001"]
    patch_call = responses.calls[2]
    assert patch_call.request.method == "PATCH"
    assert parse_qs(urlsplit(patch_call.request.url).query) == {"id": ["eq.s1"]}
    assert patch_call.request.headers["Authorization"] == "Bearer user-jwt"
