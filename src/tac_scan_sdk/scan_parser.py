"""Classify raw barcode/QR scan input into typed scan results.

Attempted in order, first match wins:

1. raw tracking code: ``TAC``/``WGS`` (legacy ``WEE``) + 8-11 digits
2. hyphenated tracking code: ``CN-YYYY-NNNN`` (legacy ``TAC-``/``WEE-``)
3. JSON envelope ``{"v": 1, ...}`` with an optional ``type`` discriminator
4. legacy manifest number ``MAN-YYYY-NNNNN``
5. manifest number ``MNF-YYYY-NNNNNN`` (legacy ``WEE-MNF-``)
6. anything else passes through as a shipment token for the caller to look up
"""
from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .exceptions import ScanValidationError
from .models_scan import SCAN_PAYLOAD_VERSION, ScanPayloadV1, ScanResult, ScanType

_AWB_RE = re.compile(r"(TAC|WEE|WGS)[0-9]{8,11}", re.IGNORECASE)
_HYPHEN_AWB_RE = re.compile(r"(CN|WEE|TAC)-[0-9]{4}-[0-9]{4}", re.IGNORECASE)
_LEGACY_MANIFEST_RE = re.compile(r"MAN-[0-9]{4}-[0-9]{5}", re.IGNORECASE)
_MANIFEST_RE = re.compile(r"(MNF|WEE-MNF)-[0-9]{4}-[0-9]{6}", re.IGNORECASE)


def is_valid_awb(code: str) -> bool:
    return bool(_AWB_RE.fullmatch(code) or _HYPHEN_AWB_RE.fullmatch(code))


def is_manifest_number(code: str) -> bool:
    return bool(_LEGACY_MANIFEST_RE.fullmatch(code) or _MANIFEST_RE.fullmatch(code))


def parse_scan_input(raw: str) -> ScanResult:
    trimmed = (raw or "").strip()
    if not trimmed:
        raise ScanValidationError("Empty scan input", code="EMPTY_SCAN")

    if is_valid_awb(trimmed):
        return ScanResult(type=ScanType.SHIPMENT, awb=trimmed.upper(), raw=trimmed)

    if trimmed.startswith("{"):
        return _parse_envelope(trimmed)

    if is_manifest_number(trimmed):
        return ScanResult(type=ScanType.MANIFEST, manifest_no=trimmed.upper(), raw=trimmed)

    return ScanResult(type=ScanType.SHIPMENT, awb=trimmed.upper(), raw=trimmed)


def _parse_envelope(trimmed: str) -> ScanResult:
    try:
        data: Any = json.loads(trimmed)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise ScanValidationError("Invalid JSON in scan input", code="INVALID_SCAN_JSON") from exc
    if not isinstance(data, dict):
        raise ScanValidationError("Invalid scan payload structure")

    version = data.get("v")
    if isinstance(version, bool) or version != SCAN_PAYLOAD_VERSION:
        raise ScanValidationError(
            "Unsupported scan payload version",
            code="UNSUPPORTED_SCAN_VERSION",
            details={"v": version},
        )

    try:
        payload = ScanPayloadV1.model_validate(data)
    except PydanticValidationError as exc:
        issue = exc.errors()[0] if exc.errors() else {"loc": ("payload",), "msg": "invalid"}
        field = ".".join(str(part) for part in issue.get("loc", ("payload",)))
        raise ScanValidationError(
            "Invalid scan payload structure",
            details={"field": field, "reason": issue.get("msg")},
        ) from exc

    if payload.type == ScanType.MANIFEST.value:
        if not payload.id and not payload.manifest_no:
            raise ScanValidationError("Manifest scan requires id or manifestNo")
        return ScanResult(
            type=ScanType.MANIFEST,
            manifest_id=payload.id or None,
            manifest_no=payload.manifest_no or None,
            route=payload.route,
            metadata=payload.metadata,
            raw=trimmed,
        )

    if payload.type == ScanType.PACKAGE.value:
        if not payload.package_id:
            raise ScanValidationError("Package scan requires packageId")
        return ScanResult(
            type=ScanType.PACKAGE,
            package_id=payload.package_id,
            awb=payload.awb or None,
            metadata=payload.metadata,
            raw=trimmed,
        )

    if payload.awb:
        if not is_valid_awb(payload.awb):
            raise ScanValidationError(
                "Invalid CN format in payload",
                code="INVALID_CN_FORMAT",
                details={"awb": payload.awb},
            )
        return ScanResult(
            type=ScanType.SHIPMENT,
            awb=payload.awb.upper(),
            metadata=payload.metadata,
            raw=trimmed,
        )

    raise ScanValidationError("Invalid scan payload structure")


def generate_manifest_qr_payload(
    manifest_id: str,
    manifest_no: str,
    from_hub_code: str | None = None,
    to_hub_code: str | None = None,
) -> str:
    if not manifest_id and not manifest_no:
        raise ScanValidationError("Manifest payload requires id or manifest number")
    route = f"{from_hub_code}-{to_hub_code}" if from_hub_code and to_hub_code else None
    payload = ScanPayloadV1(
        type=ScanType.MANIFEST.value,
        id=manifest_id or None,
        manifest_no=manifest_no or None,
        route=route,
    )
    return payload.to_json()


def generate_shipment_qr_payload(awb: str) -> str:
    code = (awb or "").strip()
    if not is_valid_awb(code):
        raise ScanValidationError(
            f"Cannot encode {awb!r}: not a valid CN number",
            code="INVALID_CN_FORMAT",
            details={"awb": awb},
        )
    return ScanPayloadV1(awb=code.upper()).to_json()
