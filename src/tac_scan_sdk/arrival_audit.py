"""Arrival audit: receive the shipments of one manifest by scanning them.

One engine instance manages at most one active manifest. Scans are applied in
call order; the classify, lookup and claim steps run under a lock against the
live ``items`` map, so two scans of the same code can never both see the line
as PENDING. The backend write happens outside the lock.
"""
from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable

from .audit_repository import AuditRepository
from .audit_state import SessionState, merge_status
from .context import OrgContext
from .exceptions import (
    ItemInExceptionError,
    NoActiveSessionError,
    NotOnManifestError,
    ScanError,
    ScanValidationError,
)
from .feedback import FeedbackSink, NullFeedback, SafeFeedback
from .logger import log_action
from .models import ManifestRecord
from .models_audit import (
    AuditChange,
    AuditItem,
    AuditItemStatus,
    AuditStats,
    ScanCounters,
    ScanHistoryEntry,
    ScanOutcome,
)
from .models_scan import ScanSource, ScanType
from .scan_parser import parse_scan_input
from .telemetry import TelemetryLogger, build_event

logger = logging.getLogger(__name__)

AuditListener = Callable[[AuditChange], None]

DEFAULT_HISTORY_LIMIT = 50


class ArrivalAuditEngine:
    def __init__(
        self,
        repository: AuditRepository,
        *,
        context: OrgContext,
        feedback: FeedbackSink | None = None,
        telemetry: TelemetryLogger | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self._repository = repository
        self._context = context
        self._feedback = SafeFeedback(feedback or NullFeedback())
        self._telemetry = telemetry
        self._lock = threading.RLock()
        self._manifest: ManifestRecord | None = None
        self._items: dict[str, AuditItem] = {}
        self._in_flight: set[str] = set()
        self._session_version = 0
        self._history: deque[ScanHistoryEntry] = deque(maxlen=history_limit)
        self._counters = ScanCounters()
        self._listeners: list[AuditListener] = []

    @property
    def active_manifest(self) -> ManifestRecord | None:
        with self._lock:
            return self._manifest

    @property
    def active_manifest_id(self) -> str | None:
        with self._lock:
            return self._manifest.id if self._manifest else None

    @property
    def session_state(self) -> SessionState:
        with self._lock:
            return SessionState.ACTIVE if self._manifest else SessionState.NO_SESSION

    @property
    def is_scanning(self) -> bool:
        with self._lock:
            return bool(self._in_flight)

    def items(self) -> list[AuditItem]:
        with self._lock:
            return list(self._items.values())

    def item_for(self, tracking_code: str) -> AuditItem | None:
        with self._lock:
            return self._find_locked(tracking_code.strip())

    def stats(self) -> AuditStats:
        with self._lock:
            statuses = [item.status for item in self._items.values()]
        return AuditStats(
            total=len(statuses),
            scanned=statuses.count(AuditItemStatus.SCANNED),
            missing=statuses.count(AuditItemStatus.PENDING),
            exceptions=statuses.count(AuditItemStatus.EXCEPTION),
        )

    def history(self) -> list[ScanHistoryEntry]:
        with self._lock:
            return list(reversed(self._history))

    def counters(self) -> ScanCounters:
        with self._lock:
            return self._counters

    def subscribe(self, listener: AuditListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def resolve_manifest(self, code: str, context: OrgContext | None = None) -> ManifestRecord:
        ctx = context or self._context
        try:
            lookup = _manifest_lookup_code(code)
            manifest = self._repository.find_manifest(ctx.org_id, lookup)
            items = self._repository.list_audit_items(manifest.id)
        except Exception as exc:
            error_code = getattr(exc, "code", type(exc).__name__)
            self._feedback.play_error()
            log_action(
                logger,
                "arrival_audit",
                "resolve_manifest",
                ctx.org_id,
                ctx.trace_id,
                "error",
                level=logging.WARNING,
                code=(code or "").strip(),
                error_code=error_code,
            )
            self._emit("session", "manifest_not_resolved", "resolve_manifest", ctx, success=False, error_code=error_code)
            raise

        with self._lock:
            self._session_version += 1
            self._context = ctx
            self._manifest = manifest
            self._items = {item.shipment_id: item for item in items}
            self._in_flight.clear()
            self._history.clear()
            self._counters = ScanCounters()

        self._feedback.play_success()
        log_action(
            logger,
            "arrival_audit",
            "resolve_manifest",
            ctx.org_id,
            ctx.trace_id,
            "success",
            manifest_id=manifest.id,
            manifest_no=manifest.manifest_no,
            lines=len(items),
        )
        self._emit(
            "session",
            "manifest_opened",
            "resolve_manifest",
            ctx,
            success=True,
            context={"manifest_id": manifest.id, "lines": len(items)},
        )
        self._notify(AuditChange(kind="session_opened", manifest_id=manifest.id))
        return manifest

    def apply_scan(self, raw: str, *, source: ScanSource = ScanSource.MANUAL) -> ScanOutcome:
        with self._lock:
            has_session = self._manifest is not None
        if not has_session:
            manifest = self.resolve_manifest(raw)
            return ScanOutcome(
                success=True,
                message=f"Manifest {manifest.manifest_no} opened",
                manifest_id=manifest.id,
            )

        try:
            tracking_code = _tracking_code_for(raw)
        except ScanValidationError as exc:
            self._feedback.play_error()
            self._record((raw or "").strip(), "error", exc.message, source, error_code=exc.code)
            raise

        version = -1
        manifest_id: str | None = None
        with self._lock:
            if self._manifest is None:
                claimed = None
                duplicate_message = ""
                failure: ScanError | None = NoActiveSessionError("No manifest is open for audit")
            else:
                version = self._session_version
                manifest_id = self._manifest.id
                claimed, failure, duplicate_message = self._claim_locked(tracking_code)

        if failure is not None:
            if isinstance(failure, ItemInExceptionError):
                self._feedback.play_warning()
            else:
                self._feedback.play_error()
            self._record(tracking_code, "error", failure.message, source, error_code=failure.code)
            raise failure

        if claimed is None:
            message = duplicate_message
            self._feedback.play_warning()
            self._record(tracking_code, "duplicate", message, source)
            return ScanOutcome(
                success=True,
                duplicate=True,
                message=message,
                tracking_code=tracking_code,
                manifest_id=manifest_id,
            )

        try:
            self._repository.mark_received(claimed.shipment_id)
        except Exception as exc:
            with self._lock:
                self._in_flight.discard(claimed.shipment_id)
            self._feedback.play_error()
            self._record(
                tracking_code,
                "error",
                getattr(exc, "message", str(exc)),
                source,
                error_code=getattr(exc, "code", type(exc).__name__),
            )
            raise

        with self._lock:
            self._in_flight.discard(claimed.shipment_id)
            current = self._items.get(claimed.shipment_id)
            if version == self._session_version and current is not None:
                self._items[claimed.shipment_id] = current.with_status(AuditItemStatus.SCANNED)

        message = "Successfully received"
        self._feedback.play_success()
        self._record(tracking_code, "success", message, source)
        self._notify(AuditChange(kind="item_scanned", manifest_id=manifest_id, shipment_id=claimed.shipment_id))
        self._reconcile_after_write(version)
        return ScanOutcome(
            success=True,
            message=message,
            tracking_code=tracking_code,
            manifest_id=manifest_id,
        )

    def refresh(self) -> bool:
        """Re-read the manifest lines; False when the session changed mid-read."""
        with self._lock:
            if self._manifest is None:
                raise NoActiveSessionError("No manifest is open for audit")
            version = self._session_version
        return self._refresh(version)

    def clear_session(self) -> None:
        with self._lock:
            manifest_id = self._manifest.id if self._manifest else None
            self._session_version += 1
            self._manifest = None
            self._items = {}
            self._in_flight.clear()
            self._history.clear()
            self._counters = ScanCounters()
        if manifest_id is None:
            return
        log_action(
            logger,
            "arrival_audit",
            "clear_session",
            self._context.org_id,
            self._context.trace_id,
            "success",
            manifest_id=manifest_id,
        )
        self._notify(AuditChange(kind="session_cleared", manifest_id=manifest_id))

    def _claim_locked(self, tracking_code: str) -> tuple[AuditItem | None, ScanError | None, str]:
        item = self._find_locked(tracking_code)
        if item is None:
            return None, NotOnManifestError(
                f"Shipment {tracking_code} is NOT on this manifest!",
                tracking_code=tracking_code,
            ), ""
        if item.status is AuditItemStatus.SCANNED:
            return None, None, "Already scanned"
        if item.shipment_id in self._in_flight:
            return None, None, "Receipt in progress"
        if item.status is AuditItemStatus.EXCEPTION:
            return None, ItemInExceptionError(
                f"Shipment {tracking_code} is flagged as an exception",
                details={"shipment_id": item.shipment_id},
            ), ""
        self._in_flight.add(item.shipment_id)
        return item, None, ""

    def _find_locked(self, tracking_code: str) -> AuditItem | None:
        for item in self._items.values():
            if item.matches(tracking_code):
                return item
        return None

    def _refresh(self, version: int) -> bool:
        with self._lock:
            if self._manifest is None or version != self._session_version:
                return False
            manifest_id = self._manifest.id
        fresh = self._repository.list_audit_items(manifest_id)
        with self._lock:
            if version != self._session_version:
                logger.info("Discarding refresh of manifest %s: session changed", manifest_id)
                return False
            merged: dict[str, AuditItem] = {}
            for item in fresh:
                local = self._items.get(item.shipment_id)
                if local is not None:
                    item = item.with_status(merge_status(local.status, item.status))
                merged[item.shipment_id] = item
            self._items = merged
        self._notify(AuditChange(kind="items_refreshed", manifest_id=manifest_id))
        return True

    def _reconcile_after_write(self, version: int) -> None:
        try:
            self._refresh(version)
        except Exception as exc:
            log_action(
                logger,
                "arrival_audit",
                "reconcile",
                self._context.org_id,
                getattr(exc, "trace_id", None) or self._context.trace_id,
                "error",
                level=logging.WARNING,
                error_code=getattr(exc, "code", type(exc).__name__),
            )

    def _record(
        self,
        tracking_code: str,
        result: str,
        message: str,
        source: ScanSource,
        *,
        error_code: str | None = None,
    ) -> None:
        entry = ScanHistoryEntry(
            tracking_code=tracking_code,
            result=result,
            message=message,
            source=source,
            timestamp=datetime.now(timezone.utc),
        )
        with self._lock:
            self._history.append(entry)
            current = self._counters
            self._counters = replace(current, **{result: getattr(current, result) + 1})
            manifest_id = self._manifest.id if self._manifest else None
            ctx = self._context
        log_action(
            logger,
            "arrival_audit",
            "apply_scan",
            ctx.org_id,
            ctx.trace_id,
            result,
            level=logging.WARNING if result == "error" else logging.INFO,
            manifest_id=manifest_id,
            tracking_code=tracking_code,
            source=source.value,
            error_code=error_code,
        )
        self._emit(
            "scan",
            f"scan_{result}",
            "apply_scan",
            ctx,
            success=result != "error",
            error_code=error_code,
            context={"manifest_id": manifest_id, "tracking_code": tracking_code, "source": source.value},
        )

    def _emit(
        self,
        category: str,
        name: str,
        action: str,
        ctx: OrgContext,
        *,
        success: bool | None = None,
        error_code: str | None = None,
        context: dict | None = None,
    ) -> None:
        if self._telemetry is None:
            return
        event = build_event(
            category=category,
            name=name,
            module="arrival_audit",
            action=action,
            trace_id=ctx.trace_id,
            success=success,
            error_code=error_code,
            context=context,
        )
        try:
            self._telemetry.emit(event)
        except OSError:
            logger.warning("Telemetry write failed for %s", name, exc_info=True)

    def _notify(self, change: AuditChange) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(change)
            except Exception:
                logger.exception("Audit listener failed on %s", change.kind)


def _manifest_lookup_code(code: str) -> str:
    parsed = parse_scan_input(code)
    if parsed.type is ScanType.MANIFEST:
        return parsed.manifest_id or parsed.manifest_no or parsed.raw
    if parsed.raw.startswith("{"):
        raise ScanValidationError(
            "Scan a manifest code to open an audit session",
            code="NOT_A_MANIFEST",
            details={"type": parsed.type.value},
        )
    return parsed.raw


def _tracking_code_for(raw: str) -> str:
    trimmed = (raw or "").strip()
    if not trimmed:
        raise ScanValidationError("Empty scan input", code="EMPTY_SCAN")
    try:
        parsed = parse_scan_input(trimmed)
    except ScanValidationError:
        return trimmed.upper()
    return parsed.awb or trimmed.upper()
