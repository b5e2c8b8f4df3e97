from __future__ import annotations

from dataclasses import dataclass

from .arrival_audit import ArrivalAuditEngine
from .audit_repository import AuditRepository
from .clients.rest_record_store import RestRecordStore
from .config import ClientConfig
from .context import OrgContext, build_org_context
from .feedback import FeedbackSink
from .http_client import HttpClient
from .telemetry import TelemetryLogger
from .tracing import TraceContext


@dataclass
class ApiSession:
    config: ClientConfig
    context: OrgContext | None = None
    trace: TraceContext | None = None
    access_token: str | None = None

    def __post_init__(self) -> None:
        self.trace = self.trace or TraceContext()
        self.access_token = self.access_token or self.config.access_token
        if self.context is None and self.config.org_id:
            self.context = build_org_context(org_id=self.config.org_id, trace_id=self.trace.ensure())

    def _http(self) -> HttpClient:
        return HttpClient(config=self.config, trace=self.trace)

    def record_store(self) -> RestRecordStore:
        return RestRecordStore(http=self._http(), access_token=self.access_token)

    def audit_repository(self) -> AuditRepository:
        return AuditRepository(store=self.record_store())

    def telemetry_logger(self) -> TelemetryLogger:
        return TelemetryLogger(app_name="tac-scan", enabled=self.config.telemetry_enabled)

    def arrival_audit(
        self,
        *,
        feedback: FeedbackSink | None = None,
        context: OrgContext | None = None,
    ) -> ArrivalAuditEngine:
        resolved = context or self.context
        if resolved is None:
            raise ValueError("An org context is required; set TAC_ORG_ID or pass context=")
        return ArrivalAuditEngine(
            self.audit_repository(),
            context=resolved,
            feedback=feedback,
            telemetry=self.telemetry_logger() if self.config.telemetry_enabled else None,
        )

    def establish(self, access_token: str, context: OrgContext | None = None) -> None:
        self.access_token = access_token
        if context is not None:
            self.context = context

    def clear(self) -> None:
        self.access_token = None
        self.context = None
