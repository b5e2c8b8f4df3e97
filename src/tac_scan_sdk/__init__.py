from .arrival_audit import ArrivalAuditEngine, AuditListener
from .audit_repository import AuditRepository
from .audit_state import (
    AuditActionAvailability,
    SessionState,
    ShipmentStatus,
    audit_action_availability,
    audit_status_for_shipment,
    merge_status,
)
from .config import ClientConfig, ConfigError, load_config
from .context import OrgContext, build_org_context
from .exceptions import (
    ApiError,
    ForbiddenError,
    ItemInExceptionError,
    ManifestNotFoundError,
    NoActiveSessionError,
    NotFoundError,
    NotOnManifestError,
    ScanError,
    ScanValidationError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)
from .feedback import FeedbackSink, NullFeedback, RecordingFeedback, SafeFeedback
from .http_client import HttpClient
from .models import HubRef, ManifestItemRecord, ManifestRecord, ShipmentRecord
from .models_audit import (
    AuditChange,
    AuditItem,
    AuditItemStatus,
    AuditStats,
    ScanCounters,
    ScanHistoryEntry,
    ScanOutcome,
)
from .models_scan import ScanPayloadV1, ScanResult, ScanSource, ScanType
from .record_store import RecordStore
from .retry import RetryPolicy, call_with_retry
from .scan_parser import (
    generate_manifest_qr_payload,
    generate_shipment_qr_payload,
    is_valid_awb,
    parse_scan_input,
)
from .session import ApiSession
from .tracing import TraceContext

__version__ = "0.1.0"

__all__ = [
    "ApiError",
    "ApiSession",
    "ArrivalAuditEngine",
    "AuditActionAvailability",
    "AuditChange",
    "AuditItem",
    "AuditItemStatus",
    "AuditListener",
    "AuditRepository",
    "AuditStats",
    "ClientConfig",
    "ConfigError",
    "FeedbackSink",
    "ForbiddenError",
    "HttpClient",
    "HubRef",
    "ItemInExceptionError",
    "ManifestItemRecord",
    "ManifestNotFoundError",
    "ManifestRecord",
    "NoActiveSessionError",
    "NotFoundError",
    "NotOnManifestError",
    "NullFeedback",
    "OrgContext",
    "RecordStore",
    "RecordingFeedback",
    "RetryPolicy",
    "SafeFeedback",
    "ScanCounters",
    "ScanError",
    "ScanHistoryEntry",
    "ScanOutcome",
    "ScanPayloadV1",
    "ScanResult",
    "ScanSource",
    "ScanType",
    "ScanValidationError",
    "SessionState",
    "ShipmentRecord",
    "ShipmentStatus",
    "TraceContext",
    "TransportError",
    "UnauthorizedError",
    "ValidationError",
    "audit_action_availability",
    "audit_status_for_shipment",
    "build_org_context",
    "call_with_retry",
    "generate_manifest_qr_payload",
    "generate_shipment_qr_payload",
    "is_valid_awb",
    "load_config",
    "merge_status",
    "parse_scan_input",
]
