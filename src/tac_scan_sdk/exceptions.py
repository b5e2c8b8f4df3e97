from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None
    trace_id: str | None
    status_code: int
    raw_payload: object | None = None

    def __str__(self) -> str:
        trace = f" trace_id={self.trace_id}" if self.trace_id else ""
        return f"[{self.status_code}] {self.code}: {self.message}{trace}"


class UnauthorizedError(ApiError):
    pass


class ForbiddenError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    pass


class AuthError(UnauthorizedError):
    """Authentication failed or the access token expired."""


class PermissionError(ForbiddenError):
    """Row-level security or role policy denied the request."""


class ConflictError(ApiError):
    """409 or unique-constraint style errors."""


class RateLimitError(ApiError):
    """429 throttling error."""


class ServerError(ApiError):
    """5xx server-side failures."""


class TransportError(ApiError):
    """Network/transport failure before an HTTP response was returned."""


@dataclass
class ScanError(Exception):
    """Local scan or audit failure, raised before or instead of a backend call."""

    message: str
    code: str = "SCAN_ERROR"
    details: object | None = None

    def __str__(self) -> str:
        return self.message


@dataclass
class ScanValidationError(ScanError):
    code: str = "INVALID_SCAN"


@dataclass
class ManifestNotFoundError(ScanError):
    code: str = "MANIFEST_NOT_FOUND"


@dataclass
class NoActiveSessionError(ScanError):
    code: str = "NO_ACTIVE_SESSION"


@dataclass
class ItemInExceptionError(ScanError):
    code: str = "ITEM_IN_EXCEPTION"


@dataclass
class NotOnManifestError(ScanError):
    code: str = "NOT_ON_MANIFEST"
    tracking_code: str = ""
