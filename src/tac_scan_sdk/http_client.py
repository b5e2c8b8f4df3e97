from __future__ import annotations

import json
import random
import time
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter

from .config import ClientConfig
from .error_mapper import map_error
from .exceptions import ApiError, TransportError
from .retry import RetryPolicy, call_with_retry
from .tracing import TRACE_HEADER, TraceContext

ResponseHook = Callable[[requests.Response], None]
RequestHook = Callable[[str, str, dict[str, Any]], None]


def _error_type_from_status(status_code: int) -> str:
    if status_code in {401, 403}:
        return "auth"
    if status_code in {400, 404, 406, 422}:
        return "validation"
    if status_code == 409:
        return "conflict"
    if status_code <= 0:
        return "network"
    return "internal"


@dataclass(frozen=True)
class NormalizedError:
    code: str
    message: str
    trace_id: str | None
    type: str


@dataclass
class LastOperation:
    module: str
    operation: str
    duration_ms: int
    result: str
    trace_id: str | None


@dataclass
class HttpClient:
    config: ClientConfig
    trace: TraceContext | None = None
    session: requests.Session | None = None
    before_request: RequestHook | None = None
    after_response: ResponseHook | None = None
    retry_policy: RetryPolicy | None = None
    sleep: Callable[[float], None] = time.sleep
    rand: Callable[[], float] = random.random
    last_operation: LastOperation | None = None

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = requests.Session()
            adapter = HTTPAdapter(
                pool_connections=self.config.max_connections,
                pool_maxsize=self.config.max_connections,
            )
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)
        if self.retry_policy is None:
            self.retry_policy = RetryPolicy.from_config(self.config)

    def _build_url(self, path: str) -> str:
        base = self.config.api_base_url.rstrip("/") + "/"
        return urljoin(base, path.lstrip("/"))

    def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | list[Any] | None = None,
        params: dict[str, Any] | None = None,
        response_hook: ResponseHook | None = None,
        retry_mutation: bool = False,
        module: str = "unknown",
        operation: str = "unknown",
    ) -> dict[str, Any] | list[Any] | None:
        if self.session is None:
            raise RuntimeError("HTTP session not initialized")
        request_headers = {"Accept": "application/json"}
        if headers:
            request_headers.update(headers)
        trace_context = self.trace or TraceContext()
        request_headers[TRACE_HEADER] = trace_context.ensure()

        normalized_method = method.upper()
        url = self._build_url(path)
        request_context = {
            "headers": request_headers,
            "json_body": json_body,
            "params": params,
        }
        if self.before_request:
            self.before_request(normalized_method, url, request_context)

        can_retry = normalized_method in {"GET", "HEAD"} or retry_mutation
        policy = self.retry_policy or RetryPolicy.from_config(self.config)
        if not can_retry:
            policy = RetryPolicy(retries=0)

        def attempt() -> dict[str, Any] | list[Any] | None:
            try:
                response = self.session.request(
                    method=normalized_method,
                    url=url,
                    headers=request_headers,
                    json=json_body,
                    params=params,
                    timeout=(self.config.connect_timeout_seconds, self.config.read_timeout_seconds),
                    verify=self.config.verify_ssl,
                )
            except requests.RequestException as exc:
                raise TransportError(
                    code="TRANSPORT_ERROR",
                    message=str(exc),
                    details={"type": type(exc).__name__},
                    trace_id=trace_context.trace_id,
                    status_code=0,
                    raw_payload=None,
                ) from exc
            if self.after_response:
                self.after_response(response)
            trace_context.update_from_headers(response.headers)
            if response_hook:
                response_hook(response)
            if response.ok:
                if not response.content:
                    return None
                return response.json()
            try:
                payload = response.json()
            except (json.JSONDecodeError, ValueError):
                payload = {"message": response.text}
            raise map_error(
                response.status_code,
                payload if isinstance(payload, dict) else {"details": payload},
                trace_context.trace_id,
            )

        started = time.monotonic()
        try:
            result = call_with_retry(
                attempt,
                policy,
                sleep=self.sleep,
                rand=self.rand,
                label=f"{module}.{operation}",
            )
        except ApiError:
            self._record_operation(module, operation, started, "error", trace_context.trace_id)
            raise
        self._record_operation(module, operation, started, "success", trace_context.trace_id)
        return result

    def normalize_error(self, error: Exception) -> NormalizedError:
        if isinstance(error, TransportError):
            return NormalizedError(
                code=error.code,
                message=error.message,
                trace_id=error.trace_id,
                type="network",
            )
        code = getattr(error, "code", "UNKNOWN_ERROR")
        message = getattr(error, "message", str(error))
        trace_id = getattr(error, "trace_id", None)
        status_code = int(getattr(error, "status_code", 0) or 0)
        return NormalizedError(
            code=str(code),
            message=str(message),
            trace_id=trace_id,
            type=_error_type_from_status(status_code),
        )

    def _record_operation(self, module: str, operation: str, started: float, result: str, trace_id: str | None) -> None:
        self.last_operation = LastOperation(
            module=module,
            operation=operation,
            duration_ms=int((time.monotonic() - started) * 1000),
            result=result,
            trace_id=trace_id,
        )
