from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable

from dotenv import load_dotenv

DEFAULT_RETRYABLE_STATUS_CODES = (408, 429, 500, 502, 503, 504)


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ClientConfig:
    env_name: str
    api_base_url: str
    api_key: str
    access_token: str | None = None
    org_id: str | None = None
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 15.0
    retries: int = 3
    retry_backoff_seconds: float = 0.3
    retry_jitter_ratio: float = 0.25
    retryable_status_codes: tuple[int, ...] = DEFAULT_RETRYABLE_STATUS_CODES
    max_connections: int = 20
    verify_ssl: bool = True
    telemetry_enabled: bool = False

    @property
    def normalized_env(self) -> str:
        return self.env_name.lower().strip()


def _require(values: dict[str, str | None], required: Iterable[str]) -> None:
    missing = [key for key in required if not values.get(key)]
    if missing:
        raise ConfigError(f"Missing required config values: {', '.join(missing)}")


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected a number, got {raw!r}") from exc


def _read_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected an integer, got {raw!r}") from exc


def _read_status_codes(name: str, default: Iterable[int]) -> tuple[int, ...]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return tuple(default)
    codes: list[int] = []
    for part in raw.split(","):
        token = part.strip()
        if not token:
            continue
        try:
            code = int(token)
        except ValueError as exc:
            raise ConfigError(f"Invalid {name}: expected comma-separated integers, got {raw!r}") from exc
        _validate(100 <= code <= 599, f"Invalid {name}: {code} is not an HTTP status code")
        codes.append(code)
    return tuple(codes)


def _validate(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(message)


def load_config(env_file: str | None = None) -> ClientConfig:
    """Load config from environment with optional .env override."""
    load_dotenv(env_file)

    env_name = (os.getenv("TAC_ENV") or "dev").strip()
    env_key = env_name.upper()

    api_base_url = (
        (os.getenv(f"TAC_API_BASE_URL_{env_key}") or "").strip()
        or (os.getenv("TAC_API_BASE_URL") or "").strip()
    )
    api_key = (os.getenv("TAC_API_KEY") or "").strip()
    access_token = (os.getenv("TAC_ACCESS_TOKEN") or "").strip() or None
    org_id = (os.getenv("TAC_ORG_ID") or "").strip() or None

    timeout_seconds = _read_float("TAC_TIMEOUT_SECONDS", "10")
    _validate(
        timeout_seconds > 0,
        f"Invalid TAC_TIMEOUT_SECONDS: expected > 0, got {timeout_seconds}",
    )

    connect_timeout_seconds = _read_float(
        "TAC_CONNECT_TIMEOUT_SECONDS", str(min(timeout_seconds, 5.0))
    )
    _validate(
        connect_timeout_seconds > 0,
        f"Invalid TAC_CONNECT_TIMEOUT_SECONDS: expected > 0, got {connect_timeout_seconds}",
    )

    read_timeout_seconds = _read_float(
        "TAC_READ_TIMEOUT_SECONDS",
        str(max(timeout_seconds, connect_timeout_seconds)),
    )
    _validate(
        read_timeout_seconds > 0,
        f"Invalid TAC_READ_TIMEOUT_SECONDS: expected > 0, got {read_timeout_seconds}",
    )

    retries = _read_int("TAC_RETRIES", "3")
    _validate(retries >= 0, f"Invalid TAC_RETRIES: expected >= 0, got {retries}")

    retry_backoff_seconds = _read_float("TAC_RETRY_BACKOFF_SECONDS", "0.3")
    _validate(
        retry_backoff_seconds >= 0,
        f"Invalid TAC_RETRY_BACKOFF_SECONDS: expected >= 0, got {retry_backoff_seconds}",
    )

    retry_jitter_ratio = _read_float("TAC_RETRY_JITTER_RATIO", "0.25")
    _validate(
        0 <= retry_jitter_ratio < 1,
        f"Invalid TAC_RETRY_JITTER_RATIO: expected 0 <= ratio < 1, got {retry_jitter_ratio}",
    )

    retryable_status_codes = _read_status_codes(
        "TAC_RETRYABLE_STATUS_CODES", DEFAULT_RETRYABLE_STATUS_CODES
    )

    max_connections = _read_int("TAC_MAX_CONNECTIONS", "20")
    _validate(
        max_connections >= 1,
        f"Invalid TAC_MAX_CONNECTIONS: expected >= 1, got {max_connections}",
    )

    verify_ssl = _coerce_bool(os.getenv("TAC_VERIFY_SSL"), True)
    telemetry_enabled = _coerce_bool(os.getenv("TAC_TELEMETRY_ENABLED"), False)

    values = {"TAC_API_BASE_URL": api_base_url, "TAC_API_KEY": api_key}
    _require(values, ["TAC_API_BASE_URL", "TAC_API_KEY"])

    return ClientConfig(
        env_name=env_name,
        api_base_url=api_base_url.rstrip("/"),
        api_key=api_key,
        access_token=access_token,
        org_id=org_id,
        connect_timeout_seconds=connect_timeout_seconds,
        read_timeout_seconds=read_timeout_seconds,
        retries=retries,
        retry_backoff_seconds=retry_backoff_seconds,
        retry_jitter_ratio=retry_jitter_ratio,
        retryable_status_codes=retryable_status_codes,
        max_connections=max_connections,
        verify_ssl=verify_ssl,
        telemetry_enabled=telemetry_enabled,
    )
