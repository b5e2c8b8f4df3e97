from __future__ import annotations

import os

import pytest

from tac_scan_sdk.config import DEFAULT_RETRYABLE_STATUS_CODES, ConfigError, load_config


TAC_KEYS = (
    "TAC_ENV",
    "TAC_API_BASE_URL",
    "TAC_API_BASE_URL_DEV",
    "TAC_API_BASE_URL_STAGING",
    "TAC_API_KEY",
    "TAC_ACCESS_TOKEN",
    "TAC_ORG_ID",
    "TAC_TIMEOUT_SECONDS",
    "TAC_CONNECT_TIMEOUT_SECONDS",
    "TAC_READ_TIMEOUT_SECONDS",
    "TAC_RETRIES",
    "TAC_RETRY_BACKOFF_SECONDS",
    "TAC_RETRY_JITTER_RATIO",
    "TAC_RETRYABLE_STATUS_CODES",
    "TAC_MAX_CONNECTIONS",
    "TAC_VERIFY_SSL",
    "TAC_TELEMETRY_ENABLED",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    for key in TAC_KEYS:
        monkeypatch.delenv(key, raising=False)
    yield
    # load_dotenv writes straight into os.environ
    for key in TAC_KEYS:
        os.environ.pop(key, None)


def _base(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TAC_API_BASE_URL", "https://project.example.co/")
    monkeypatch.setenv("TAC_API_KEY", "anon-key")


def test_load_config_requires_base_url_and_key() -> None:
    with pytest.raises(ConfigError, match="TAC_API_BASE_URL, TAC_API_KEY"):
        load_config()


def test_load_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    _base(monkeypatch)

    cfg = load_config()

    assert cfg.env_name == "dev"
    assert cfg.api_base_url == "https://project.example.co"
    assert cfg.api_key == "anon-key"
    assert cfg.access_token is None
    assert cfg.org_id is None
    assert cfg.connect_timeout_seconds == 5.0
    assert cfg.read_timeout_seconds == 10.0
    assert cfg.retries == 3
    assert cfg.retry_jitter_ratio == 0.25
    assert cfg.retryable_status_codes == DEFAULT_RETRYABLE_STATUS_CODES
    assert cfg.verify_ssl is True
    assert cfg.telemetry_enabled is False


def test_load_config_profile(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TAC_ENV", "staging")
    monkeypatch.setenv("TAC_API_BASE_URL", "https://fallback.example.co")
    monkeypatch.setenv("TAC_API_BASE_URL_STAGING", "https://staging.example.co")
    monkeypatch.setenv("TAC_API_KEY", "anon-key")
    monkeypatch.setenv("TAC_ORG_ID", " org-1 ")

    cfg = load_config()

    assert cfg.api_base_url == "https://staging.example.co"
    assert cfg.normalized_env == "staging"
    assert cfg.org_id == "org-1"


def test_load_config_reads_env_file(tmp_path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "TAC_API_BASE_URL=https://file.example.co\nTAC_API_KEY=file-key\nTAC_TELEMETRY_ENABLED=yes\n",
        encoding="utf-8",
    )

    cfg = load_config(str(env_file))

    assert cfg.api_base_url == "https://file.example.co"
    assert cfg.api_key == "file-key"
    assert cfg.telemetry_enabled is True


def test_load_config_retry_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    _base(monkeypatch)
    monkeypatch.setenv("TAC_RETRIES", "5")
    monkeypatch.setenv("TAC_RETRY_BACKOFF_SECONDS", "0.5")
    monkeypatch.setenv("TAC_RETRY_JITTER_RATIO", "0.1")
    monkeypatch.setenv("TAC_RETRYABLE_STATUS_CODES", "503, 504,")

    cfg = load_config()

    assert cfg.retries == 5
    assert cfg.retry_backoff_seconds == 0.5
    assert cfg.retry_jitter_ratio == 0.1
    assert cfg.retryable_status_codes == (503, 504)


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("TAC_TIMEOUT_SECONDS", "0"),
        ("TAC_CONNECT_TIMEOUT_SECONDS", "0"),
        ("TAC_READ_TIMEOUT_SECONDS", "0"),
        ("TAC_RETRIES", "-1"),
        ("TAC_RETRY_BACKOFF_SECONDS", "-0.1"),
        ("TAC_RETRY_JITTER_RATIO", "1"),
        ("TAC_RETRYABLE_STATUS_CODES", "503,99"),
        ("TAC_MAX_CONNECTIONS", "0"),
    ],
)
def test_load_config_rejects_invalid_ranges(monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
    _base(monkeypatch)
    monkeypatch.setenv(key, value)

    with pytest.raises(ConfigError, match=key):
        load_config()


@pytest.mark.parametrize(
    "key",
    [
        "TAC_TIMEOUT_SECONDS",
        "TAC_READ_TIMEOUT_SECONDS",
        "TAC_RETRIES",
        "TAC_RETRY_JITTER_RATIO",
        "TAC_RETRYABLE_STATUS_CODES",
        "TAC_MAX_CONNECTIONS",
    ],
)
def test_load_config_rejects_invalid_types(monkeypatch: pytest.MonkeyPatch, key: str) -> None:
    _base(monkeypatch)
    monkeypatch.setenv(key, "abc")

    with pytest.raises(ConfigError, match=key):
        load_config()
