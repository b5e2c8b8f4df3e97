from __future__ import annotations

import pytest

from tac_scan_sdk.error_mapper import map_error
from tac_scan_sdk.exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ServerError,
    UnauthorizedError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (401, AuthError),
        (403, ForbiddenError),
        (404, NotFoundError),
        (400, ValidationError),
        (422, ValidationError),
        (409, ConflictError),
        (429, RateLimitError),
        (500, ServerError),
        (503, ServerError),
    ],
)
def test_error_mapper_classes(status: int, expected: type[ApiError]) -> None:
    err = map_error(status, {"code": "X", "message": "bad"}, "trace")
    assert isinstance(err, expected)
    assert err.status_code == status
    assert err.trace_id == "trace"


def test_auth_error_is_an_unauthorized_error() -> None:
    assert isinstance(map_error(401, {"message": "JWT expired"}, None), UnauthorizedError)


def test_postgrest_single_row_miss_is_not_found() -> None:
    err = map_error(406, {"code": "PGRST116", "message": "JSON object requested, multiple (or no) rows returned"}, None)
    assert isinstance(err, NotFoundError)
    assert err.status_code == 406


def test_unique_violation_is_conflict_with_hint() -> None:
    err = map_error(
        400,
        {"code": "23505", "message": "duplicate key", "details": "Key (cn_number)=(TAC1) exists.", "hint": None},
        "trace-1",
    )
    assert isinstance(err, ConflictError)
    assert err.details == "Key (cn_number)=(TAC1) exists."

    hinted = map_error(400, {"code": "22P02", "message": "invalid input", "hint": "check uuid"}, None)
    assert hinted.details == {"details": None, "hint": "check uuid"}


def test_error_mapper_defaults_and_payload_trace() -> None:
    err = map_error(418, None, "trace-x")
    assert type(err) is ApiError
    assert err.code == "HTTP_ERROR"
    assert err.message == "Request failed"

    server = map_error(500, {"code": "SERVER_ERROR", "message": "oops", "trace_id": "trace-500"}, "local")
    assert server.trace_id == "trace-500"
    assert "trace_id=trace-500" in str(server)
    assert server.raw_payload["code"] == "SERVER_ERROR"
