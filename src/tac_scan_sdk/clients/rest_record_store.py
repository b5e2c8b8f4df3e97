from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ..exceptions import NotFoundError
from ..record_store import Record, eq
from .base import BaseClient

REST_PREFIX = "/rest/v1"


@dataclass
class RestRecordStore(BaseClient):
    """RecordStore over a PostgREST endpoint."""

    def find(
        self,
        table: str,
        filters: Mapping[str, str],
        *,
        select: str | None = None,
        limit: int | None = None,
        order: str | None = None,
    ) -> list[Record]:
        params = build_find_params(filters, select=select, limit=limit, order=order)
        payload = self._request(
            "GET",
            f"{REST_PREFIX}/{table}",
            params=params,
            module=table,
            operation="find",
        )
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise ValueError(f"Expected {table} query response to be a JSON array")
        return [row for row in payload if isinstance(row, dict)]

    def update(self, table: str, record_id: str, patch: Mapping[str, Any]) -> Record:
        payload = self._request(
            "PATCH",
            f"{REST_PREFIX}/{table}",
            params={"id": eq(record_id)},
            json_body=dict(patch),
            headers={"Prefer": "return=representation"},
            retry_mutation=True,
            module=table,
            operation="update",
        )
        rows = payload if isinstance(payload, list) else [payload] if isinstance(payload, dict) else []
        if not rows:
            raise NotFoundError(
                code="RECORD_NOT_FOUND",
                message=f"No {table} row with id {record_id}",
                details={"table": table, "id": record_id},
                trace_id=self.http.trace.trace_id if self.http.trace else None,
                status_code=404,
                raw_payload=None,
            )
        return rows[0]


def build_find_params(
    filters: Mapping[str, str],
    *,
    select: str | None = None,
    limit: int | None = None,
    order: str | None = None,
) -> dict[str, Any]:
    params: dict[str, Any] = {"select": select or "*"}
    params.update(filters)
    if limit is not None:
        params["limit"] = limit
    if order:
        params["order"] = order
    return params
