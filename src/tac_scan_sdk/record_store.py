from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol

Record = dict[str, Any]


class RecordStore(Protocol):
    """Generic query/update surface of the system of record."""

    def find(
        self,
        table: str,
        filters: Mapping[str, str],
        *,
        select: str | None = None,
        limit: int | None = None,
        order: str | None = None,
    ) -> list[Record]: ...

    def update(self, table: str, record_id: str, patch: Mapping[str, Any]) -> Record: ...


def eq(value: object) -> str:
    return f"eq.{value}"


def in_(values: Iterable[object]) -> str:
    joined = ",".join(str(value) for value in values)
    return f"in.({joined})"
