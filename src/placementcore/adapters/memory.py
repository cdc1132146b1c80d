"""Thread-safe in-memory store."""

from __future__ import annotations

import threading
from typing import Any

from ..schemas import ApprovableBase, Application, Jurisdiction, Role


class InMemoryStore:
    """Keeps the latest version of every record in a dict.

    Each call takes the lock once, so a compare-and-swap is atomic with
    respect to every other call. Nothing is locked across calls.
    """

    def __init__(self) -> None:
        self._records: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, record_id: str) -> tuple[Any, int] | None:
        with self._lock:
            record = self._records.get(record_id)
        if record is None:
            return None
        return record, record.version

    def insert(self, record: Any) -> None:
        with self._lock:
            if record.id in self._records:
                raise KeyError(f"Record already exists: {record.id!r}")
            self._records[record.id] = record

    def compare_and_swap(self, record_id: str, expected_version: int, new_record: Any) -> bool:
        if new_record.version != expected_version + 1:
            raise ValueError(
                f"New record version must be {expected_version + 1}, got {new_record.version}"
            )
        with self._lock:
            current = self._records.get(record_id)
            if current is None or current.version != expected_version:
                return False
            self._records[record_id] = new_record
            return True

    def query_by_jurisdiction(self, role: Role, jurisdiction: Jurisdiction) -> list[Any]:
        with self._lock:
            records = list(self._records.values())
        return [
            record
            for record in records
            if isinstance(record, ApprovableBase)
            and record.target_role is role
            and jurisdiction.contains(record.jurisdiction)
        ]

    def query_applications(
        self,
        *,
        student_id: str | None = None,
        opportunity_id: str | None = None,
    ) -> list[Application]:
        with self._lock:
            records = list(self._records.values())
        return [
            record
            for record in records
            if isinstance(record, Application)
            and (student_id is None or record.student_id == student_id)
            and (opportunity_id is None or record.opportunity_id == opportunity_id)
        ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
