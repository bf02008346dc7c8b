from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Iterable, Literal, Protocol

from scholarmatch.normalize.schema import InvalidRuleError, Scholarship

logger = logging.getLogger(__name__)

ChangeKind = Literal["created", "updated", "deleted", "status_changed"]


@dataclass(frozen=True, slots=True)
class ScholarshipChange:
    kind: ChangeKind
    scholarship_id: str
    scholarship: Scholarship | None = None


ChangeListener = Callable[[ScholarshipChange], None]


class ScholarshipSource(Protocol):
    def approved_scholarships(self) -> list[Scholarship]: ...

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]: ...


def parse_scholarship_records(records: Iterable[dict[str, Any]]) -> list[Scholarship]:
    """Parse raw records, skipping (and logging) any that violate the rule invariants."""
    scholarships: list[Scholarship] = []
    for position, record in enumerate(records):
        try:
            scholarships.append(Scholarship.from_mapping(record))
        except InvalidRuleError as exc:
            logger.warning(
                "Skipping scholarship %s with invalid eligibility rule: %s",
                record.get("id") or f"#{position}",
                exc,
            )
        except ValueError as exc:
            logger.warning("Skipping malformed scholarship record #%d: %s", position, exc)
    return scholarships


def load_scholarships_json(path: Path) -> list[Scholarship]:
    if not path.exists():
        raise FileNotFoundError(f"Scholarship file not found: {path}")
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("scholarships", [])
    if not isinstance(payload, list):
        raise ValueError(f"Expected a list of scholarships in {path}.")
    return parse_scholarship_records(payload)


class InMemoryScholarshipStore:
    """Reference store: holds scholarships and notifies listeners of every change."""

    def __init__(self, scholarships: Iterable[Scholarship] = ()) -> None:
        self._records: dict[str, Scholarship] = {}
        self._listeners: list[ChangeListener] = []
        self._lock = threading.Lock()
        for scholarship in scholarships:
            self._records[scholarship.id] = scholarship

    @classmethod
    def from_json(cls, path: Path) -> InMemoryScholarshipStore:
        return cls(load_scholarships_json(path))

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def get(self, scholarship_id: str) -> Scholarship | None:
        with self._lock:
            return self._records.get(scholarship_id)

    def all_scholarships(self) -> list[Scholarship]:
        with self._lock:
            return sorted(self._records.values(), key=lambda scholarship: scholarship.id)

    def approved_scholarships(self) -> list[Scholarship]:
        return [scholarship for scholarship in self.all_scholarships() if scholarship.is_approved]

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def put(self, scholarship: Scholarship) -> ScholarshipChange:
        with self._lock:
            previous = self._records.get(scholarship.id)
            self._records[scholarship.id] = scholarship
        kind: ChangeKind = "created" if previous is None else "updated"
        if previous is not None and previous.status != scholarship.status:
            kind = "status_changed"
        return self._emit(ScholarshipChange(kind, scholarship.id, scholarship))

    def set_status(self, scholarship_id: str, status: str) -> ScholarshipChange:
        with self._lock:
            current = self._records.get(scholarship_id)
            if current is None:
                raise KeyError(f"Unknown scholarship id: {scholarship_id}")
            updated = replace(current, status=status)
            self._records[scholarship_id] = updated
        return self._emit(ScholarshipChange("status_changed", scholarship_id, updated))

    def delete(self, scholarship_id: str) -> ScholarshipChange | None:
        with self._lock:
            removed = self._records.pop(scholarship_id, None)
        if removed is None:
            return None
        return self._emit(ScholarshipChange("deleted", scholarship_id, None))

    def _emit(self, change: ScholarshipChange) -> ScholarshipChange:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(change)
            except Exception:
                logger.exception(
                    "Change listener failed for %s %s", change.kind, change.scholarship_id
                )
        return change
