"""Append-only event log: the audit trail of every committed governance action.

Every committed state change in the governance core produces an event
record that is appended to the log. Events are immutable once written.
The log serves as:
1. The audit trail for funding, votes, registrations and halts.
2. The hand-off record for a hosting substrate that replays state.

A rejected call writes nothing: events are appended only after all
policy checks have passed.
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


class EventKind(str, enum.Enum):
    """Classification of governance events."""
    OPERATING_STATUS_CHANGED = "operating_status_changed"
    FUNDING_DEPOSITED = "funding_deposited"
    AIRLINE_FUNDED = "airline_funded"
    REGISTRATION_VOTE_CAST = "registration_vote_cast"
    AIRLINE_REGISTERED = "airline_registered"


def _canonical_hash(
    event_id: str,
    event_kind: str,
    timestamp_utc: str,
    actor_id: str,
    payload: dict[str, Any],
) -> str:
    canonical = json.dumps(
        {
            "event_id": event_id,
            "event_kind": event_kind,
            "timestamp_utc": timestamp_utc,
            "actor_id": actor_id,
            "payload": payload,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class EventRecord:
    """A single immutable event in the governance log.

    The event_hash is computed at creation time over the canonical JSON
    of every other field.
    """
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]
    event_hash: str

    @staticmethod
    def create(
        event_id: str,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        """Create a new event record with computed hash."""
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y-%m-%dT%H:%M:%SZ")
        return EventRecord(
            event_id=event_id,
            event_kind=event_kind,
            timestamp_utc=ts_str,
            actor_id=actor_id,
            payload=payload,
            event_hash=_canonical_hash(
                event_id, event_kind.value, ts_str, actor_id, payload,
            ),
        )


class EventLog:
    """Append-only event log with optional JSONL file persistence.

    Events can only be appended, never modified or deleted.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._events: list[EventRecord] = []
        self._storage_path = storage_path
        self._event_ids: set[str] = set()

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def append(self, event: EventRecord) -> None:
        """Append an event to the log.

        Raises ValueError if event_id is a duplicate (replay protection).
        """
        if event.event_id in self._event_ids:
            raise ValueError(f"Duplicate event ID: {event.event_id}")

        if self._storage_path:
            self._append_to_file(event)

        self._events.append(event)
        self._event_ids.add(event.event_id)

    def append_all(self, events: list[EventRecord]) -> None:
        """Append a batch of events as one unit.

        Every ID is checked before anything is written, and the batch is
        written to the file in a single call, so a rejected batch leaves
        the log unchanged.
        """
        batch_ids: set[str] = set()
        for event in events:
            if event.event_id in self._event_ids or event.event_id in batch_ids:
                raise ValueError(f"Duplicate event ID: {event.event_id}")
            batch_ids.add(event.event_id)

        if self._storage_path and events:
            self._append_to_file(*events)

        self._events.extend(events)
        self._event_ids.update(batch_ids)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return events, optionally filtered by kind."""
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None

    def _append_to_file(self, *events: EventRecord) -> None:
        """Append events to the JSONL file in a single write."""
        lines = []
        for event in events:
            record = {
                "event_id": event.event_id,
                "event_kind": event.event_kind.value,
                "timestamp_utc": event.timestamp_utc,
                "actor_id": event.actor_id,
                "payload": event.payload,
                "event_hash": event.event_hash,
            }
            lines.append(json.dumps(record, sort_keys=True, ensure_ascii=False) + "\n")
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write("".join(lines))

    def _load_from_file(self, path: Path) -> None:
        """Load events from a JSONL file with integrity verification.

        Fail-closed: rejects tampered records (hash mismatch) and
        duplicate event IDs.
        """
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                data = json.loads(line)
                event_id = data["event_id"]

                if event_id in self._event_ids:
                    raise ValueError(
                        f"Duplicate event ID on recovery (line {line_num}): {event_id}"
                    )

                expected_hash = _canonical_hash(
                    data["event_id"],
                    data["event_kind"],
                    data["timestamp_utc"],
                    data["actor_id"],
                    data["payload"],
                )
                if data["event_hash"] != expected_hash:
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): event {event_id} "
                        f"stored hash {data['event_hash']} != computed {expected_hash}"
                    )

                event = EventRecord(
                    event_id=event_id,
                    event_kind=EventKind(data["event_kind"]),
                    timestamp_utc=data["timestamp_utc"],
                    actor_id=data["actor_id"],
                    payload=data["payload"],
                    event_hash=data["event_hash"],
                )
                self._events.append(event)
                self._event_ids.add(event.event_id)
