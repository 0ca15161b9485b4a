"""Append-only event log: the audit trail of every campaign mutation.

Each successful operation produces one immutable event record. Failed
operations produce none. The log serves as:
1. The audit trail of who changed what, at which block height.
2. The source for rebuilding a campaign by replay.

Records can be persisted to a JSONL file (one JSON object per line).
Loading re-verifies every hash and rejects duplicate ids: a tampered
or replayed log fails closed.
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
    """Classification of campaign events."""
    CAMPAIGN_INITIALIZED = "campaign_initialized"
    CONTRIBUTION_RECORDED = "contribution_recorded"
    PROPOSAL_COMMITTED = "proposal_committed"
    PROPOSAL_REVEALED = "proposal_revealed"
    VOTE_CAST = "vote_cast"
    ESCROW_UPDATED = "escrow_updated"
    DISTRIBUTOR_UPDATED = "distributor_updated"


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
    """A single immutable campaign event.

    ``payload["height"]`` is the block height the operation ran at.
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
                event_id, event_kind.value, ts_str, actor_id, payload
            ),
        )

    @property
    def height(self) -> int:
        return self.payload["height"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_kind": self.event_kind.value,
            "timestamp_utc": self.timestamp_utc,
            "actor_id": self.actor_id,
            "payload": self.payload,
            "event_hash": self.event_hash,
        }


class EventLog:
    """Append-only event log with optional JSONL persistence.

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

        Raises ValueError on a duplicate event_id (replay protection).
        The file write happens before the in-memory append so a failed
        write leaves the log unchanged.
        """
        if event.event_id in self._event_ids:
            raise ValueError(f"Duplicate event ID: {event.event_id}")

        if self._storage_path:
            self._append_to_file(event)

        self._events.append(event)
        self._event_ids.add(event.event_id)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return events, optionally filtered by kind."""
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    def events_since_height(
        self,
        height: int,
        kind: Optional[EventKind] = None,
    ) -> list[EventRecord]:
        """Return events recorded at or after a block height."""
        return [e for e in self.events(kind) if e.height >= height]

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None

    @property
    def last_height(self) -> Optional[int]:
        """Height of the most recent event, or None for an empty log."""
        return self._events[-1].height if self._events else None

    def _append_to_file(self, event: EventRecord) -> None:
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event.to_dict(), sort_keys=True, ensure_ascii=False) + "\n")

    def _load_from_file(self, path: Path) -> None:
        """Load events from a JSONL file with integrity verification."""
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                data = json.loads(line)

                try:
                    event_id = data["event_id"]
                    event_kind = data["event_kind"]
                    timestamp_utc = data["timestamp_utc"]
                    actor_id = data["actor_id"]
                    payload = data["payload"]
                    stored_hash = data["event_hash"]
                    height = payload["height"]
                except (KeyError, TypeError) as e:
                    raise ValueError(
                        f"Malformed event (line {line_num}): missing or invalid field {e}"
                    ) from e
                if isinstance(height, bool) or not isinstance(height, int):
                    raise ValueError(
                        f"Malformed event (line {line_num}): height must be an int"
                    )

                if event_id in self._event_ids:
                    raise ValueError(
                        f"Duplicate event ID on recovery (line {line_num}): {event_id}"
                    )

                expected_hash = _canonical_hash(
                    event_id, event_kind, timestamp_utc, actor_id, payload
                )
                if stored_hash != expected_hash:
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): event {event_id} "
                        f"stored hash {stored_hash} != computed {expected_hash}"
                    )

                event = EventRecord(
                    event_id=event_id,
                    event_kind=EventKind(event_kind),
                    timestamp_utc=timestamp_utc,
                    actor_id=actor_id,
                    payload=payload,
                    event_hash=stored_hash,
                )
                self._events.append(event)
                self._event_ids.add(event.event_id)
