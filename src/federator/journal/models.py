"""
Cycle journal entry models.

Every entry includes:
- Sequential ordering
- Hash chaining for integrity
- Timestamp (ISO 8601)
- Type classification
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from federator.utils.json import stable_json_hash


class JournalEntryType(str, Enum):
    # Cycle lifecycle
    CYCLE_STARTED = "cycle.started"
    CYCLE_COMPLETED = "cycle.completed"
    CYCLE_FAILED = "cycle.failed"

    # Broadcasts (started is written BEFORE the send)
    BROADCAST_STARTED = "broadcast.started"
    BROADCAST_COMPLETED = "broadcast.completed"
    BROADCAST_FAILED = "broadcast.failed"

    # Decisions
    TRANSFER_SKIPPED = "transfer.skipped"

    # Progress
    CHECKPOINT_SAVED = "checkpoint.saved"


class BroadcastKind(str, Enum):
    SUBMIT_PROPOSAL = "submit_proposal"
    CONFIRM = "confirm"


@dataclass
class JournalEntry:
    seq: int
    timestamp_iso: str
    entry_type: JournalEntryType
    payload: Dict[str, Any]
    prev_hash: Optional[str] = None
    entry_hash: Optional[str] = None

    def _hash_input(self) -> Dict[str, Any]:
        return {
            "seq": self.seq,
            "timestamp_iso": self.timestamp_iso,
            "entry_type": self.entry_type.value,
            "payload": self.payload,
            "prev_hash": self.prev_hash,
        }

    def compute_hash(self) -> str:
        return stable_json_hash(self._hash_input())

    def to_dict(self) -> Dict[str, Any]:
        data = self._hash_input()
        data["entry_hash"] = self.entry_hash
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> JournalEntry:
        return cls(
            seq=data["seq"],
            timestamp_iso=data["timestamp_iso"],
            entry_type=JournalEntryType(data["entry_type"]),
            payload=data.get("payload", {}),
            prev_hash=data.get("prev_hash"),
            entry_hash=data.get("entry_hash"),
        )
