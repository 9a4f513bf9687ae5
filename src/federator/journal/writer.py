"""
Cycle Journal - append-only, hash-chained record of what the federator did.

The journal is NOT a source of truth for relay progress (checkpoints and
the destination ledger are). It exists so an operator can tell, after a
crash, which broadcasts were attempted:

    broadcast.started   written + fsynced BEFORE the transaction is sent
    broadcast.completed written after the sender returns a receipt
    broadcast.failed    written when the sender raises

A broadcast.started without either follow-up is IN DOUBT: the transaction
may or may not have reached the ledger. Re-running the cycle is still safe
(the idempotency guard and confirmation check decide), but the operator
gets a precise list of what to look up.

Rules:
- One JSON object per line
- Hash chaining detects tampering and truncation mid-chain
- Reopening resumes seq and chain from the existing file
"""

from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from federator.utils.timestamps import now_iso

from .models import BroadcastKind, JournalEntry, JournalEntryType

logger = logging.getLogger(__name__)


class CycleJournal:
    def __init__(self, journal_dir: str, *, sync: bool = True) -> None:
        self._dir = Path(journal_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._path = self._dir / "federator.journal"
        self._lock = threading.Lock()
        self._seq = 0
        self._last_hash: Optional[str] = None
        self._sync = sync

        self._resume_from_existing()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def entry_count(self) -> int:
        return self._seq

    def _resume_from_existing(self) -> None:
        for entry in self.read_all():
            self._seq = entry.seq
            self._last_hash = entry.entry_hash

    def append(self, entry_type: JournalEntryType, payload: Dict[str, Any]) -> JournalEntry:
        with self._lock:
            entry = JournalEntry(
                seq=self._seq + 1,
                timestamp_iso=now_iso(),
                entry_type=entry_type,
                payload=payload,
                prev_hash=self._last_hash,
            )
            entry.entry_hash = entry.compute_hash()

            line = json.dumps(entry.to_dict(), ensure_ascii=False, sort_keys=True) + "\n"
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(line)
                f.flush()
                if self._sync:
                    os.fsync(f.fileno())

            # Advance the chain only after the write succeeded
            self._seq = entry.seq
            self._last_hash = entry.entry_hash
            return entry

    # ------------------------------------------------------------------
    # Typed helpers
    # ------------------------------------------------------------------
    def cycle_started(self, cycle_id: str) -> JournalEntry:
        return self.append(JournalEntryType.CYCLE_STARTED, {"cycle_id": cycle_id})

    def cycle_completed(self, cycle_id: str, report: Dict[str, Any]) -> JournalEntry:
        return self.append(JournalEntryType.CYCLE_COMPLETED, {"cycle_id": cycle_id, "report": report})

    def cycle_failed(self, cycle_id: str, state: str, reason: str) -> JournalEntry:
        return self.append(
            JournalEntryType.CYCLE_FAILED,
            {"cycle_id": cycle_id, "state": state, "reason": reason},
        )

    def broadcast_started(self, kind: BroadcastKind, details: Dict[str, Any]) -> str:
        broadcast_id = str(uuid.uuid4())
        self.append(
            JournalEntryType.BROADCAST_STARTED,
            {"broadcast_id": broadcast_id, "kind": kind.value, **details},
        )
        return broadcast_id

    def broadcast_completed(self, broadcast_id: str, tx_hash: str) -> JournalEntry:
        return self.append(
            JournalEntryType.BROADCAST_COMPLETED,
            {"broadcast_id": broadcast_id, "tx_hash": tx_hash},
        )

    def broadcast_failed(self, broadcast_id: str, reason: str) -> JournalEntry:
        return self.append(
            JournalEntryType.BROADCAST_FAILED,
            {"broadcast_id": broadcast_id, "reason": reason},
        )

    def transfer_skipped(self, tx_hash: str, log_index: int, reason: str) -> JournalEntry:
        return self.append(
            JournalEntryType.TRANSFER_SKIPPED,
            {"tx_hash": tx_hash, "log_index": log_index, "reason": reason},
        )

    def checkpoint_saved(self, name: str, value: int) -> JournalEntry:
        return self.append(JournalEntryType.CHECKPOINT_SAVED, {"name": name, "value": value})

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------
    def read_all(self) -> List[JournalEntry]:
        entries: List[JournalEntry] = []
        if not self._path.exists():
            return entries
        with open(self._path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(JournalEntry.from_dict(json.loads(line)))
                except (ValueError, KeyError):
                    logger.warning(f"Stopping at corrupted journal line after seq={len(entries)}")
                    break
        return entries

    def verify_integrity(self) -> Tuple[bool, Optional[str]]:
        """
        Verify hash chain integrity.

        Returns (True, None) if valid, (False, reason) if corrupt.
        """
        prev_hash = None
        for entry in self.read_all():
            if entry.prev_hash != prev_hash:
                return False, f"Hash chain broken at seq={entry.seq}"
            if entry.entry_hash != entry.compute_hash():
                return False, f"Entry hash mismatch at seq={entry.seq}"
            prev_hash = entry.entry_hash
        return True, None

    def in_doubt(self) -> List[Dict[str, Any]]:
        """Broadcasts that were started but never completed or failed."""
        open_broadcasts: Dict[str, Dict[str, Any]] = {}
        for entry in self.read_all():
            broadcast_id = entry.payload.get("broadcast_id")
            if entry.entry_type == JournalEntryType.BROADCAST_STARTED:
                open_broadcasts[broadcast_id] = dict(entry.payload, started_at=entry.timestamp_iso)
            elif entry.entry_type in (
                JournalEntryType.BROADCAST_COMPLETED,
                JournalEntryType.BROADCAST_FAILED,
            ):
                open_broadcasts.pop(broadcast_id, None)
        return list(open_broadcasts.values())
