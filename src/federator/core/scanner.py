"""
Event scanner: decides which source blocks are final and fetches their
"Cross" events.

RANGE RULES:
    to_block   = head - confirmations
    from_block = lastBlock + 1          (checkpoint present)
               = configured start block (no checkpoint)

    to_block <= 0          -> EMPTY (chain not advanced enough)
    from_block > to_block  -> EMPTY (nothing new since last cycle)
    otherwise              -> EVENTS over [from_block, to_block], inclusive

Any ledger failure is returned as ERROR, never raised, so the caller can
tell "nothing to do" apart from "could not look".
"""

from __future__ import annotations

import logging

from federator.checkpoint.store import CheckpointStore
from federator.ledger.base import SourceLedger
from federator.protocol.enums import CheckpointName
from federator.protocol.errors import FederatorError
from federator.protocol.models import BlockRange, ScanResult

logger = logging.getLogger(__name__)


class EventScanner:
    def __init__(
        self,
        source: SourceLedger,
        checkpoints: CheckpointStore,
        *,
        token_address: str,
        confirmations: int = 0,
        start_block: int = 0,
    ) -> None:
        if confirmations < 0:
            raise ValueError("confirmations must be >= 0")
        if start_block < 0:
            raise ValueError("start_block must be >= 0")
        self._source = source
        self._checkpoints = checkpoints
        self._token = token_address
        self._confirmations = confirmations
        self._start_block = start_block

    def next_from_block(self) -> int:
        last = self._checkpoints.load(CheckpointName.LAST_BLOCK)
        return self._start_block if last is None else last + 1

    def scan(self) -> ScanResult:
        try:
            head = self._source.get_head_height()
        except FederatorError as e:
            logger.error(f"Cannot read source head height: {e}")
            return ScanResult.failed(f"head height unavailable: {e}", e)

        to_block = head - self._confirmations
        logger.info(f"Running to block {to_block} (head={head}, confirmations={self._confirmations})")
        if to_block <= 0:
            return ScanResult.empty(f"head {head} within confirmation depth {self._confirmations}")

        try:
            from_block = self.next_from_block()
        except FederatorError as e:
            return ScanResult.failed(f"checkpoint unreadable: {e}", e)

        logger.debug(f"Running from block {from_block}")
        if from_block > to_block:
            return ScanResult.empty(f"no new final blocks (next={from_block}, final={to_block})")

        try:
            events = self._source.get_events(from_block, to_block, self._token)
        except FederatorError as e:
            logger.error(f"Cannot fetch Cross events [{from_block}, {to_block}]: {e}")
            return ScanResult.failed(f"event fetch failed: {e}", e)

        events = sorted(events, key=lambda ev: ev.sort_key)
        logger.info(f"Found {len(events)} logs in blocks [{from_block}, {to_block}]")
        return ScanResult.ok(BlockRange(from_block, to_block), events)
