from __future__ import annotations

import logging

from federator.ledger.base import DestinationLedger
from federator.protocol.models import ResolvedTransfer

logger = logging.getLogger(__name__)


class IdempotencyGuard:
    """
    Asks the destination bridge whether a transfer was already applied.

    The destination ledger is the only authority on duplicates. The answer
    is never cached: it must be fetched right before each submission so
    restarts, retried cycles and sibling federators all see current state.
    """

    def __init__(self, destination: DestinationLedger) -> None:
        self._destination = destination

    def was_processed(self, transfer: ResolvedTransfer) -> bool:
        processed = self._destination.was_processed(transfer.identity)
        logger.debug(f"Transfer {transfer.event.tx_hash}#{transfer.event.log_index} processed={processed}")
        return processed
