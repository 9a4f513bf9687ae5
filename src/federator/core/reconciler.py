"""
Multisig reconciler: adds this federator's confirmation to every pending
proposal it has not confirmed yet.

ALGORITHM:
    T = lastTxCount checkpoint (default 0)
    N = multisig.transactionCount()
    for id in multisig.getTransactionIds(T, N, pending=True, executed=False):
        if not multisig.confirmations(id, me):
            send confirmTransaction(id)
    save lastTxCount = N        (only after the whole range succeeded)

Sibling federators submit and confirm the same transfers in parallel.
Confirmations commute, so the only thing this agent must guarantee is
that it never confirms the same id twice; the on-ledger check does that,
including for proposals this agent did not create.
"""

from __future__ import annotations

import logging
from typing import Optional

from federator.checkpoint.store import CheckpointStore
from federator.journal.models import BroadcastKind
from federator.journal.writer import CycleJournal
from federator.ledger.base import DestinationLedger, TransactionSender
from federator.protocol.enums import CheckpointName
from federator.protocol.errors import FederatorError
from federator.protocol.models import AgentIdentity, ReconcileResult

logger = logging.getLogger(__name__)


class MultisigReconciler:
    def __init__(
        self,
        destination: DestinationLedger,
        sender: TransactionSender,
        checkpoints: CheckpointStore,
        *,
        identity: AgentIdentity,
        private_key: str,
        journal: Optional[CycleJournal] = None,
    ) -> None:
        self._destination = destination
        self._sender = sender
        self._checkpoints = checkpoints
        self._identity = identity
        self._private_key = private_key
        self._journal = journal

    def reconcile(self) -> ReconcileResult:
        from_count = self._checkpoints.load_or_default(CheckpointName.LAST_TX_COUNT, 0)
        current_count = self._destination.transaction_count()

        if current_count < from_count:
            logger.warning(
                f"Multisig transaction count {current_count} is below checkpoint {from_count}; "
                f"rescanning from 0"
            )
            from_count = 0

        result = ReconcileResult(from_count=from_count, to_count=current_count)
        if current_count == from_count:
            logger.debug(f"No new multisig transactions (count={current_count})")
            return result

        logger.info(f"Checking pending transactions from {from_count} to {current_count}")
        pending = self._destination.get_transaction_ids(from_count, current_count, True, False)
        result.pending_ids = list(pending)

        for transaction_id in result.pending_ids:
            if self._destination.confirmations(transaction_id, self._identity.address):
                result.already_confirmed_ids.append(transaction_id)
                continue
            self._confirm(transaction_id)
            result.confirmed_ids.append(transaction_id)

        # Whole range processed without error
        self._checkpoints.save(CheckpointName.LAST_TX_COUNT, current_count)
        result.checkpoint_saved = True
        if self._journal is not None:
            self._journal.checkpoint_saved(CheckpointName.LAST_TX_COUNT.value, current_count)
        return result

    def _confirm(self, transaction_id: int) -> None:
        logger.info(f"Confirm MultiSig Tx {transaction_id}")
        tx_data = self._destination.encode_confirm(transaction_id)
        multisig = self._destination.multisig_address

        broadcast_id = None
        if self._journal is not None:
            broadcast_id = self._journal.broadcast_started(
                BroadcastKind.CONFIRM,
                {"to": multisig, "transaction_id": transaction_id},
            )

        try:
            receipt = self._sender.send(multisig, tx_data, 0, self._private_key)
        except FederatorError as e:
            if broadcast_id is not None:
                self._journal.broadcast_failed(broadcast_id, str(e))
            raise

        if broadcast_id is not None:
            self._journal.broadcast_completed(broadcast_id, receipt.tx_hash)
