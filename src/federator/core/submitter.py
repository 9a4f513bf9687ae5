from __future__ import annotations

import logging
from typing import Optional

from federator.journal.models import BroadcastKind
from federator.journal.writer import CycleJournal
from federator.ledger.base import DestinationLedger, SourceLedger, TransactionSender
from federator.protocol.errors import FederatorError
from federator.protocol.models import Receipt, ResolvedTransfer, TransferEvent

logger = logging.getLogger(__name__)


class TransferSubmitter:
    """
    Votes a source transfer onto the destination chain.

    Steps:
    1. resolve the receiver through the source bridge's address mapping
    2. encode destination bridge acceptTransfer(token, receiver, amount,
       symbol, block number, block hash, tx hash, log index)
    3. wrap it as multisig submitTransaction(bridge, 0, data)
    4. sign + broadcast through the TransactionSender

    Errors are not handled here: a failed broadcast must abort the cycle
    before any checkpoint moves.
    """

    def __init__(
        self,
        source: SourceLedger,
        destination: DestinationLedger,
        sender: TransactionSender,
        *,
        private_key: str,
        destination_token: str,
        journal: Optional[CycleJournal] = None,
    ) -> None:
        self._source = source
        self._destination = destination
        self._sender = sender
        self._private_key = private_key
        self._destination_token = destination_token
        self._journal = journal

    def resolve(self, event: TransferEvent) -> ResolvedTransfer:
        receiver = self._source.get_mapped_address(event.original_receiver)
        return ResolvedTransfer(event=event, mapped_receiver=receiver)

    def build_proposal(self, transfer: ResolvedTransfer) -> bytes:
        event = transfer.event
        accept_data = self._destination.encode_accept_transfer(
            self._destination_token,
            transfer.mapped_receiver,
            event.amount,
            event.symbol,
            event.block_number,
            event.block_hash,
            event.tx_hash,
            event.log_index,
        )
        return self._destination.encode_submit_proposal(self._destination.bridge_address, 0, accept_data)

    def submit(self, transfer: ResolvedTransfer) -> Receipt:
        event = transfer.event
        logger.info(
            f"Transferring {event.amount} {event.symbol} to sidechain bridge "
            f"{self._destination.bridge_address} for {transfer.mapped_receiver}"
        )

        tx_data = self.build_proposal(transfer)
        multisig = self._destination.multisig_address

        broadcast_id = None
        if self._journal is not None:
            broadcast_id = self._journal.broadcast_started(
                BroadcastKind.SUBMIT_PROPOSAL,
                {
                    "to": multisig,
                    "source_tx_hash": event.tx_hash,
                    "log_index": event.log_index,
                    "block_number": event.block_number,
                    "receiver": transfer.mapped_receiver,
                    "amount": str(event.amount),
                },
            )

        try:
            receipt = self._sender.send(multisig, tx_data, 0, self._private_key)
        except FederatorError as e:
            if broadcast_id is not None:
                self._journal.broadcast_failed(broadcast_id, str(e))
            raise

        if broadcast_id is not None:
            self._journal.broadcast_completed(broadcast_id, receipt.tx_hash)

        logger.info(f"Transaction {event.tx_hash} submitted to multisig ({receipt.tx_hash})")
        return receipt
