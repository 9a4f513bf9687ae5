"""
In-process ledger simulation.

Models just enough of the two chains to run full relay cycles without a
network:

- InProcessSourceLedger: a head height, a list of "Cross" events and the
  bridge's receiver address mapping.
- InProcessDestinationLedger: the destination bridge (authoritative
  duplicate set) behind a Gnosis-style multisig wallet:
    * only owners may submit or confirm
    * submitTransaction auto-confirms the submitter
    * confirming twice reverts
    * the wrapped call executes once `required` confirmations exist
    * an acceptTransfer for an already-processed identity fails and
      leaves the proposal unexecuted
- InProcessTransactionSender: per-sender nonces, broadcast = apply the
  call to the destination ledger.

Call data is canonical JSON; it is opaque to the relay core.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from federator.protocol.errors import LedgerError, SendError
from federator.protocol.models import (
    MultisigProposal,
    Receipt,
    TransferEvent,
    TransferIdentity,
)
from federator.security.identity import derive_identity
from federator.utils.json import canonical_json

from .base import DestinationLedger, SourceLedger, TransactionSender

logger = logging.getLogger(__name__)


def _encode_call(method: str, args: Dict[str, Any]) -> bytes:
    return canonical_json({"method": method, "args": args})


def decode_call(data: bytes) -> Dict[str, Any]:
    try:
        call = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise LedgerError(f"Undecodable call data: {e}") from e
    if not isinstance(call, dict) or "method" not in call or "args" not in call:
        raise LedgerError("Call data must carry 'method' and 'args'")
    return call


class InProcessSourceLedger(SourceLedger):
    def __init__(
        self,
        head: int = 0,
        events: Optional[Iterable[TransferEvent]] = None,
        address_map: Optional[Dict[str, str]] = None,
    ) -> None:
        self.head = head
        self._events: List[TransferEvent] = list(events or [])
        self._address_map: Dict[str, str] = dict(address_map or {})

    def add_event(self, event: TransferEvent) -> None:
        self._events.append(event)

    def map_address(self, original: str, mapped: str) -> None:
        self._address_map[original] = mapped

    def get_head_height(self) -> int:
        return self.head

    def get_events(self, from_block: int, to_block: int, token_address: str) -> List[TransferEvent]:
        token = token_address.lower()
        matching = [
            ev
            for ev in self._events
            if from_block <= ev.block_number <= to_block and ev.token_address.lower() == token
        ]
        matching.sort(key=lambda ev: ev.sort_key)
        return matching

    def get_mapped_address(self, address: str) -> str:
        # Unmapped receivers keep their own address on the destination chain
        return self._address_map.get(address, address)


class InProcessDestinationLedger(DestinationLedger):
    def __init__(
        self,
        owners: Iterable[str],
        required: int = 1,
        *,
        bridge_address: str = "0x00000000000000000000000000000000000b1d9e",
        multisig_address: str = "0x000000000000000000000000000000000000515e",
    ) -> None:
        self.owners: Set[str] = {o.lower() for o in owners}
        if required < 1 or required > max(len(self.owners), 1):
            raise ValueError(f"required must be in [1, {len(self.owners)}], got {required}")
        self.required = required
        self._bridge_address = bridge_address
        self._multisig_address = multisig_address

        self.proposals: List[MultisigProposal] = []
        self.processed: Set[TransferIdentity] = set()
        self.accepted_transfers: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Bridge
    # ------------------------------------------------------------------
    @property
    def bridge_address(self) -> str:
        return self._bridge_address

    def was_processed(self, identity: TransferIdentity) -> bool:
        with self._lock:
            return tuple(identity) in self.processed

    # ------------------------------------------------------------------
    # Multisig reads
    # ------------------------------------------------------------------
    @property
    def multisig_address(self) -> str:
        return self._multisig_address

    def transaction_count(self) -> int:
        with self._lock:
            return len(self.proposals)

    def get_transaction_ids(
        self, from_id: int, to_id: int, pending: bool, executed: bool
    ) -> Sequence[int]:
        with self._lock:
            upper = min(to_id, len(self.proposals))
            return [
                p.id
                for p in self.proposals[max(from_id, 0):upper]
                if (pending and not p.executed) or (executed and p.executed)
            ]

    def confirmations(self, transaction_id: int, address: str) -> bool:
        with self._lock:
            proposal = self._get(transaction_id)
            return address.lower() in proposal.confirmed_by

    def confirmation_count(self, transaction_id: int) -> int:
        with self._lock:
            return len(self._get(transaction_id).confirmed_by)

    # ------------------------------------------------------------------
    # Call encoding
    # ------------------------------------------------------------------
    def encode_confirm(self, transaction_id: int) -> bytes:
        return _encode_call("confirmTransaction", {"transactionId": transaction_id})

    def encode_accept_transfer(
        self,
        token_address: str,
        receiver: str,
        amount: int,
        symbol: str,
        block_number: int,
        block_hash: str,
        tx_hash: str,
        log_index: int,
    ) -> bytes:
        return _encode_call(
            "acceptTransfer",
            {
                "tokenAddress": token_address,
                "receiver": receiver,
                "amount": amount,
                "symbol": symbol,
                "blockNumber": block_number,
                "blockHash": block_hash,
                "transactionHash": tx_hash,
                "logIndex": log_index,
            },
        )

    def encode_submit_proposal(self, destination: str, value: int, data: bytes) -> bytes:
        return _encode_call(
            "submitTransaction",
            {"destination": destination, "value": value, "data": data.hex()},
        )

    # ------------------------------------------------------------------
    # Execution (what a mined transaction does)
    # ------------------------------------------------------------------
    def execute_call(self, sender: str, to: str, data: bytes, value: int) -> None:
        if to.lower() != self._multisig_address.lower():
            raise LedgerError(f"Unknown contract {to}")
        if value != 0:
            raise LedgerError("Multisig calls must carry zero value")

        sender = sender.lower()
        call = decode_call(data)

        with self._lock:
            if sender not in self.owners:
                raise LedgerError(f"{sender} is not a multisig owner")

            method, args = call["method"], call["args"]
            if method == "submitTransaction":
                proposal = MultisigProposal(
                    id=len(self.proposals),
                    destination=args["destination"],
                    value=int(args["value"]),
                    data=bytes.fromhex(args["data"]),
                )
                self.proposals.append(proposal)
                logger.debug(f"Multisig proposal {proposal.id} submitted by {sender}")
                self._confirm(proposal, sender)
            elif method == "confirmTransaction":
                self._confirm(self._get(int(args["transactionId"])), sender)
            else:
                raise LedgerError(f"Unsupported multisig method {method!r}")

    def _get(self, transaction_id: int) -> MultisigProposal:
        if transaction_id < 0 or transaction_id >= len(self.proposals):
            raise LedgerError(f"Unknown multisig transaction {transaction_id}")
        return self.proposals[transaction_id]

    def _confirm(self, proposal: MultisigProposal, sender: str) -> None:
        if sender in proposal.confirmed_by:
            raise LedgerError(f"Transaction {proposal.id} already confirmed by {sender}")
        proposal.confirmed_by.add(sender)
        if not proposal.executed and len(proposal.confirmed_by) >= self.required:
            self._execute(proposal)

    def _execute(self, proposal: MultisigProposal) -> None:
        if proposal.destination.lower() != self._bridge_address.lower():
            logger.warning(f"Proposal {proposal.id} targets unknown contract {proposal.destination}")
            return

        call = decode_call(proposal.data)
        if call["method"] != "acceptTransfer":
            logger.warning(f"Proposal {proposal.id} calls unsupported bridge method {call['method']}")
            return

        args = call["args"]
        identity: TransferIdentity = (
            int(args["blockNumber"]),
            args["blockHash"],
            args["transactionHash"],
            args["receiver"],
            int(args["amount"]),
            int(args["logIndex"]),
        )
        if identity in self.processed:
            # Bridge reverts; the multisig records an execution failure
            logger.info(f"Proposal {proposal.id} rejected by bridge: transfer already processed")
            return

        self.processed.add(identity)
        self.accepted_transfers.append(dict(args))
        proposal.executed = True
        logger.info(f"Proposal {proposal.id} executed: {args['amount']} {args['symbol']} to {args['receiver']}")


class InProcessTransactionSender(TransactionSender):
    def __init__(self, ledger: InProcessDestinationLedger) -> None:
        self._ledger = ledger
        self._nonces: Dict[str, int] = {}
        self._lock = threading.Lock()
        self.receipts: List[Receipt] = []

    def get_address(self, private_key: str) -> str:
        return derive_identity(private_key).address

    def send(self, to: str, data: bytes, value: int, private_key: str) -> Receipt:
        sender = self.get_address(private_key)

        with self._lock:
            nonce = self._nonces.get(sender, 0)
            try:
                self._ledger.execute_call(sender, to, data, value)
            except LedgerError as e:
                raise SendError(f"Transaction from {sender} to {to} reverted: {e}") from e

            self._nonces[sender] = nonce + 1
            tx_hash = "0x" + hashlib.sha256(f"{sender}:{nonce}:{data.hex()}".encode("utf-8")).hexdigest()
            receipt = Receipt(tx_hash=tx_hash, sender=sender, to=to, status=True)
            self.receipts.append(receipt)
            return receipt
