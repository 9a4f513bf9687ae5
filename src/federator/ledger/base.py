from __future__ import annotations

"""
Ledger capability interfaces.

The relay core only ever talks to ledgers through these three boundaries:

    SourceLedger       - read head height, "Cross" events, address mapping
    DestinationLedger  - duplicate check, multisig reads, call encoding
    TransactionSender  - derive address, sign + broadcast

Adapters DO NOT:
  - decide what to submit
  - retry on failure
  - touch checkpoints

Adapters ONLY:
  - translate a call into the ledger's wire format
  - raise LedgerError / SendError when the ledger cannot answer
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from federator.protocol.models import Receipt, TransferEvent, TransferIdentity


class SourceLedger(ABC):
    """Read-only view of the chain where transfers originate."""

    @abstractmethod
    def get_head_height(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_events(self, from_block: int, to_block: int, token_address: str) -> List[TransferEvent]:
        """
        Return "Cross" events in [from_block, to_block] (inclusive) emitted
        for `token_address`, in (block, log index) order.
        """
        raise NotImplementedError

    @abstractmethod
    def get_mapped_address(self, address: str) -> str:
        raise NotImplementedError


class DestinationLedger(ABC):
    """
    Destination bridge and its multisig wallet.

    Encoding helpers return opaque call data; only the ledger that produced
    it needs to understand it.
    """

    # ------------------------------------------------------------------
    # Bridge
    # ------------------------------------------------------------------
    @abstractmethod
    def was_processed(self, identity: TransferIdentity) -> bool:
        raise NotImplementedError

    @property
    @abstractmethod
    def bridge_address(self) -> str:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Multisig reads
    # ------------------------------------------------------------------
    @property
    @abstractmethod
    def multisig_address(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def transaction_count(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_transaction_ids(
        self, from_id: int, to_id: int, pending: bool, executed: bool
    ) -> Sequence[int]:
        """Ids in [from_id, to_id) matching the pending/executed filters."""
        raise NotImplementedError

    @abstractmethod
    def confirmations(self, transaction_id: int, address: str) -> bool:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Call encoding
    # ------------------------------------------------------------------
    @abstractmethod
    def encode_confirm(self, transaction_id: int) -> bytes:
        raise NotImplementedError

    @abstractmethod
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
        raise NotImplementedError

    @abstractmethod
    def encode_submit_proposal(self, destination: str, value: int, data: bytes) -> bytes:
        raise NotImplementedError


class TransactionSender(ABC):
    """
    Owns nonce management, signing and broadcast.

    Every failure surfaces as SendError.
    """

    @abstractmethod
    def get_address(self, private_key: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def send(self, to: str, data: bytes, value: int, private_key: str) -> Receipt:
        raise NotImplementedError
