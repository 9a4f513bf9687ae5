"""
Shared fixtures: three federator keys, in-process ledgers and a builder
that wires a Federator against them.
"""

import shutil
import tempfile
from typing import Optional

import pytest

from federator.checkpoint.store import CheckpointStore, InMemoryCheckpointStore
from federator.core.runtime import build_federator
from federator.core.settings import FederatorSettings
from federator.journal.writer import CycleJournal
from federator.ledger.inprocess import (
    InProcessDestinationLedger,
    InProcessSourceLedger,
    InProcessTransactionSender,
)
from federator.protocol.models import TransferEvent
from federator.security.identity import derive_identity

KEY_A = "11" * 32
KEY_B = "22" * 32
KEY_C = "33" * 32

SOURCE_TOKEN = "0x" + "aa" * 20
DEST_TOKEN = "0x" + "bb" * 20
SOURCE_BRIDGE = "0x" + "cc" * 20


def make_event(
    block: int,
    log_index: int = 0,
    *,
    amount: int = 5,
    symbol: str = "X",
    receiver: str = "0xreceiver",
    token: str = SOURCE_TOKEN,
) -> TransferEvent:
    return TransferEvent(
        block_number=block,
        block_hash=f"0xblock{block}",
        tx_hash=f"0xtx{block}_{log_index}",
        log_index=log_index,
        original_receiver=receiver,
        amount=amount,
        symbol=symbol,
        token_address=token,
    )


@pytest.fixture
def tmp_dir():
    d = tempfile.mkdtemp(prefix="federator_test_")
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def address_a():
    return derive_identity(KEY_A).address


@pytest.fixture
def address_b():
    return derive_identity(KEY_B).address


@pytest.fixture
def address_c():
    return derive_identity(KEY_C).address


@pytest.fixture
def source():
    return InProcessSourceLedger(head=100)


@pytest.fixture
def destination(address_a, address_b, address_c):
    return InProcessDestinationLedger([address_a, address_b, address_c], required=2)


@pytest.fixture
def sender(destination):
    return InProcessTransactionSender(destination)


@pytest.fixture
def checkpoints():
    return InMemoryCheckpointStore()


def make_settings(storage_path: str, key: str = KEY_A, **overrides) -> FederatorSettings:
    values = dict(
        private_key=key,
        confirmations=10,
        from_block=0,
        storage_path=storage_path,
        journal_sync=False,
        mainchain={"host": "http://main", "bridge": SOURCE_BRIDGE, "token": SOURCE_TOKEN},
        sidechain={
            "host": "http://side",
            "bridge": "0xbridge",
            "multisig": "0xmultisig",
            "token": DEST_TOKEN,
        },
    )
    values.update(overrides)
    return FederatorSettings(**values)


@pytest.fixture
def settings(tmp_dir):
    return make_settings(tmp_dir)


@pytest.fixture
def make_federator(tmp_dir, source, destination, sender):
    """Build a federator for `key` sharing the fixture ledgers."""

    def _make(
        key: str = KEY_A,
        checkpoints: Optional[CheckpointStore] = None,
        journal: Optional[CycleJournal] = None,
        **overrides,
    ):
        settings = make_settings(tmp_dir, key=key, journal_enabled=journal is not None, **overrides)
        return build_federator(
            settings,
            source=source,
            destination=destination,
            sender=sender,
            checkpoints=checkpoints if checkpoints is not None else InMemoryCheckpointStore(),
            journal=journal,
        )

    return _make


def submit_proposal(destination, sender, key: str, block: int, receiver: str = "0xreceiver") -> int:
    """Have `key` submit an acceptTransfer proposal directly; returns its id."""
    accept = destination.encode_accept_transfer(
        DEST_TOKEN, receiver, 5, "X", block, f"0xblock{block}", f"0xtx{block}_0", 0
    )
    data = destination.encode_submit_proposal(destination.bridge_address, 0, accept)
    sender.send(destination.multisig_address, data, 0, key)
    return destination.transaction_count() - 1
