from __future__ import annotations

import logging
from typing import Optional

from federator.checkpoint.store import CheckpointStore, FileCheckpointStore
from federator.journal.writer import CycleJournal
from federator.ledger.base import DestinationLedger, SourceLedger, TransactionSender
from federator.ledger.http import (
    HTTPDestinationLedger,
    HTTPSourceLedger,
    HTTPTransactionSender,
    JSONRPCClient,
)
from federator.protocol.errors import ConfigurationError
from federator.protocol.models import AgentIdentity
from federator.security.identity import derive_identity

from .guard import IdempotencyGuard
from .orchestrator import Federator
from .reconciler import MultisigReconciler
from .scanner import EventScanner
from .settings import FederatorSettings
from .submitter import TransferSubmitter

logger = logging.getLogger(__name__)


def build_federator(
    settings: FederatorSettings,
    *,
    source: Optional[SourceLedger] = None,
    destination: Optional[DestinationLedger] = None,
    sender: Optional[TransactionSender] = None,
    checkpoints: Optional[CheckpointStore] = None,
    journal: Optional[CycleJournal] = None,
) -> Federator:
    """
    Wire a Federator from settings.

    Any collaborator not passed in is built from settings: HTTP JSON-RPC
    adapters for the ledgers, a file checkpoint store under
    `storage_path` and, if enabled, a cycle journal next to it. Nothing is
    shared at module level; two calls produce two independent agents.
    """
    private_key = settings.private_key.get_secret_value()
    if not private_key:
        raise ConfigurationError("private_key is required")

    if source is None or destination is None or sender is None:
        settings.require_network()

    if source is None:
        source = HTTPSourceLedger(
            JSONRPCClient(settings.mainchain.host, timeout=settings.rpc_timeout),
            settings.mainchain.bridge,
        )
    if destination is None or sender is None:
        side_client = JSONRPCClient(settings.sidechain.host, timeout=settings.rpc_timeout)
        if destination is None:
            destination = HTTPDestinationLedger(side_client, settings.sidechain.bridge, settings.sidechain.multisig)
        if sender is None:
            sender = HTTPTransactionSender(side_client)

    if checkpoints is None:
        checkpoints = FileCheckpointStore(str(settings.checkpoint_dir), sync=settings.journal_sync)
    if journal is None and settings.journal_enabled:
        journal = CycleJournal(str(settings.journal_dir), sync=settings.journal_sync)

    # Identity is derived once and reused for every confirmation check
    identity = AgentIdentity(
        address=sender.get_address(private_key),
        key_id=derive_identity(private_key).key_id,
    )
    logger.info(f"Federator identity {identity.address}")

    reconciler = MultisigReconciler(
        destination,
        sender,
        checkpoints,
        identity=identity,
        private_key=private_key,
        journal=journal,
    )
    scanner = EventScanner(
        source,
        checkpoints,
        token_address=settings.mainchain.token,
        confirmations=settings.confirmations,
        start_block=settings.from_block,
    )
    submitter = TransferSubmitter(
        source,
        destination,
        sender,
        private_key=private_key,
        destination_token=settings.sidechain.token,
        journal=journal,
    )
    return Federator(
        reconciler=reconciler,
        scanner=scanner,
        guard=IdempotencyGuard(destination),
        submitter=submitter,
        checkpoints=checkpoints,
        checkpoint_policy=settings.checkpoint_policy,
        journal=journal,
    )
