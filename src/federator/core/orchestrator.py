"""
Run orchestrator: one relay cycle, start to finish.

CYCLE:
    IDLE
     └─> CONFIRMING   reconcile pending multisig proposals (saves lastTxCount)
          └─> SCANNING     compute final range, fetch Cross events
               ├─> IDLE         nothing to scan (EMPTY)
               └─> PROCESSING   resolve → guard → submit, per event
                    └─> IDLE         save lastBlock

Any error moves the cycle to FAILED. FAILED is terminal: the process is
expected to exit and be restarted by its supervisor. Because each
checkpoint is written only after its unit of work succeeded, a restart
re-attempts exactly the unfinished work, and the idempotency guard plus
the per-id confirmation check make that repeat harmless.

Cycles never overlap: a second run_cycle() while one is in flight raises
CycleInProgressError.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Callable, Optional, Set

from federator.checkpoint.store import CheckpointStore
from federator.journal.writer import CycleJournal
from federator.protocol.enums import CheckpointName, CheckpointPolicy, CycleState, ScanStatus
from federator.protocol.errors import (
    CycleError,
    CycleInProgressError,
    InvalidTransitionError,
)
from federator.protocol.models import CycleReport, ScanResult, TransferIdentity
from federator.utils.timestamps import monotonic_ms

from .guard import IdempotencyGuard
from .reconciler import MultisigReconciler
from .scanner import EventScanner
from .submitter import TransferSubmitter

logger = logging.getLogger(__name__)


class Federator:
    """
    Sequences reconciler, scanner, guard and submitter for one agent.

    USAGE:
        federator = build_federator(settings)
        report = federator.run_cycle()      # raises CycleError on failure
    """

    def __init__(
        self,
        *,
        reconciler: MultisigReconciler,
        scanner: EventScanner,
        guard: IdempotencyGuard,
        submitter: TransferSubmitter,
        checkpoints: CheckpointStore,
        checkpoint_policy: CheckpointPolicy = CheckpointPolicy.SCANNED_RANGE,
        journal: Optional[CycleJournal] = None,
    ) -> None:
        self._reconciler = reconciler
        self._scanner = scanner
        self._guard = guard
        self._submitter = submitter
        self._checkpoints = checkpoints
        self._policy = checkpoint_policy
        self._journal = journal

        self._state = CycleState.IDLE
        self._cycle_lock = threading.Lock()
        self.last_report: Optional[CycleReport] = None

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def checkpoints(self) -> CheckpointStore:
        return self._checkpoints

    def _transition(self, to_state: CycleState) -> None:
        if not CycleState.validate_transition(self._state, to_state):
            raise InvalidTransitionError(
                f"Illegal cycle transition {self._state.value} -> {to_state.value}"
            )
        logger.debug(f"Cycle state {self._state.value} -> {to_state.value}")
        self._state = to_state

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------
    def run_cycle(self) -> CycleReport:
        if not self._cycle_lock.acquire(blocking=False):
            raise CycleInProgressError("A relay cycle is already running")
        try:
            if CycleState.is_terminal(self._state):
                raise CycleError("Federator is in FAILED state; restart required")
            return self._run_cycle()
        finally:
            self._cycle_lock.release()

    def _run_cycle(self) -> CycleReport:
        cycle_id = str(uuid.uuid4())
        report = CycleReport()
        started_ms = monotonic_ms()

        self._transition(CycleState.CONFIRMING)
        try:
            if self._journal is not None:
                self._journal.cycle_started(cycle_id)

            reconciled = self._reconciler.reconcile()
            report.confirmed = list(reconciled.confirmed_ids)
            if reconciled.checkpoint_saved:
                report.checkpoints[CheckpointName.LAST_TX_COUNT.value] = reconciled.to_count

            self._transition(CycleState.SCANNING)
            scan = self._scanner.scan()
            if scan.is_error:
                raise CycleError(f"Scan failed: {scan.reason}") from scan.error

            if scan.status == ScanStatus.EMPTY:
                logger.info(f"Nothing to scan: {scan.reason}")
                report.scan_reason = scan.reason
            else:
                self._transition(CycleState.PROCESSING)
                self._process(scan, report)

            self._transition(CycleState.IDLE)
        except Exception as e:
            self._fail(cycle_id, report, e)
            if isinstance(e, CycleError):
                raise
            raise CycleError(f"Exception running federator: {e}") from e

        report.state = self._state
        if self._journal is not None:
            self._journal.cycle_completed(cycle_id, report.to_dict())
        logger.info(
            f"Cycle {cycle_id} done in {monotonic_ms() - started_ms}ms: "
            f"{len(report.submitted)} submitted, {len(report.skipped)} skipped, "
            f"{len(report.confirmed)} confirmed"
        )
        self.last_report = report
        return report

    def _fail(self, cycle_id: str, report: CycleReport, error: BaseException) -> None:
        failed_in = self._state
        self._state = CycleState.FAILED
        report.state = CycleState.FAILED
        self.last_report = report
        logger.exception(f"Cycle {cycle_id} failed while {failed_in.value}: {error}")
        if self._journal is not None:
            try:
                self._journal.cycle_failed(cycle_id, failed_in.value, str(error))
            except OSError as journal_error:
                logger.error(f"Could not journal cycle failure: {journal_error}")

    def _process(self, scan: ScanResult, report: CycleReport) -> None:
        report.block_range = scan.block_range
        report.events_seen = len(scan.events)

        seen: Set[TransferIdentity] = set()
        last_block: Optional[int] = None

        for event in scan.events:
            label = f"{event.tx_hash}#{event.log_index}"
            logger.info(f"Processing event log {label} at block {event.block_number}")

            transfer = self._submitter.resolve(event)
            if transfer.identity in seen:
                logger.warning(f"Duplicate event {label} in scan; already handled this cycle")
                continue
            seen.add(transfer.identity)

            if self._guard.was_processed(transfer):
                logger.info(f"Transfer {label} already processed on destination; skipping")
                report.skipped.append(label)
                if self._journal is not None:
                    self._journal.transfer_skipped(event.tx_hash, event.log_index, "already processed")
            else:
                logger.info(f"Voting tx {event.tx_hash}")
                self._submitter.submit(transfer)
                report.submitted.append(label)

            last_block = event.block_number

        if self._policy == CheckpointPolicy.SCANNED_RANGE:
            new_block = scan.block_range.to_block
        else:
            new_block = last_block

        if new_block is not None:
            self._save_block_checkpoint(new_block, report)

    def _save_block_checkpoint(self, value: int, report: CycleReport) -> None:
        current = self._checkpoints.load(CheckpointName.LAST_BLOCK)
        if current is not None and value < current:
            logger.warning(f"Refusing to move lastBlock backwards ({current} -> {value})")
            return
        self._checkpoints.save(CheckpointName.LAST_BLOCK, value)
        report.checkpoints[CheckpointName.LAST_BLOCK.value] = value
        if self._journal is not None:
            self._journal.checkpoint_saved(CheckpointName.LAST_BLOCK.value, value)

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------
    def watch(
        self,
        interval: float,
        *,
        max_cycles: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """
        Run cycles back to back, `interval` seconds apart.

        Returns the number of completed cycles. The first failure propagates.
        """
        completed = 0
        while max_cycles is None or completed < max_cycles:
            self.run_cycle()
            completed += 1
            if max_cycles is not None and completed >= max_cycles:
                break
            sleep(interval)
        return completed
