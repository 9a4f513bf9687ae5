"""
Event scanner range rules.
"""

from unittest.mock import MagicMock, patch

import pytest

from conftest import SOURCE_TOKEN, make_event

from federator.checkpoint.store import InMemoryCheckpointStore
from federator.core.scanner import EventScanner
from federator.protocol.enums import CheckpointName, ScanStatus
from federator.protocol.errors import CheckpointError, LedgerError


def make_scanner(source, checkpoints=None, **kwargs):
    kwargs.setdefault("confirmations", 10)
    return EventScanner(
        source,
        checkpoints if checkpoints is not None else InMemoryCheckpointStore(),
        token_address=SOURCE_TOKEN,
        **kwargs,
    )


class TestRange:
    def test_first_run_scans_from_start_block(self, source):
        scan = make_scanner(source).scan()
        assert scan.status == ScanStatus.EVENTS
        assert (scan.block_range.from_block, scan.block_range.to_block) == (0, 90)

    def test_configured_start_block_applies_without_checkpoint(self, source):
        scan = make_scanner(source, start_block=40).scan()
        assert scan.block_range.from_block == 40

    def test_checkpoint_wins_over_start_block(self, source):
        checkpoints = InMemoryCheckpointStore({CheckpointName.LAST_BLOCK: 60})
        scan = make_scanner(source, checkpoints, start_block=40).scan()
        assert scan.block_range.from_block == 61

    def test_range_is_inclusive_and_ordered(self, source):
        for block, log_index in [(91, 0), (90, 1), (61, 0), (60, 0), (90, 0)]:
            source.add_event(make_event(block, log_index))
        checkpoints = InMemoryCheckpointStore({CheckpointName.LAST_BLOCK: 60})

        scan = make_scanner(source, checkpoints).scan()

        assert [(e.block_number, e.log_index) for e in scan.events] == [(61, 0), (90, 0), (90, 1)]

    def test_other_tokens_are_filtered(self, source):
        source.add_event(make_event(10, token="0x" + "ee" * 20))
        source.add_event(make_event(11, token=SOURCE_TOKEN.upper().replace("0X", "0x")))
        scan = make_scanner(source).scan()
        assert [e.block_number for e in scan.events] == [11]

    def test_sorts_unordered_ledger_output(self):
        source = MagicMock()
        source.get_head_height.return_value = 100
        source.get_events.return_value = [make_event(9, 1), make_event(2), make_event(9, 0)]

        scan = make_scanner(source).scan()

        assert [e.sort_key for e in scan.events] == [(2, 0), (9, 0), (9, 1)]


class TestEmpty:
    @pytest.mark.parametrize("head", [0, 5, 10])
    def test_head_within_confirmation_depth(self, source, head):
        source.head = head
        with patch.object(source, "get_events") as get_events:
            scan = make_scanner(source).scan()
        assert scan.status == ScanStatus.EMPTY
        get_events.assert_not_called()

    def test_caught_up(self, source):
        checkpoints = InMemoryCheckpointStore({CheckpointName.LAST_BLOCK: 90})
        with patch.object(source, "get_events") as get_events:
            scan = make_scanner(source, checkpoints).scan()
        assert scan.status == ScanStatus.EMPTY
        assert "no new final blocks" in scan.reason
        get_events.assert_not_called()

    def test_zero_confirmations(self, source):
        source.head = 1
        scan = make_scanner(source, confirmations=0).scan()
        assert scan.status == ScanStatus.EVENTS
        assert scan.block_range.to_block == 1


class TestErrors:
    def test_head_failure_is_error_not_empty(self, source):
        with patch.object(source, "get_head_height", side_effect=LedgerError("timeout")):
            scan = make_scanner(source).scan()
        assert scan.is_error
        assert isinstance(scan.error, LedgerError)

    def test_event_fetch_failure(self, source):
        with patch.object(source, "get_events", side_effect=LedgerError("bad filter")):
            scan = make_scanner(source).scan()
        assert scan.status == ScanStatus.ERROR
        assert "event fetch failed" in scan.reason

    def test_unreadable_checkpoint(self, source):
        checkpoints = MagicMock()
        checkpoints.load.side_effect = CheckpointError("corrupt")
        scan = make_scanner(source, checkpoints).scan()
        assert scan.is_error
        assert "checkpoint unreadable" in scan.reason

    def test_negative_configuration_rejected(self, source):
        with pytest.raises(ValueError):
            make_scanner(source, confirmations=-1)
        with pytest.raises(ValueError):
            make_scanner(source, start_block=-1)
