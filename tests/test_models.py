"""
Transfer event parsing and cycle state machine.
"""

import pytest

from conftest import make_event

from federator.protocol.enums import CycleState
from federator.protocol.errors import EventParseError
from federator.protocol.models import ResolvedTransfer, TransferEvent, parse_quantity


def raw_log(**overrides):
    log = {
        "blockNumber": "0x32",
        "blockHash": "0xblock50",
        "transactionHash": "0xtx50_0",
        "logIndex": 3,
        "returnValues": {
            "_to": "0xR",
            "_amount": "1000000000000000000000",
            "_symbol": "X",
            "_tokenAddress": "0xToken",
        },
    }
    log.update(overrides)
    return log


class TestParseQuantity:
    @pytest.mark.parametrize(
        "value,expected",
        [(7, 7), ("7", 7), ("0x1f", 31), (" 12 ", 12), ("0X10", 16)],
    )
    def test_accepts_int_decimal_and_hex(self, value, expected):
        assert parse_quantity(value, "n") == expected

    @pytest.mark.parametrize("value", [True, -1, "abc", "", None, 1.5, "-4"])
    def test_rejects_invalid(self, value):
        with pytest.raises(EventParseError):
            parse_quantity(value, "n")


class TestTransferEvent:
    def test_from_log(self):
        event = TransferEvent.from_log(raw_log())
        assert event.block_number == 50
        assert event.log_index == 3
        assert event.original_receiver == "0xR"
        # Amounts exceed 64 bits; no float rounding
        assert event.amount == 10 ** 21
        assert event.token_address == "0xToken"

    def test_missing_return_value_field(self):
        log = raw_log()
        del log["returnValues"]["_symbol"]
        with pytest.raises(EventParseError, match="_symbol"):
            TransferEvent.from_log(log)

    def test_missing_log_index(self):
        log = raw_log()
        del log["logIndex"]
        with pytest.raises(EventParseError, match="logIndex"):
            TransferEvent.from_log(log)

    def test_non_mapping_log(self):
        with pytest.raises(EventParseError):
            TransferEvent.from_log(["not", "a", "log"])

    def test_to_dict_matches_log_shape(self):
        event = TransferEvent.from_log(raw_log())
        assert TransferEvent.from_log(event.to_dict()) == event

    def test_events_are_immutable(self):
        event = make_event(1)
        with pytest.raises(AttributeError):
            event.amount = 99

    def test_sort_key_orders_by_block_then_log_index(self):
        events = [make_event(5, 2), make_event(3, 9), make_event(5, 0)]
        ordered = sorted(events, key=lambda ev: ev.sort_key)
        assert [(e.block_number, e.log_index) for e in ordered] == [(3, 9), (5, 0), (5, 2)]


class TestResolvedTransfer:
    def test_identity_uses_mapped_receiver(self):
        transfer = ResolvedTransfer(event=make_event(50, 1, receiver="0xR"), mapped_receiver="0xM")
        assert transfer.identity == (50, "0xblock50", "0xtx50_1", "0xM", 5, 1)

    def test_log_index_distinguishes_transfers_in_one_transaction(self):
        first = ResolvedTransfer(event=make_event(50, 0), mapped_receiver="0xM")
        second = ResolvedTransfer(
            event=TransferEvent(50, "0xblock50", "0xtx50_0", 1, "0xM", 5, "X", "0xT"),
            mapped_receiver="0xM",
        )
        assert first.identity != second.identity


class TestCycleState:
    def test_legal_path(self):
        path = [CycleState.IDLE, CycleState.CONFIRMING, CycleState.SCANNING,
                CycleState.PROCESSING, CycleState.IDLE]
        for current, nxt in zip(path, path[1:]):
            assert CycleState.validate_transition(current, nxt)

    def test_scanning_may_return_to_idle(self):
        assert CycleState.validate_transition(CycleState.SCANNING, CycleState.IDLE)

    def test_idle_cannot_skip_confirming(self):
        assert not CycleState.validate_transition(CycleState.IDLE, CycleState.SCANNING)

    def test_failed_is_terminal(self):
        assert CycleState.is_terminal(CycleState.FAILED)
        for state in CycleState:
            assert not CycleState.validate_transition(CycleState.FAILED, state)
