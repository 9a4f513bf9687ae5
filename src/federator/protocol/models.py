# FILE: src/federator/protocol/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .enums import CycleState, ScanStatus
from .errors import EventParseError


# Identity tuple used by the destination bridge to detect duplicates:
# (block_number, block_hash, tx_hash, mapped_receiver, amount, log_index)
TransferIdentity = Tuple[int, str, str, str, int, int]


def parse_quantity(value: Any, name: str) -> int:
    """
    Parse an integer that may arrive as int, decimal string or 0x-hex string.
    """
    if isinstance(value, bool):
        raise EventParseError(f"Field '{name}' must be an integer, got bool")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            result = int(text, 16) if text.lower().startswith("0x") else int(text, 10)
        except ValueError:
            raise EventParseError(f"Field '{name}' is not an integer: {value!r}") from None
    else:
        raise EventParseError(f"Field '{name}' must be an integer, got {value!r}")

    if result < 0:
        raise EventParseError(f"Field '{name}' must be non-negative, got {result}")
    return result


def _require(data: Mapping[str, Any], key: str, where: str) -> Any:
    if key not in data or data[key] is None:
        raise EventParseError(f"Missing field '{key}' in {where}")
    return data[key]


def _require_str(data: Mapping[str, Any], key: str, where: str) -> str:
    value = _require(data, key, where)
    if not isinstance(value, str) or not value:
        raise EventParseError(f"Field '{key}' in {where} must be a non-empty string")
    return value


# -------------------------
# TRANSFERS
# -------------------------

@dataclass(frozen=True)
class TransferEvent:
    """
    A "Cross" event read from the source bridge.

    Immutable once read. Built from raw logs through `from_log`, which
    rejects missing or malformed fields instead of defaulting them.
    """

    block_number: int
    block_hash: str
    tx_hash: str
    log_index: int
    original_receiver: str
    amount: int
    symbol: str
    token_address: str

    @property
    def sort_key(self) -> Tuple[int, int]:
        return (self.block_number, self.log_index)

    @classmethod
    def from_log(cls, log: Mapping[str, Any]) -> TransferEvent:
        if not isinstance(log, Mapping):
            raise EventParseError(f"Log must be a mapping, got {type(log).__name__}")

        values = _require(log, "returnValues", "log")
        if not isinstance(values, Mapping):
            raise EventParseError("Field 'returnValues' in log must be a mapping")

        return cls(
            block_number=parse_quantity(_require(log, "blockNumber", "log"), "blockNumber"),
            block_hash=_require_str(log, "blockHash", "log"),
            tx_hash=_require_str(log, "transactionHash", "log"),
            log_index=parse_quantity(_require(log, "logIndex", "log"), "logIndex"),
            original_receiver=_require_str(values, "_to", "returnValues"),
            amount=parse_quantity(_require(values, "_amount", "returnValues"), "_amount"),
            symbol=_require_str(values, "_symbol", "returnValues"),
            token_address=_require_str(values, "_tokenAddress", "returnValues"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "blockNumber": self.block_number,
            "blockHash": self.block_hash,
            "transactionHash": self.tx_hash,
            "logIndex": self.log_index,
            "returnValues": {
                "_to": self.original_receiver,
                "_amount": self.amount,
                "_symbol": self.symbol,
                "_tokenAddress": self.token_address,
            },
        }


@dataclass(frozen=True)
class ResolvedTransfer:
    """A TransferEvent with its receiver mapped to a destination address."""

    event: TransferEvent
    mapped_receiver: str

    @property
    def identity(self) -> TransferIdentity:
        return (
            self.event.block_number,
            self.event.block_hash,
            self.event.tx_hash,
            self.mapped_receiver,
            self.event.amount,
            self.event.log_index,
        )


# -------------------------
# MULTISIG
# -------------------------

@dataclass
class MultisigProposal:
    id: int
    destination: str
    value: int
    data: bytes
    confirmed_by: set = field(default_factory=set)
    executed: bool = False


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    sender: str
    to: str
    status: bool = True
    block_number: Optional[int] = None


@dataclass(frozen=True)
class AgentIdentity:
    address: str
    key_id: str


# -------------------------
# CYCLE RESULTS
# -------------------------

@dataclass(frozen=True)
class BlockRange:
    from_block: int
    to_block: int


@dataclass(frozen=True)
class ScanResult:
    """
    Outcome of one scan.

    EVENTS carries the scanned range and its (possibly empty) ordered events.
    EMPTY means there was nothing to scan yet; it is not a failure.
    ERROR means the ledger could not be read; `error` holds the cause.
    """

    status: ScanStatus
    block_range: Optional[BlockRange] = None
    events: Tuple[TransferEvent, ...] = ()
    reason: str = ""
    error: Optional[BaseException] = None

    @classmethod
    def ok(cls, block_range: BlockRange, events: List[TransferEvent]) -> ScanResult:
        return cls(ScanStatus.EVENTS, block_range=block_range, events=tuple(events))

    @classmethod
    def empty(cls, reason: str) -> ScanResult:
        return cls(ScanStatus.EMPTY, reason=reason)

    @classmethod
    def failed(cls, reason: str, error: Optional[BaseException] = None) -> ScanResult:
        return cls(ScanStatus.ERROR, reason=reason, error=error)

    @property
    def is_error(self) -> bool:
        return self.status == ScanStatus.ERROR


@dataclass
class ReconcileResult:
    from_count: int
    to_count: int
    pending_ids: List[int] = field(default_factory=list)
    confirmed_ids: List[int] = field(default_factory=list)
    already_confirmed_ids: List[int] = field(default_factory=list)
    checkpoint_saved: bool = False


@dataclass
class CycleReport:
    state: CycleState = CycleState.IDLE
    block_range: Optional[BlockRange] = None
    events_seen: int = 0
    submitted: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    confirmed: List[int] = field(default_factory=list)
    checkpoints: Dict[str, int] = field(default_factory=dict)
    scan_reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "block_range": (
                {"from": self.block_range.from_block, "to": self.block_range.to_block}
                if self.block_range else None
            ),
            "events_seen": self.events_seen,
            "submitted": list(self.submitted),
            "skipped": list(self.skipped),
            "confirmed": list(self.confirmed),
            "checkpoints": dict(self.checkpoints),
            "scan_reason": self.scan_reason,
        }
