from .enums import CheckpointName, CheckpointPolicy, CycleState, ErrorCode, ScanStatus
from .errors import (
    FederatorError,
    CheckpointError,
    LedgerError,
    SendError,
    EventParseError,
    ConfigurationError,
    CycleError,
    CycleInProgressError,
    InvalidTransitionError,
)
from .models import (
    TransferEvent,
    TransferIdentity,
    ResolvedTransfer,
    MultisigProposal,
    Receipt,
    AgentIdentity,
    BlockRange,
    ScanResult,
    ReconcileResult,
    CycleReport,
    parse_quantity,
)

__all__ = [
    "CheckpointName",
    "CheckpointPolicy",
    "CycleState",
    "ErrorCode",
    "ScanStatus",
    "FederatorError",
    "CheckpointError",
    "LedgerError",
    "SendError",
    "EventParseError",
    "ConfigurationError",
    "CycleError",
    "CycleInProgressError",
    "InvalidTransitionError",
    "TransferEvent",
    "TransferIdentity",
    "ResolvedTransfer",
    "MultisigProposal",
    "Receipt",
    "AgentIdentity",
    "BlockRange",
    "ScanResult",
    "ReconcileResult",
    "CycleReport",
    "parse_quantity",
]
