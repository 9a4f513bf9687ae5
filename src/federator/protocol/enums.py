from enum import Enum


class ErrorCode(str, Enum):
    CHECKPOINT_ERROR = "checkpoint_error"
    LEDGER_ERROR = "ledger_error"
    SEND_ERROR = "send_error"
    PARSE_ERROR = "parse_error"
    CONFIGURATION_ERROR = "configuration_error"
    CYCLE_ERROR = "cycle_error"
    INTERNAL_ERROR = "internal_error"


class CheckpointName(str, Enum):
    LAST_BLOCK = "lastBlock"
    LAST_TX_COUNT = "lastTxCount"


class CheckpointPolicy(str, Enum):
    """
    Which block number the LastBlock checkpoint records after a cycle.

    SCANNED_RANGE: the upper bound of the scanned range (toBlock).
    LAST_EVENT:    the block of the last processed event; a cycle with
                   no events leaves the checkpoint untouched.
    """

    SCANNED_RANGE = "scanned_range"
    LAST_EVENT = "last_event"


class ScanStatus(str, Enum):
    EVENTS = "events"
    EMPTY = "empty"
    ERROR = "error"


class CycleState(str, Enum):
    """
    Per-cycle lifecycle states.

    Legal transitions:
    - IDLE → CONFIRMING
    - CONFIRMING → SCANNING | FAILED
    - SCANNING → PROCESSING | IDLE | FAILED
    - PROCESSING → IDLE | FAILED

    Terminal state: FAILED
    """

    IDLE = "idle"
    CONFIRMING = "confirming"
    SCANNING = "scanning"
    PROCESSING = "processing"
    FAILED = "failed"

    @classmethod
    def is_terminal(cls, state: "CycleState") -> bool:
        return state == cls.FAILED

    @classmethod
    def validate_transition(cls, from_state: "CycleState", to_state: "CycleState") -> bool:
        legal_transitions = {
            cls.IDLE: {cls.CONFIRMING},
            cls.CONFIRMING: {cls.SCANNING, cls.FAILED},
            cls.SCANNING: {cls.PROCESSING, cls.IDLE, cls.FAILED},
            cls.PROCESSING: {cls.IDLE, cls.FAILED},
            cls.FAILED: set(),
        }
        return to_state in legal_transitions.get(from_state, set())
