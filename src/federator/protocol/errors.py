from typing import Optional
from .enums import ErrorCode


class FederatorError(Exception):
    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.code = code or ErrorCode.INTERNAL_ERROR


class CheckpointError(FederatorError):
    """Raised when a persisted checkpoint cannot be read or written."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CHECKPOINT_ERROR)


class LedgerError(FederatorError):
    """Raised when a ledger RPC call fails."""

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message, code or ErrorCode.LEDGER_ERROR)


class SendError(LedgerError):
    """Raised when signing or broadcasting a transaction fails."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.SEND_ERROR)


class EventParseError(FederatorError):
    """Raised when a raw log does not carry a well-formed transfer event."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.PARSE_ERROR)


class ConfigurationError(FederatorError):
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR)


class CycleError(FederatorError):
    """Raised when a relay cycle fails; the cause is chained."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CYCLE_ERROR)


class CycleInProgressError(CycleError):
    """Raised when a cycle is started while another one is still running."""


class InvalidTransitionError(CycleError):
    """Raised on an illegal cycle state transition."""
