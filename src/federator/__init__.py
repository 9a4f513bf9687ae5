from .core.orchestrator import Federator
from .core.runtime import build_federator
from .core.settings import FederatorSettings, get_settings, load_settings
from .checkpoint import CheckpointStore, FileCheckpointStore, InMemoryCheckpointStore
from .journal import CycleJournal
from .protocol import (
    CheckpointName,
    CheckpointPolicy,
    CycleState,
    TransferEvent,
    ResolvedTransfer,
    CycleReport,
    FederatorError,
    CycleError,
)

__version__ = "0.1.0"

__all__ = [
    "Federator",
    "build_federator",
    "FederatorSettings",
    "get_settings",
    "load_settings",
    "CheckpointStore",
    "FileCheckpointStore",
    "InMemoryCheckpointStore",
    "CycleJournal",
    "CheckpointName",
    "CheckpointPolicy",
    "CycleState",
    "TransferEvent",
    "ResolvedTransfer",
    "CycleReport",
    "FederatorError",
    "CycleError",
]
