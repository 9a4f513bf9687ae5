from .guard import IdempotencyGuard
from .scanner import EventScanner
from .submitter import TransferSubmitter
from .reconciler import MultisigReconciler
from .orchestrator import Federator
from .runtime import build_federator
from .settings import FederatorSettings, get_settings, load_settings

__all__ = [
    "IdempotencyGuard",
    "EventScanner",
    "TransferSubmitter",
    "MultisigReconciler",
    "Federator",
    "build_federator",
    "FederatorSettings",
    "get_settings",
    "load_settings",
]
