from .base import DestinationLedger, SourceLedger, TransactionSender
from .inprocess import InProcessDestinationLedger, InProcessSourceLedger, InProcessTransactionSender
from .http import HTTPDestinationLedger, HTTPSourceLedger, HTTPTransactionSender, JSONRPCClient

__all__ = [
    "SourceLedger",
    "DestinationLedger",
    "TransactionSender",
    "InProcessSourceLedger",
    "InProcessDestinationLedger",
    "InProcessTransactionSender",
    "JSONRPCClient",
    "HTTPSourceLedger",
    "HTTPDestinationLedger",
    "HTTPTransactionSender",
]
