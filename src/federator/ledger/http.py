"""
JSON-RPC over HTTP ledger adapters.

Each adapter speaks JSON-RPC 2.0 to a ledger gateway node:

    POST <host>
    { "jsonrpc": "2.0", "id": 7, "method": "multisig_transactionCount", "params": [...] }

and expects either

    { "jsonrpc": "2.0", "id": 7, "result": ... }
    { "jsonrpc": "2.0", "id": 7, "error": { "code": -32000, "message": "..." } }

Call data travels as 0x-prefixed hex. Timeouts are enforced here, per
request; the relay core never waits on anything else.
"""

from __future__ import annotations

import base64
import itertools
import json
import logging
import threading
from typing import Any, List, Optional, Sequence

import requests

from federator.protocol.errors import EventParseError, LedgerError, SendError
from federator.protocol.models import Receipt, TransferEvent, TransferIdentity, parse_quantity
from federator.security.identity import AgentSigner
from federator.utils.json import canonical_json, json_dumps

from .base import DestinationLedger, SourceLedger, TransactionSender

logger = logging.getLogger(__name__)


def _to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def _from_hex(value: Any, method: str) -> bytes:
    if not isinstance(value, str):
        raise LedgerError(f"{method}: expected hex string, got {value!r}")
    text = value[2:] if value.lower().startswith("0x") else value
    try:
        return bytes.fromhex(text)
    except ValueError:
        raise LedgerError(f"{method}: invalid hex result {value!r}") from None


def _to_int(value: Any, method: str) -> int:
    try:
        return parse_quantity(value, method)
    except EventParseError as e:
        raise LedgerError(f"{method}: {e}") from e


class JSONRPCClient:
    """
    Minimal JSON-RPC 2.0 client on a requests.Session.

    Every failure mode (connection, timeout, HTTP status, malformed body,
    JSON-RPC error object) is raised as LedgerError.
    """

    def __init__(self, url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self._url = url
        self._timeout = timeout
        self._session = session or requests.Session()
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def url(self) -> str:
        return self._url

    def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        with self._lock:
            request_id = next(self._ids)

        frame = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": method,
            "params": params or [],
        }

        try:
            response = self._session.post(
                self._url,
                data=json_dumps(frame),
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise LedgerError(f"{method}: RPC transport failed: {e}") from e

        try:
            decoded = json.loads(response.text)
        except ValueError as e:
            raise LedgerError(f"{method}: invalid JSON response: {e}") from e

        if not isinstance(decoded, dict):
            raise LedgerError(f"{method}: unexpected response {decoded!r}")

        err = decoded.get("error")
        if err:
            message = err.get("message", "") if isinstance(err, dict) else str(err)
            code = err.get("code") if isinstance(err, dict) else None
            raise LedgerError(f"{method}: RPC error {code}: {message}")

        if "result" not in decoded:
            raise LedgerError(f"{method}: response has neither result nor error")

        return decoded["result"]


class HTTPSourceLedger(SourceLedger):
    def __init__(self, client: JSONRPCClient, bridge_address: str) -> None:
        self._client = client
        self._bridge = bridge_address

    def get_head_height(self) -> int:
        return _to_int(self._client.call("eth_blockNumber"), "eth_blockNumber")

    def get_events(self, from_block: int, to_block: int, token_address: str) -> List[TransferEvent]:
        raw_logs = self._client.call(
            "bridge_getCrossEvents",
            [
                {
                    "address": self._bridge,
                    "fromBlock": from_block,
                    "toBlock": to_block,
                    "filter": {"_tokenAddress": token_address},
                }
            ],
        )
        if not isinstance(raw_logs, list):
            raise LedgerError(f"bridge_getCrossEvents: expected a list, got {type(raw_logs).__name__}")

        # Parse errors propagate: an unreadable event must stop the cycle
        events = [TransferEvent.from_log(log) for log in raw_logs]
        events.sort(key=lambda ev: ev.sort_key)
        return events

    def get_mapped_address(self, address: str) -> str:
        mapped = self._client.call("bridge_getMappedAddress", [self._bridge, address])
        if not isinstance(mapped, str) or not mapped:
            raise LedgerError(f"bridge_getMappedAddress: invalid address {mapped!r}")
        return mapped


class HTTPDestinationLedger(DestinationLedger):
    def __init__(self, client: JSONRPCClient, bridge_address: str, multisig_address: str) -> None:
        self._client = client
        self._bridge = bridge_address
        self._multisig = multisig_address

    @property
    def bridge_address(self) -> str:
        return self._bridge

    @property
    def multisig_address(self) -> str:
        return self._multisig

    def was_processed(self, identity: TransferIdentity) -> bool:
        block_number, block_hash, tx_hash, receiver, amount, log_index = identity
        result = self._client.call(
            "bridge_transactionWasProcessed",
            [self._bridge, block_number, block_hash, tx_hash, receiver, str(amount), log_index],
        )
        if not isinstance(result, bool):
            raise LedgerError(f"bridge_transactionWasProcessed: expected bool, got {result!r}")
        return result

    def transaction_count(self) -> int:
        return _to_int(
            self._client.call("multisig_transactionCount", [self._multisig]),
            "multisig_transactionCount",
        )

    def get_transaction_ids(
        self, from_id: int, to_id: int, pending: bool, executed: bool
    ) -> Sequence[int]:
        result = self._client.call(
            "multisig_getTransactionIds", [self._multisig, from_id, to_id, pending, executed]
        )
        if not isinstance(result, list):
            raise LedgerError(f"multisig_getTransactionIds: expected a list, got {result!r}")
        return [_to_int(v, "multisig_getTransactionIds") for v in result]

    def confirmations(self, transaction_id: int, address: str) -> bool:
        result = self._client.call("multisig_confirmations", [self._multisig, transaction_id, address])
        if not isinstance(result, bool):
            raise LedgerError(f"multisig_confirmations: expected bool, got {result!r}")
        return result

    def encode_confirm(self, transaction_id: int) -> bytes:
        method = "abi_encodeConfirmTransaction"
        return _from_hex(self._client.call(method, [transaction_id]), method)

    def encode_accept_transfer(
        self,
        token_address: str,
        receiver: str,
        amount: int,
        symbol: str,
        block_number: int,
        block_hash: str,
        tx_hash: str,
        log_index: int,
    ) -> bytes:
        method = "abi_encodeAcceptTransfer"
        result = self._client.call(
            method,
            [token_address, receiver, str(amount), symbol, block_number, block_hash, tx_hash, log_index],
        )
        return _from_hex(result, method)

    def encode_submit_proposal(self, destination: str, value: int, data: bytes) -> bytes:
        method = "abi_encodeSubmitTransaction"
        return _from_hex(self._client.call(method, [destination, str(value), _to_hex(data)]), method)


class HTTPTransactionSender(TransactionSender):
    """
    Asks the gateway to broadcast a call on behalf of this federator.

    The private key never leaves the process: each request carries the
    federator's public key and an Ed25519 signature over the canonical
    call {from, to, data, value}. Nonce assignment happens gateway-side.
    """

    def __init__(self, client: JSONRPCClient) -> None:
        self._client = client
        self._signers: dict = {}

    def _signer(self, private_key: str) -> AgentSigner:
        signer = self._signers.get(private_key)
        if signer is None:
            signer = AgentSigner.from_hex(private_key)
            self._signers[private_key] = signer
        return signer

    def get_address(self, private_key: str) -> str:
        return self._signer(private_key).address

    def send(self, to: str, data: bytes, value: int, private_key: str) -> Receipt:
        signer = self._signer(private_key)
        call = {"from": signer.address, "to": to, "data": _to_hex(data), "value": str(value)}
        signature = signer.sign(canonical_json(call))

        try:
            result = self._client.call(
                "federator_sendTransaction",
                [
                    {
                        **call,
                        "publicKey": base64.b64encode(signer.public_key_bytes).decode("ascii"),
                        "signature": base64.b64encode(signature).decode("ascii"),
                    }
                ],
            )
        except LedgerError as e:
            raise SendError(f"Broadcast to {to} failed: {e}") from e

        if not isinstance(result, dict) or not result.get("transactionHash"):
            raise SendError(f"Broadcast to {to} returned no transaction hash: {result!r}")

        status = result.get("status", True)
        if status in (False, 0, "0x0"):
            raise SendError(f"Transaction {result['transactionHash']} reverted")

        block_number = result.get("blockNumber")
        return Receipt(
            tx_hash=result["transactionHash"],
            sender=signer.address,
            to=to,
            status=True,
            block_number=_to_int(block_number, "blockNumber") if block_number is not None else None,
        )
