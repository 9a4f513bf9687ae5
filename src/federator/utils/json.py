import hashlib
import json
from typing import Any


def json_dumps(obj: Any) -> str:
    """Compact JSON for RPC request bodies."""
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def canonical_json(obj: Any) -> bytes:
    """Deterministic JSON encoding (sorted keys, no whitespace). Used for signing and call data."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True).encode("utf-8")


def stable_json_hash(obj: Any) -> str:
    """SHA-256 hex digest of the canonical JSON encoding."""
    return hashlib.sha256(canonical_json(obj)).hexdigest()
