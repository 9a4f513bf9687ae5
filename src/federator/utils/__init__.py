from .json import json_dumps, canonical_json, stable_json_hash
from .timestamps import now_iso, monotonic_ms

__all__ = ["json_dumps", "canonical_json", "stable_json_hash", "now_iso", "monotonic_ms"]
