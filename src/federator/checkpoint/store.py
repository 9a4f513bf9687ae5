"""
Checkpoint persistence.

A checkpoint is a single non-negative integer per CheckpointName:
- lastBlock:   last source block covered by a successful cycle
- lastTxCount: multisig transaction count covered by a successful reconcile

Rules:
- Absence is "not yet initialized", never an error (load returns None)
- save() is atomic for readers: temp file + fsync + os.replace
- save() is safe to retry with the same value
- The store does NOT enforce monotonicity; callers do
"""

from __future__ import annotations

import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from federator.protocol.enums import CheckpointName
from federator.protocol.errors import CheckpointError

logger = logging.getLogger(__name__)


class CheckpointStore(ABC):
    @abstractmethod
    def load(self, name: CheckpointName) -> Optional[int]:
        """Return the stored value, or None when never saved."""
        raise NotImplementedError

    @abstractmethod
    def save(self, name: CheckpointName, value: int) -> None:
        raise NotImplementedError

    def load_or_default(self, name: CheckpointName, default: int) -> int:
        value = self.load(name)
        return default if value is None else value

    def snapshot(self) -> Dict[str, Optional[int]]:
        return {name.value: self.load(name) for name in CheckpointName}


def _validate_value(name: CheckpointName, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise CheckpointError(f"Checkpoint {name.value} must be an int, got {value!r}")
    if value < 0:
        raise CheckpointError(f"Checkpoint {name.value} must be non-negative, got {value}")
    return value


class InMemoryCheckpointStore(CheckpointStore):
    """Dict-backed store for tests and dry runs."""

    def __init__(self, initial: Optional[Dict[CheckpointName, int]] = None) -> None:
        self._values: Dict[CheckpointName, int] = dict(initial or {})
        self._lock = threading.Lock()

    def load(self, name: CheckpointName) -> Optional[int]:
        with self._lock:
            return self._values.get(name)

    def save(self, name: CheckpointName, value: int) -> None:
        value = _validate_value(name, value)
        with self._lock:
            self._values[name] = value


class FileCheckpointStore(CheckpointStore):
    """
    One plain-integer file per checkpoint under `storage_path`.

    Layout:
        <storage_path>/lastBlock.txt
        <storage_path>/lastTxCount.txt
    """

    def __init__(self, storage_path: str, *, sync: bool = True) -> None:
        self.storage_path = Path(storage_path)
        self.storage_path.mkdir(parents=True, exist_ok=True)
        self._sync = sync
        self._lock = threading.Lock()

    def path_for(self, name: CheckpointName) -> Path:
        return self.storage_path / f"{name.value}.txt"

    def load(self, name: CheckpointName) -> Optional[int]:
        path = self.path_for(name)
        try:
            raw = path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CheckpointError(f"Cannot read checkpoint {path}: {e}") from e

        if not raw:
            return None
        try:
            value = int(raw, 10)
        except ValueError:
            raise CheckpointError(f"Corrupt checkpoint {path}: {raw!r}") from None
        if value < 0:
            raise CheckpointError(f"Corrupt checkpoint {path}: negative value {value}")
        return value

    def save(self, name: CheckpointName, value: int) -> None:
        value = _validate_value(name, value)
        path = self.path_for(name)
        tmp_path = path.with_suffix(".tmp")

        with self._lock:
            try:
                with open(tmp_path, "w", encoding="utf-8") as f:
                    f.write(str(value))
                    f.flush()
                    if self._sync:
                        os.fsync(f.fileno())
                # Atomic rename
                os.replace(str(tmp_path), str(path))
            except OSError as e:
                raise CheckpointError(f"Cannot write checkpoint {path}: {e}") from e

        logger.debug(f"Checkpoint {name.value} saved: {value}")
