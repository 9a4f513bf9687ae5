"""
Central configuration for the federator.

A single typed configuration object read from environment variables
(12-factor style) using pydantic-settings. Nested chain settings use a
double underscore:

    FEDERATOR_CONFIRMATIONS=10
    FEDERATOR_MAINCHAIN__HOST=http://localhost:4444
    FEDERATOR_SIDECHAIN__MULTISIG=0x...
    FEDERATOR_PRIVATE_KEY=<32-byte hex>

Usage:

    from federator.core.settings import get_settings

    settings = get_settings()

A JSON config file can be layered on top (its values win over the
environment):

    settings = load_settings("config.json")
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from federator.protocol.enums import CheckpointPolicy
from federator.protocol.errors import ConfigurationError


class MainchainSettings(BaseModel):
    """Source chain: where "Cross" events are emitted."""

    host: str = Field(default="", description="JSON-RPC URL of the source ledger gateway.")
    bridge: str = Field(default="", description="Source bridge contract address.")
    token: str = Field(default="", description="Token address whose Cross events are relayed.")


class SidechainSettings(BaseModel):
    """Destination chain: bridge + multisig wallet."""

    host: str = Field(default="", description="JSON-RPC URL of the destination ledger gateway.")
    bridge: str = Field(default="", description="Destination bridge contract address.")
    multisig: str = Field(default="", description="Multisig wallet address.")
    token: str = Field(default="", description="Destination-side token passed to acceptTransfer.")


class FederatorSettings(BaseSettings):
    """
    Root configuration object.

    Aggregates:
      - mainchain / sidechain endpoints and contracts
      - relay tuning (confirmations, start block, checkpoint policy)
      - storage, journal, logging
    """

    model_config = SettingsConfigDict(
        env_prefix="FEDERATOR_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    mainchain: MainchainSettings = Field(default_factory=MainchainSettings)
    sidechain: SidechainSettings = Field(default_factory=SidechainSettings)

    confirmations: int = Field(
        default=0,
        ge=0,
        description="Trailing source blocks withheld from processing.",
    )
    from_block: int = Field(
        default=0,
        ge=0,
        description="First source block to scan when no checkpoint exists.",
    )
    checkpoint_policy: CheckpointPolicy = Field(
        default=CheckpointPolicy.SCANNED_RANGE,
        description="Which block the lastBlock checkpoint records.",
    )
    storage_path: str = Field(
        default=".federator",
        description="Directory holding checkpoint files and the journal.",
    )
    private_key: SecretStr = Field(
        default=SecretStr(""),
        description="Federator signing key (32-byte hex).",
    )

    journal_enabled: bool = Field(default=True, description="Record broadcasts to the cycle journal.")
    journal_sync: bool = Field(default=True, description="fsync journal and checkpoint writes.")
    poll_interval: float = Field(default=60.0, gt=0, description="Seconds between cycles in watch mode.")
    rpc_timeout: float = Field(default=10.0, gt=0, description="Per-request RPC timeout in seconds.")
    log_level: str = Field(default="INFO", description="Root log level (DEBUG/INFO/WARNING/ERROR).")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        v = (v or "INFO").upper()
        if v == "WARN":
            v = "WARNING"
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level {v!r}")
        return v

    @property
    def checkpoint_dir(self) -> Path:
        return Path(self.storage_path)

    @property
    def journal_dir(self) -> Path:
        return Path(self.storage_path) / "journal"

    def require_network(self) -> None:
        """Check everything a networked run needs; raise ConfigurationError otherwise."""
        missing = []
        for name, value in (
            ("mainchain.host", self.mainchain.host),
            ("mainchain.bridge", self.mainchain.bridge),
            ("mainchain.token", self.mainchain.token),
            ("sidechain.host", self.sidechain.host),
            ("sidechain.bridge", self.sidechain.bridge),
            ("sidechain.multisig", self.sidechain.multisig),
            ("sidechain.token", self.sidechain.token),
        ):
            if not value:
                missing.append(name)
        if not self.private_key.get_secret_value():
            missing.append("private_key")
        if missing:
            raise ConfigurationError(f"Missing configuration: {', '.join(missing)}")


def load_settings(config_file: Optional[str] = None, **overrides: Any) -> FederatorSettings:
    """
    Build settings from the environment, an optional JSON file and overrides.

    Precedence: overrides > JSON file > environment > defaults.
    """
    values: Dict[str, Any] = {}
    if config_file:
        path = Path(config_file)
        try:
            values = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
        if not isinstance(values, dict):
            raise ConfigurationError(f"Config file {path} must hold a JSON object")

    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return FederatorSettings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


@lru_cache(maxsize=1)
def get_settings() -> FederatorSettings:
    """
    Cached accessor for environment-only settings.

    Usage:
        from federator.core.settings import get_settings
        settings = get_settings()
    """
    return load_settings()
