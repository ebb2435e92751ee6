"""Settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``T2Z_``, nested via ``__``)
2. YAML config file (``T2Z_CONFIG_PATH`` env var or :meth:`AppConfig.from_yaml`)
3. Defaults defined here
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from t2z.zcash.consensus import DEFAULT_EXPIRY_DELTA, Network

# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class NodeConfig(BaseSettings):
    """JSON-RPC node (zebrad / zcashd) connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="T2Z_NODE__",
        case_sensitive=False,
    )

    url: str = Field(
        default="http://127.0.0.1:18232",
        description="JSON-RPC endpoint of the node",
    )
    user: str = ""
    password: str = ""
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    poll_interval: float = Field(default=1.0, gt=0, description="Seconds between polls while waiting")


class ProtocolConfig(BaseSettings):
    """Transaction construction parameters."""

    model_config = SettingsConfigDict(
        env_prefix="T2Z_PROTOCOL__",
        case_sensitive=False,
    )

    use_mainnet: bool = Field(
        default=True,
        description="Use mainnet consensus parameters (regtest nodes do too)",
    )
    expiry_delta: int = Field(default=DEFAULT_EXPIRY_DELTA, ge=0)

    @property
    def network(self) -> Network:
        return Network.from_flag(self.use_mainnet)


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level configuration.

    Loads settings from environment variables (``T2Z_`` prefix), an
    optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="T2Z_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    config_path: str = ""

    node: NodeConfig = Field(default_factory=NodeConfig)
    protocol: ProtocolConfig = Field(default_factory=ProtocolConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        # YAML values serve as defaults; env vars (already in *values*) win.
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                values[key] = {**val, **values[key]}
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
