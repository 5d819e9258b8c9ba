"""Configuration system for MCP Wallet Signer.

Loads settings from an optional YAML file, expands ``${VAR}`` placeholders
from the environment, and applies the ``EVM_MCP_*`` environment overrides on
top.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Mapping, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("mcp_wallet_signer.config")

DEFAULT_PORT = 3847
DEFAULT_CHAIN_ID = 1  # Ethereum mainnet

CONFIG_ENV_VAR = "MCP_WALLET_SIGNER_CONFIG"
PORT_ENV_VAR = "EVM_MCP_PORT"
DEFAULT_CHAIN_ENV_VAR = "EVM_MCP_DEFAULT_CHAIN"

LOOPBACK_HOSTS = frozenset({"127.0.0.1", "::1", "localhost"})


# ---------------------------------------------------------------------------
# Environment-variable expansion helper
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with their environment values.

    If the variable is not set the placeholder is left as-is so that
    validation can catch it later.
    """

    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), match.group(0))

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_env_recursive(obj: object) -> object:
    if isinstance(obj, str):
        return _expand_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# Pydantic v2 models
# ---------------------------------------------------------------------------


class ServerConfig(BaseModel):
    """HTTP bridge settings. The bridge only ever binds to loopback."""

    host: str = "127.0.0.1"
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)  # 0 = any free port
    web_dist_dir: Optional[str] = None
    enable_test_endpoints: bool = False

    @field_validator("host")
    @classmethod
    def _loopback_only(cls, value: str) -> str:
        if value not in LOOPBACK_HOSTS:
            raise ValueError(
                f"host must be a loopback address ({', '.join(sorted(LOOPBACK_HOSTS))}), got '{value}'"
            )
        return value


class SignerConfig(BaseModel):
    """Root configuration object."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    default_chain_id: int = Field(default=DEFAULT_CHAIN_ID, gt=0)
    request_timeout_seconds: float = Field(default=300.0, gt=0)
    open_browser: bool = True
    rpc_urls: dict[int, str] = Field(default_factory=dict)  # chain id -> RPC URL override


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


def get_port(environ: Mapping[str, str] | None = None) -> Optional[int]:
    """Return the port from ``EVM_MCP_PORT`` if it is a valid port number."""
    env = os.environ if environ is None else environ
    raw = env.get(PORT_ENV_VAR)
    if raw:
        try:
            parsed = int(raw, 10)
        except ValueError:
            parsed = 0
        if 0 < parsed < 65536:
            return parsed
        logger.warning(f"Ignoring invalid {PORT_ENV_VAR}={raw!r}")
    return None


def get_default_chain_id(environ: Mapping[str, str] | None = None) -> Optional[int]:
    """Return the chain id from ``EVM_MCP_DEFAULT_CHAIN`` if it is positive."""
    env = os.environ if environ is None else environ
    raw = env.get(DEFAULT_CHAIN_ENV_VAR)
    if raw:
        try:
            parsed = int(raw, 10)
        except ValueError:
            parsed = 0
        if parsed > 0:
            return parsed
        logger.warning(f"Ignoring invalid {DEFAULT_CHAIN_ENV_VAR}={raw!r}")
    return None


def apply_env_overrides(
    config: SignerConfig, environ: Mapping[str, str] | None = None
) -> SignerConfig:
    """Return a copy of *config* with the ``EVM_MCP_*`` overrides applied."""
    port = get_port(environ)
    chain_id = get_default_chain_id(environ)
    update: dict = {}
    if port is not None:
        update["server"] = config.server.model_copy(update={"port": port})
    if chain_id is not None:
        update["default_chain_id"] = chain_id
    return config.model_copy(update=update) if update else config


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def resolve_config_path(path: Path | None = None) -> Optional[Path]:
    """Pick the config file: explicit *path*, else ``$MCP_WALLET_SIGNER_CONFIG``."""
    if path is not None:
        return path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    return Path(env_path) if env_path else None


def load_config(
    path: Path | None = None, environ: Mapping[str, str] | None = None
) -> SignerConfig:
    """Load and validate configuration.

    With no file the defaults are used. Environment variable placeholders
    (``${VAR}``) are expanded before validation, and the ``EVM_MCP_PORT`` /
    ``EVM_MCP_DEFAULT_CHAIN`` overrides are applied last.

    Raises
    ------
    FileNotFoundError
        If *path* is given but does not exist.
    pydantic.ValidationError
        If the file contents are invalid.
    """
    config_path = resolve_config_path(path)
    if config_path is None:
        config = SignerConfig()
    else:
        raw_data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        config = SignerConfig.model_validate(_expand_env_recursive(raw_data))
    return apply_env_overrides(config, environ)


def save_config(config: SignerConfig, path: Path) -> None:
    """Serialize a :class:`SignerConfig` to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="python", exclude_none=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, sort_keys=False)
