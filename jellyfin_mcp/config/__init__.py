"""
Configuration management for jellyfin-mcp.

Settings come from environment variables, optionally layered over a TOML
file. Environment variables win; empty values count as unset.

TOML layout:

    [jellyfin]
    api_url = "http://jellyfin.local:8096"
    api_key = "..."
    user_id = "..."
    session_strategy = "active"
    device_id_hint = "living room"
    timeout_ms = 15000
    max_frame_bytes = 4194304
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jellyfin_mcp.protocol.framing import DEFAULT_MAX_FRAME_BYTES
from jellyfin_mcp.sessions.ranking import SessionStrategy

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 15000

# Environment variable naming the optional TOML file
CONFIG_PATH_ENV = "JELLYFIN_MCP_CONFIG"

# setting name -> (environment variable, TOML key)
_SOURCES: dict[str, tuple[str, str]] = {
    "base_url": ("JELLYFIN_API_URL", "api_url"),
    "api_key": ("JELLYFIN_API_KEY", "api_key"),
    "user_id": ("JELLYFIN_USER_ID", "user_id"),
    "session_strategy": ("JELLYFIN_SESSION_STRATEGY", "session_strategy"),
    "device_id_hint": ("JELLYFIN_DEVICE_ID_HINT", "device_id_hint"),
    "timeout_ms": ("JELLYFIN_TIMEOUT_MS", "timeout_ms"),
    "max_frame_bytes": ("JELLYFIN_MAX_FRAME_BYTES", "max_frame_bytes"),
}


class ConfigError(Exception):
    """Required configuration is missing or unreadable."""

    pass


@dataclass(frozen=True)
class ServerConfig:
    """Loaded server configuration."""

    base_url: str
    api_key: str
    user_id: str | None = None
    session_strategy: SessionStrategy = SessionStrategy.ACTIVE
    device_id_hint: str | None = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES

    def __repr__(self) -> str:
        # Keep the API key out of logs.
        return (
            f"ServerConfig(base_url={self.base_url!r}, user_id={self.user_id!r}, "
            f"session_strategy={self.session_strategy.value!r}, device_id_hint={self.device_id_hint!r}, "
            f"timeout_ms={self.timeout_ms}, max_frame_bytes={self.max_frame_bytes})"
        )


def _positive_int(name: str, raw: Any, fallback: int) -> int:
    """Parse a positive integer setting; anything else falls back."""
    if raw is None or isinstance(raw, bool):
        return fallback
    try:
        value = int(str(raw).strip())
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %d", name, raw, fallback)
        return fallback
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %d", name, raw, fallback)
        return fallback
    return value


def _load_toml(config_path: Path) -> dict[str, Any]:
    logger.debug("Loading config from %s", config_path)
    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {config_path}") from None
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from None

    section = data.get("jellyfin", {})
    if not isinstance(section, dict):
        raise ConfigError(f"[jellyfin] in {config_path} must be a table")
    return section


def load_config(
    env: Mapping[str, str] | None = None,
    config_path: Path | None = None,
) -> ServerConfig:
    """
    Load configuration.

    Args:
        env: Environment mapping. Defaults to ``os.environ``.
        config_path: Optional TOML file. Defaults to $JELLYFIN_MCP_CONFIG if set.

    Returns:
        Loaded ServerConfig instance.

    Raises:
        ConfigError: If the API URL or key is missing, or the file is unusable.
    """
    if env is None:
        env = os.environ

    if config_path is None and env.get(CONFIG_PATH_ENV):
        config_path = Path(env[CONFIG_PATH_ENV])

    file_values = _load_toml(config_path) if config_path is not None else {}

    values: dict[str, Any] = {}
    for setting, (env_name, toml_key) in _SOURCES.items():
        raw = env.get(env_name)
        if raw is None or raw == "":
            raw = file_values.get(toml_key)
        if raw == "":
            raw = None
        values[setting] = raw

    if not values["base_url"]:
        raise ConfigError("Missing required env var JELLYFIN_API_URL")
    if not values["api_key"]:
        raise ConfigError("Missing required env var JELLYFIN_API_KEY")

    return ServerConfig(
        base_url=str(values["base_url"]),
        api_key=str(values["api_key"]),
        user_id=values["user_id"] and str(values["user_id"]),
        session_strategy=SessionStrategy.parse(values["session_strategy"]),
        device_id_hint=values["device_id_hint"] and str(values["device_id_hint"]),
        timeout_ms=_positive_int("timeout_ms", values["timeout_ms"], DEFAULT_TIMEOUT_MS),
        max_frame_bytes=_positive_int("max_frame_bytes", values["max_frame_bytes"], DEFAULT_MAX_FRAME_BYTES),
    )


__all__ = ["CONFIG_PATH_ENV", "ConfigError", "ServerConfig", "load_config"]
