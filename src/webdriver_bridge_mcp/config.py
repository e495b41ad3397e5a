"""
Configuration management for WebDriver Bridge MCP

Loads configuration from environment variables with sensible defaults.
All variables share the WEBDRIVER_BRIDGE_ prefix.
"""

import json
import logging
import os
from pathlib import Path
from collections.abc import Callable
from typing import Any, TypedDict
from urllib.parse import urlsplit

from dotenv import load_dotenv

from .webdriver.capabilities import MergePolicy

logger = logging.getLogger(__name__)

ENV_PREFIX = "WEBDRIVER_BRIDGE_"

# Load environment variables from .env file
# Try multiple paths for .env file
env_loaded = False
for env_path in [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent / ".env",
    Path.home() / ".env",
]:
    if env_path.exists():
        logger.info(f"Loading environment from: {env_path}")
        load_dotenv(env_path)
        env_loaded = True
        break

if not env_loaded:
    logger.warning("No .env file found, using system environment variables only")


class BridgeConfig(TypedDict):
    """Configuration for the bridge and its HTTP client"""

    # Remote end
    remote_url: str
    request_timeout: float
    keep_alive: bool
    ignore_local_proxy: bool

    # Session negotiation
    busy_timeout: float | None
    gecko_compat: bool
    strict_w3c_caps: bool
    merge_policy: MergePolicy
    default_capabilities: dict[str, Any]

    # Logging
    log_file: str
    debug: bool


_DEFAULTS: BridgeConfig = {
    "remote_url": "http://127.0.0.1:4444/wd/hub",
    "request_timeout": 120.0,
    "keep_alive": True,
    "ignore_local_proxy": False,
    "busy_timeout": None,
    "gecko_compat": False,
    "strict_w3c_caps": False,
    "merge_policy": MergePolicy.ALWAYS_MATCH_WINS,
    "default_capabilities": {},
    "log_file": "logs/webdriver-bridge-mcp.log",
    "debug": False,
}


def _get_bool_env(key: str, default: bool) -> bool:
    """Get boolean environment variable"""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _get_float_env(key: str, default: float | None) -> float | None:
    """Get float environment variable (seconds)"""
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        parsed = float(value)
    except ValueError as e:
        raise ValueError(f"{key} must be a number of seconds, got {value!r}") from e
    if parsed <= 0:
        raise ValueError(f"{key} must be positive, got {parsed}")
    return parsed


def _get_merge_policy_env(key: str, default: MergePolicy) -> MergePolicy:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return MergePolicy(value.strip().lower())
    except ValueError as e:
        allowed = ", ".join(p.value for p in MergePolicy)
        raise ValueError(f"{key} must be one of: {allowed}; got {value!r}") from e


def _get_json_object_env(key: str, default: dict[str, Any]) -> dict[str, Any]:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return dict(default)
    try:
        parsed = json.loads(value)
    except ValueError as e:
        raise ValueError(f"{key} is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ValueError(f"{key} must be a JSON object, got {type(parsed).__name__}")
    return parsed


_ENV_PARSERS: dict[str, Callable[[str, Any], Any]] = {
    "bool": _get_bool_env,
    "float": _get_float_env,
    "merge_policy": _get_merge_policy_env,
    "json": _get_json_object_env,
}

# Configuration key mappings for _apply_config_overrides
# Each tuple: (env_suffix, config_key, value_type)
_CONFIG_KEY_MAPPINGS: list[tuple[str, str, str]] = [
    # Remote end
    ("REMOTE_URL", "remote_url", "str"),
    ("REQUEST_TIMEOUT", "request_timeout", "float"),
    ("KEEP_ALIVE", "keep_alive", "bool"),
    ("IGNORE_LOCAL_PROXY", "ignore_local_proxy", "bool"),
    # Session negotiation
    ("BUSY_TIMEOUT", "busy_timeout", "float"),
    ("GECKO_COMPAT", "gecko_compat", "bool"),
    ("STRICT_W3C_CAPS", "strict_w3c_caps", "bool"),
    ("MERGE_POLICY", "merge_policy", "merge_policy"),
    ("DEFAULT_CAPABILITIES", "default_capabilities", "json"),
    # Logging
    ("LOG_FILE", "log_file", "str"),
    ("DEBUG", "debug", "bool"),
]


def _apply_config_overrides(config: BridgeConfig, prefix: str) -> None:
    """
    Apply configuration overrides from environment variables with given prefix.

    Args:
        config: Config dict to update in-place
        prefix: Environment variable prefix (e.g., "WEBDRIVER_BRIDGE_")

    Raises:
        ValueError: If a value cannot be parsed
    """
    for env_suffix, config_key, value_type in _CONFIG_KEY_MAPPINGS:
        env_var = f"{prefix}{env_suffix}"
        if os.getenv(env_var) is None:
            continue

        current = config[config_key]  # type: ignore[literal-required]
        if value_type == "str":
            value: Any = os.getenv(env_var)
        else:
            value = _ENV_PARSERS[value_type](env_var, current)
        config[config_key] = value  # type: ignore[literal-required]


def _validate_remote_url(url: str) -> None:
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ValueError(f"Remote URL must be an http(s) URL with a host, got {url!r}")


def load_bridge_config() -> BridgeConfig:
    """
    Load bridge configuration from environment variables.

    Returns:
        BridgeConfig with all settings

    Raises:
        ValueError: If configuration is invalid
    """
    config: BridgeConfig = {**_DEFAULTS, "default_capabilities": {}}  # type: ignore[typeddict-item]
    _apply_config_overrides(config, ENV_PREFIX)
    _validate_remote_url(config["remote_url"])

    logger.info(
        f"Bridge config: remote_url={config['remote_url']}, "
        f"timeout={config['request_timeout']}s, merge_policy={config['merge_policy'].value}, "
        f"gecko_compat={config['gecko_compat']}"
    )
    return config
