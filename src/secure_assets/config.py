"""Resolver configuration from YAML and environment variables.

Loads an optional YAML file with a ``secure_assets:`` section, then applies
environment overrides. Environment variables ARE supported inside the YAML
using ${VAR_NAME} and ${VAR_NAME:-default} syntax.

Priority (highest to lowest):
    1. SECURE_ASSET_* environment variables
    2. YAML configuration file
    3. Dataclass defaults
"""

import logging
import os
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from core.errors.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_HOST_PATTERN = r"^https?://assets\.artflaneur\.com\.au"

# Environment variable -> ResolverConfig field
ENV_OVERRIDES = {
    "SECURE_ASSET_HOST_PATTERN": "protected_host_pattern",
    "SECURE_ASSET_TOKEN_ENDPOINT": "token_endpoint",
    "SECURE_ASSET_GATE_CAPACITY": "gate_capacity",
    "SECURE_ASSET_REFRESH_BUFFER_SECONDS": "refresh_buffer_seconds",
    "SECURE_ASSET_DEFAULT_TOKEN_TTL_SECONDS": "default_token_ttl_seconds",
    "SECURE_ASSET_MAX_RETRIES": "max_retries",
    "SECURE_ASSET_RETRY_BASE_DELAY_MS": "retry_base_delay_ms",
    "SECURE_ASSET_REQUEST_TIMEOUT_SECONDS": "request_timeout_seconds",
    "SECURE_ASSET_BASE_URL": "assets_base_url",
    "SECURE_ASSET_PLACEHOLDER": "placeholder",
    "SECURE_ASSET_HANDLE_DIR": "handle_dir",
}


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass
class ResolverConfig:
    """Secure asset resolver configuration.

    All recognized options in one place; passed to the resolver at
    construction rather than read from the environment inline.
    """

    # Case-insensitive regex over a reference's whole scheme://host origin
    protected_host_pattern: str = DEFAULT_HOST_PATTERN
    token_endpoint: str = ""

    # Admission gate
    gate_capacity: int = 6

    # Credential lifecycle
    refresh_buffer_seconds: float = 30
    default_token_ttl_seconds: float = 240

    # Transient-failure retry policy (total attempts, linear delay)
    max_retries: int = 3
    retry_base_delay_ms: float = 1000

    request_timeout_seconds: float = 30

    # Rewrites the protected scheme+host before fetching (development proxy)
    assets_base_url: Optional[str] = None
    # Returned when resolution fails; None returns the reference unchanged
    placeholder: Optional[str] = None
    # Where handle payloads are written; None uses a private temp directory
    handle_dir: Optional[str] = None

    def __post_init__(self):
        """Ensure proper types from YAML/env vars."""
        try:
            self.gate_capacity = int(self.gate_capacity)
            self.refresh_buffer_seconds = float(self.refresh_buffer_seconds)
            self.default_token_ttl_seconds = float(self.default_token_ttl_seconds)
            self.max_retries = int(self.max_retries)
            self.retry_base_delay_ms = float(self.retry_base_delay_ms)
            self.request_timeout_seconds = float(self.request_timeout_seconds)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric configuration value: {e}") from e

        self.protected_host_pattern = str(self.protected_host_pattern or "")
        self.token_endpoint = str(self.token_endpoint or "")
        self.assets_base_url = _optional_str(self.assets_base_url)
        self.placeholder = _optional_str(self.placeholder)
        self.handle_dir = _optional_str(self.handle_dir)

    @property
    def retry_base_delay_seconds(self) -> float:
        return self.retry_base_delay_ms / 1000.0

    @property
    def host_regex(self) -> re.Pattern:
        return re.compile(self.protected_host_pattern, re.IGNORECASE)

    def validate(self) -> "ResolverConfig":
        """Raise ConfigError describing every invalid option."""
        errors = []

        if self.gate_capacity < 1:
            errors.append(f"gate_capacity must be >= 1, got {self.gate_capacity}")
        if self.refresh_buffer_seconds < 0:
            errors.append("refresh_buffer_seconds must not be negative")
        if self.default_token_ttl_seconds <= 0:
            errors.append("default_token_ttl_seconds must be positive")
        if self.max_retries < 1:
            errors.append(f"max_retries must be >= 1, got {self.max_retries}")
        if self.retry_base_delay_ms < 0:
            errors.append("retry_base_delay_ms must not be negative")
        if self.request_timeout_seconds <= 0:
            errors.append("request_timeout_seconds must be positive")
        if not self.protected_host_pattern:
            errors.append("protected_host_pattern must not be empty")
        else:
            try:
                re.compile(self.protected_host_pattern)
            except re.error as e:
                errors.append(f"protected_host_pattern is not a valid regex: {e}")
        if self.assets_base_url and not self.assets_base_url.startswith(("http://", "https://")):
            errors.append(
                f"assets_base_url must start with http:// or https://, got: {self.assets_base_url!r}"
            )

        if errors:
            raise ConfigError("; ".join(errors))
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResolverConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown secure_assets config keys: {unknown}")
        return cls(**{k: v for k, v in data.items() if k in known})


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
) -> ResolverConfig:
    """Load resolver configuration from YAML (optional) and environment.

    Args:
        config_path: YAML file with a ``secure_assets:`` section
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated ResolverConfig

    Raises:
        ConfigError: If any option is invalid
    """
    environ = os.environ if environ is None else environ

    data: Dict[str, Any] = {}
    if config_path is not None:
        raw = _expand_env_vars(load_yaml(config_path))
        data = dict(raw.get("secure_assets", raw) or {})
        logger.debug(f"Loaded secure_assets config from {config_path}")

    for env_var, field_name in ENV_OVERRIDES.items():
        value = environ.get(env_var)
        if value is not None and value != "":
            data[field_name] = value

    return ResolverConfig.from_dict(data).validate()


__all__ = [
    "ResolverConfig",
    "load_config",
    "load_yaml",
    "DEFAULT_HOST_PATTERN",
    "ENV_OVERRIDES",
]
