"""
Config loading for feecheck.

Sources (in precedence order, highest first):
  1. Environment variables (FEECHECK_*, plus BAGS_API_KEY)
  2. ~/.feecheck/config.toml
  3. Built-in defaults

Usage:
    from feecheck.config import load_config
    config = load_config()
    print(config.api.bags_api_key)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import toml

from feecheck.exceptions import ConfigInvalidError

# Default config directory and file
DEFAULT_CONFIG_DIR = Path.home() / ".feecheck"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"

DEFAULT_BASE_URL = "https://public-api-v2.bags.fm/api/v1"

# Environment variable → config key mapping
# Format: (env_var_name, dotted_config_path, type_converter)
_ENV_OVERRIDES: list[tuple[str, str, type]] = [
    ("BAGS_API_KEY", "api.bags_api_key", str),
    ("FEECHECK_BAGS_API_KEY", "api.bags_api_key", str),
    ("FEECHECK_BASE_URL", "api.base_url", str),
    ("FEECHECK_TIMEOUT_SECONDS", "api.timeout_seconds", float),
    ("FEECHECK_RECENT_EVENTS_LIMIT", "api.recent_events_limit", int),
    ("FEECHECK_RATE_LIMIT_MAX_REQUESTS", "rate_limit.max_requests", int),
    ("FEECHECK_RATE_LIMIT_WINDOW_SECONDS", "rate_limit.window_seconds", int),
    ("FEECHECK_OUTPUT_FORMAT", "output.default_format", str),
    ("FEECHECK_LOG_LEVEL", "logging.level", str),
    ("FEECHECK_LOG_FORMAT", "logging.format", str),
]

VALID_FORMATS = {"json", "table", "csv"}
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
VALID_LOG_FORMATS = {"text", "json"}


@dataclass
class APIConfig:
    """Bags API access."""

    bags_api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = 30.0
    recent_events_limit: int = 100


@dataclass
class RateLimitConfig:
    """Per-client request budget for `feecheck check`."""

    max_requests: int = 10
    window_seconds: int = 60


@dataclass
class OutputConfig:
    """Output formatting defaults."""

    default_format: str = "json"        # json | table | csv
    color: bool = True


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    format: str = "text"                # text | json


@dataclass
class FeecheckConfig:
    """Full configuration object. Passed via Click context to all commands."""

    api: APIConfig = field(default_factory=APIConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | None = None) -> FeecheckConfig:
    """
    Load configuration from TOML file + environment variable overrides.

    Args:
        path: Override config file path. If None, uses FEECHECK_CONFIG_PATH
              env var or default (~/.feecheck/config.toml).

    Returns:
        FeecheckConfig with all values resolved. A missing file is not an
        error; defaults apply.

    Raises:
        ConfigInvalidError: Config file exists but is invalid TOML or values.
    """
    config_path = _resolve_config_path(path)

    raw: dict = {}
    if config_path.exists():
        try:
            raw = toml.load(str(config_path))
        except toml.TomlDecodeError as e:
            raise ConfigInvalidError(f"Invalid TOML in {config_path}: {e}") from e

    config = _dict_to_config(raw)
    _apply_env_overrides(config)
    validate_config(config)

    return config


def save_config(config: FeecheckConfig, path: str | None = None) -> Path:
    """
    Serialize FeecheckConfig to TOML and write to disk.

    Returns the path where config was written.
    """
    config_path = _resolve_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "api": {
            "bags_api_key": config.api.bags_api_key,
            "base_url": config.api.base_url,
            "timeout_seconds": config.api.timeout_seconds,
            "recent_events_limit": config.api.recent_events_limit,
        },
        "rate_limit": {
            "max_requests": config.rate_limit.max_requests,
            "window_seconds": config.rate_limit.window_seconds,
        },
        "output": {
            "default_format": config.output.default_format,
            "color": config.output.color,
        },
        "logging": {
            "level": config.logging.level,
            "format": config.logging.format,
        },
    }

    with open(config_path, "w") as f:
        toml.dump(data, f)

    return config_path


def get_default_config_path() -> Path:
    """Return the config file path in effect when --config is not given."""
    return _resolve_config_path(None)


# ──────────────────────────────────────────────────────────────
# Private helpers
# ──────────────────────────────────────────────────────────────


def _resolve_config_path(path: str | None) -> Path:
    if path:
        return Path(path).expanduser()
    env_path = os.environ.get("FEECHECK_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def _dict_to_config(raw: dict) -> FeecheckConfig:
    """Build FeecheckConfig from raw TOML dict, applying defaults for missing keys."""
    config = FeecheckConfig()

    try:
        api = raw.get("api", {})
        config.api.bags_api_key = api.get("bags_api_key", "")
        config.api.base_url = api.get("base_url", DEFAULT_BASE_URL)
        config.api.timeout_seconds = float(api.get("timeout_seconds", 30.0))
        config.api.recent_events_limit = int(api.get("recent_events_limit", 100))

        rate_limit = raw.get("rate_limit", {})
        config.rate_limit.max_requests = int(rate_limit.get("max_requests", 10))
        config.rate_limit.window_seconds = int(rate_limit.get("window_seconds", 60))

        output = raw.get("output", {})
        config.output.default_format = output.get("default_format", "json")
        config.output.color = bool(output.get("color", True))

        logging_ = raw.get("logging", {})
        config.logging.level = str(logging_.get("level", "WARNING")).upper()
        config.logging.format = logging_.get("format", "text")
    except (ValueError, TypeError) as e:
        raise ConfigInvalidError(f"Invalid config value: {e}") from e

    return config


def _apply_env_overrides(config: FeecheckConfig) -> None:
    """Apply environment variable overrides to a loaded config."""
    if os.environ.get("FEECHECK_NO_COLOR"):
        config.output.color = False

    for env_var, dotted_key, converter in _ENV_OVERRIDES:
        val = os.environ.get(env_var)
        if val is None:
            continue
        section, key = dotted_key.split(".", 1)
        section_obj = getattr(config, section)
        try:
            setattr(section_obj, key, converter(val))
        except (ValueError, TypeError) as e:
            raise ConfigInvalidError(
                f"Invalid value for {env_var}={val!r}: {e}"
            ) from e

    config.logging.level = config.logging.level.upper()


def validate_config(config: FeecheckConfig) -> None:
    """Validate config values. Raises ConfigInvalidError on invalid values."""
    if config.api.timeout_seconds <= 0:
        raise ConfigInvalidError(
            f"api.timeout_seconds must be positive, got {config.api.timeout_seconds}"
        )
    if config.api.recent_events_limit <= 0:
        raise ConfigInvalidError(
            f"api.recent_events_limit must be positive, got {config.api.recent_events_limit}"
        )
    if config.rate_limit.max_requests <= 0 or config.rate_limit.window_seconds <= 0:
        raise ConfigInvalidError(
            "rate_limit.max_requests and rate_limit.window_seconds must be positive"
        )
    if config.output.default_format not in VALID_FORMATS:
        raise ConfigInvalidError(
            f"output.default_format must be one of {VALID_FORMATS}, "
            f"got {config.output.default_format!r}"
        )
    if config.logging.level not in VALID_LOG_LEVELS:
        raise ConfigInvalidError(
            f"logging.level must be one of {VALID_LOG_LEVELS}, got {config.logging.level!r}"
        )
    if config.logging.format not in VALID_LOG_FORMATS:
        raise ConfigInvalidError(
            f"logging.format must be one of {VALID_LOG_FORMATS}, got {config.logging.format!r}"
        )
