"""Configuration management for headset-battery."""

import json
import logging
import math
import os
import re
import threading
from pathlib import Path
from typing import FrozenSet, List, Optional

from headset_battery.core.types import DeviceKind
from headset_battery.exceptions import ConfigError

log = logging.getLogger(__name__)

# Default configuration values
DEFAULTS = {
    "kinds": "headset, headphones",  # Device kinds to report on
    "low_percentage": 20,  # Highest percentage still shown as low
    "low_class": "low",  # CSS class for the low tier
    "refresh": "15s",  # Timer refresh in listen mode, "0" disables
    "failure_threshold": 3,  # Failed queries in a row before showing "?"

    "providers": {
        "upower": True,
        "sysfs": False,
    },
}

_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)", re.IGNORECASE)
_DURATION_UNITS = {"ms": 0.001, "s": 1, "m": 60, "h": 3600, "d": 86400}


def get_config_dir() -> Path:
    """Get the configuration directory."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg_config:
        return Path(xdg_config) / "headset-battery"
    return Path.home() / ".config" / "headset-battery"


def get_config_path() -> Path:
    """Get the path to the configuration file."""
    return get_config_dir() / "config.json"


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base, returning new dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(path: Optional[Path] = None) -> dict:
    """Load configuration from file, merging with defaults.

    Nothing is written; a missing file simply means defaults.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        return _deep_merge(DEFAULTS, {})

    try:
        with open(config_path, "r") as f:
            user_config = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        log.warning("Could not load config from %s: %s", config_path, e)
        return _deep_merge(DEFAULTS, {})

    if not isinstance(user_config, dict):
        log.warning("Ignoring %s: top level must be an object", config_path)
        return _deep_merge(DEFAULTS, {})
    return _deep_merge(DEFAULTS, user_config)


def parse_duration(text) -> float:
    """Parse a human-friendly duration into seconds.

    Accepts "500ms", "15s", "1m30s", "2h", or a bare number of seconds.
    """
    if isinstance(text, (int, float)):
        seconds = float(text)
    else:
        value = str(text).strip()
        try:
            seconds = float(value)
        except ValueError:
            pos = 0
            seconds = 0.0
            for match in _DURATION_RE.finditer(value):
                if value[pos:match.start()].strip():
                    break
                seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2).lower()]
                pos = match.end()
            if pos == 0 or value[pos:].strip():
                raise ConfigError(f"invalid duration: {text!r}")
    if not math.isfinite(seconds):
        raise ConfigError(f"duration must be finite: {text!r}")
    if seconds < 0:
        raise ConfigError(f"duration must not be negative: {text!r}")
    if seconds > threading.TIMEOUT_MAX:
        raise ConfigError(f"duration too long: {text!r}")
    return seconds


def parse_kinds(text: str) -> FrozenSet[DeviceKind]:
    """Parse a comma separated list of kebab-case device kinds."""
    kinds = set()
    for term in str(text).split(","):
        if not term.strip():
            continue
        try:
            kinds.add(DeviceKind.from_name(term))
        except KeyError:
            raise ConfigError(f"unknown device kind: {term.strip()!r}") from None
    if not kinds:
        raise ConfigError("at least one device kind is required")
    return frozenset(kinds)


def kind_names() -> str:
    """All kind names, for help output."""
    return ", ".join(kind.kebab_name for kind in DeviceKind)


def failure_threshold(config: dict) -> int:
    """Validated number of failed queries before the degraded record."""
    value = config.get("failure_threshold")
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"failure_threshold must be a non-negative integer, got {value!r}")
    return value


def enabled_providers(config: dict, known) -> List[str]:
    """Names of providers switched on in the config, in config order."""
    providers = config.get("providers")
    if not isinstance(providers, dict):
        raise ConfigError(f"providers must be an object, got {providers!r}")
    unknown = sorted(set(providers) - set(known))
    if unknown:
        raise ConfigError(f"unknown provider(s) in config: {', '.join(unknown)}")
    return [name for name, enabled in providers.items() if enabled]
