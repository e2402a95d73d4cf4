"""
Run configuration and user configuration file support.

``SpeedTestConfig`` is the immutable input of one run.  Defaults for the CLI
can be stored in ``~/.cfspeedtest/config.json``.

Supported keys::

    nr_tests = 10                           # repetitions per payload tier
    nr_latency_tests = 25
    max_payload_size = "25m"                # 100k, 1m, 10m, 25m or 100m
    disable_dynamic_max_payload_size = false
    output = "rich"                         # rich, simple, json, json-pretty, csv
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Tuple

from .constants import (
    DEFAULT_LATENCY_REPETITIONS,
    DEFAULT_MAX_PAYLOAD,
    DEFAULT_REPETITIONS,
    MAX_REPETITIONS,
    MIN_LATENCY_REPETITIONS,
    MIN_PERCENTILE_REPETITIONS,
    MIN_REPETITIONS,
)
from .errors import InvalidConfiguration
from .measurements import Direction
from .tiers import M25, PAYLOAD_TIERS, PayloadTier


# ---------------------------------------------------------------------------
# Run configuration
# ---------------------------------------------------------------------------

def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class DirectionFilter(Enum):
    BOTH = "both"
    DOWNLOAD_ONLY = "download-only"
    UPLOAD_ONLY = "upload-only"

    def directions(self) -> Tuple[Direction, ...]:
        if self is DirectionFilter.DOWNLOAD_ONLY:
            return (Direction.DOWNLOAD,)
        if self is DirectionFilter.UPLOAD_ONLY:
            return (Direction.UPLOAD,)
        return (Direction.DOWNLOAD, Direction.UPLOAD)


@dataclass(frozen=True)
class SpeedTestConfig:
    repetitions: int = DEFAULT_REPETITIONS
    latency_repetitions: int = DEFAULT_LATENCY_REPETITIONS
    max_tier: PayloadTier = field(default=M25)
    dynamic_escalation_enabled: bool = True
    direction_filter: DirectionFilter = DirectionFilter.BOTH

    def validate(self) -> None:
        """Raise ``InvalidConfiguration`` if any field is out of range."""
        for name in ("repetitions", "latency_repetitions"):
            value = getattr(self, name)
            if not _is_int(value):
                raise InvalidConfiguration(f"{name} must be an integer, got {value!r}")
        if not isinstance(self.dynamic_escalation_enabled, bool):
            raise InvalidConfiguration(
                f"dynamic_escalation_enabled must be a boolean, got {self.dynamic_escalation_enabled!r}"
            )
        if not MIN_REPETITIONS <= self.repetitions <= MAX_REPETITIONS:
            raise InvalidConfiguration(
                f"Repetitions must be between {MIN_REPETITIONS} and {MAX_REPETITIONS}"
            )
        if self.repetitions < MIN_PERCENTILE_REPETITIONS:
            raise InvalidConfiguration(
                f"At least {MIN_PERCENTILE_REPETITIONS} repetitions per payload size "
                f"are needed for percentile statistics, got {self.repetitions}"
            )
        if self.latency_repetitions < MIN_LATENCY_REPETITIONS:
            raise InvalidConfiguration(
                f"Latency repetitions must be at least {MIN_LATENCY_REPETITIONS}"
            )
        if self.max_tier not in PAYLOAD_TIERS:
            raise InvalidConfiguration(f"Unknown payload tier: {self.max_tier!r}")


# ---------------------------------------------------------------------------
# User configuration file
# ---------------------------------------------------------------------------

_CONFIG_DIR = os.path.join(Path.home(), ".cfspeedtest")
_CONFIG_FILE = "config.json"


def _config_path() -> str:
    return os.path.join(_CONFIG_DIR, _CONFIG_FILE)


DEFAULTS: Dict[str, Any] = {
    "nr_tests": DEFAULT_REPETITIONS,
    "nr_latency_tests": DEFAULT_LATENCY_REPETITIONS,
    "max_payload_size": DEFAULT_MAX_PAYLOAD,
    "disable_dynamic_max_payload_size": False,
    "output": "rich",
}


def load_config() -> Dict[str, Any]:
    """Load config from disk, returning defaults for missing keys."""
    path = _config_path()
    config = dict(DEFAULTS)

    if not os.path.isfile(path):
        return config

    try:
        with open(path, encoding="utf-8") as fh:
            user = json.load(fh)
        if isinstance(user, dict):
            config.update(user)
    except (json.JSONDecodeError, OSError):
        pass  # corrupt file; use defaults

    return config


def save_config(config: Dict[str, Any]) -> str:
    """Write *config* to disk.  Returns the file path."""
    path = _config_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as fh:
        json.dump(config, fh, indent=2, ensure_ascii=False)

    return path


def check_config_types(config: Dict[str, Any]) -> None:
    """Raise ``InvalidConfiguration`` for file values of the wrong JSON type."""
    for key, value in config.items():
        if key not in DEFAULTS:
            continue
        expected = type(DEFAULTS[key])
        ok = _is_int(value) if expected is int else isinstance(value, expected)
        if not ok:
            raise InvalidConfiguration(
                f"{key} in {_config_path()} must be {expected.__name__}, got {value!r}"
            )


def config_path() -> str:
    """Return the config file path (for display purposes)."""
    return _config_path()
