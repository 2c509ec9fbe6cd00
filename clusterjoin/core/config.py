"""Join settings and retry policies.

Settings mirror the agent's startup flags: ``retry_join`` feeds the LAN
controller (static addresses and discovery directives), ``retry_join_wan``
feeds the WAN controller (static addresses only). Each side owns its own
interval and attempt ceiling.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from clusterjoin.core.errors import ConfigurationError
from clusterjoin.datastructures.type_aliases import (
    AddressString,
    AttemptCount,
    DurationSeconds,
)

DEFAULT_RETRY_INTERVAL: DurationSeconds = 30.0

_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str | float | int) -> DurationSeconds:
    """Parse a duration into seconds.

    Numbers are taken as seconds. Strings may be plain numbers or Go-style
    durations such as ``"30s"``, ``"1m30s"`` or ``"250ms"``.
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid duration: {value!r}")
    if isinstance(value, int | float):
        seconds = float(value)
    else:
        text = value.strip()
        if not text:
            raise ConfigurationError("Invalid duration: empty string")
        try:
            seconds = float(text)
        except ValueError:
            seconds = _parse_unit_duration(text)
    if not math.isfinite(seconds):
        raise ConfigurationError(f"Duration must be finite: {value!r}")
    if seconds < 0:
        raise ConfigurationError(f"Duration must not be negative: {value!r}")
    return seconds


def _parse_unit_duration(text: str) -> DurationSeconds:
    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    position = 0
    total = 0.0
    while position < len(text):
        match = _DURATION_PART.match(text, position)
        if match is None:
            raise ConfigurationError(f"Invalid duration: {text!r}")
        number, unit = match.groups()
        total += float(number) * _DURATION_UNITS[unit]
        position = match.end()

    if position == 0:
        raise ConfigurationError(f"Invalid duration: {text!r}")
    return sign * total


def format_duration(seconds: DurationSeconds) -> str:
    """Render seconds the way operators write them in config (``30s``, ``250ms``)."""
    if seconds >= 1.0 or seconds == 0:
        return f"{seconds:g}s"
    return f"{seconds * 1000:g}ms"


def normalize_log_level(value: Any) -> str:
    """Return the loguru level name for ``value`` (case-insensitive)."""
    if not isinstance(value, str):
        raise ConfigurationError(f"log_level must be a string, not {value!r}")
    name = value.strip().upper()
    try:
        logger.level(name)
    except ValueError as e:
        raise ConfigurationError(f"Unknown log level: {value!r}") from e
    return name


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Fixed-interval retry policy. ``max_attempts == 0`` retries forever."""

    interval: DurationSeconds = DEFAULT_RETRY_INTERVAL
    max_attempts: AttemptCount = 0

    def __post_init__(self) -> None:
        if not math.isfinite(self.interval):
            raise ConfigurationError(
                f"Retry interval must be finite: {self.interval}"
            )
        if self.interval < 0:
            raise ConfigurationError(
                f"Retry interval must not be negative: {self.interval}"
            )
        if self.max_attempts < 0:
            raise ConfigurationError(
                f"Retry max attempts must not be negative: {self.max_attempts}"
            )

    @property
    def unbounded(self) -> bool:
        return self.max_attempts == 0

    def exhausted(self, attempts: AttemptCount) -> bool:
        """Return True once ``attempts`` failed attempts use up the budget."""
        return not self.unbounded and attempts >= self.max_attempts


@dataclass(slots=True)
class JoinSettings:
    """Startup join configuration for the agent."""

    retry_join: list[AddressString] = field(default_factory=list)
    retry_join_wan: list[AddressString] = field(default_factory=list)
    retry_interval: DurationSeconds = DEFAULT_RETRY_INTERVAL
    retry_interval_wan: DurationSeconds = DEFAULT_RETRY_INTERVAL
    retry_max_attempts: AttemptCount = 0
    retry_max_attempts_wan: AttemptCount = 0
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.log_level = normalize_log_level(self.log_level)
        # Raises ConfigurationError for bad intervals or ceilings
        self.lan_policy()
        self.wan_policy()

    def lan_policy(self) -> RetryPolicy:
        return RetryPolicy(
            interval=self.retry_interval, max_attempts=self.retry_max_attempts
        )

    def wan_policy(self) -> RetryPolicy:
        return RetryPolicy(
            interval=self.retry_interval_wan,
            max_attempts=self.retry_max_attempts_wan,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> JoinSettings:
        """Build settings from a decoded config document."""
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(
                f"Unknown join settings: {', '.join(sorted(unknown))}"
            )

        values: dict[str, Any] = dict(data)
        for key in ("retry_join", "retry_join_wan"):
            if key in values:
                values[key] = _address_list(key, values[key])
        for key in ("retry_interval", "retry_interval_wan"):
            if key in values:
                values[key] = parse_duration(values[key])
        for key in ("retry_max_attempts", "retry_max_attempts_wan"):
            if key in values:
                values[key] = _attempt_count(key, values[key])

        return cls(**values)


def _address_list(key: str, value: Any) -> list[AddressString]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"{key} must be a list of strings")
    return list(value)


def _attempt_count(key: str, value: Any) -> AttemptCount:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{key} must be an integer")
    return value


def load_settings(path: str | Path) -> JoinSettings:
    """Load join settings from a JSON config file."""
    config_path = Path(path)
    try:
        with config_path.open() as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {config_path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must hold an object")
    return JoinSettings.from_mapping(data)
