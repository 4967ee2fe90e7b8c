"""Runtime settings for attachment runs."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

DEFAULT_POLL_INTERVAL = 1.0  # seconds between readiness checks

ENV_POLL_INTERVAL = "PROJECTATTACH_POLL_INTERVAL"
ENV_READY_TIMEOUT = "PROJECTATTACH_READY_TIMEOUT"

_UNBOUNDED_VALUES = {"", "none", "off", "0"}


class ConfigError(Exception):
    """Raised when configuration is invalid."""


@dataclass(frozen=True)
class AttachSettings:
    """Settings for an attachment run.

    Attributes:
        poll_interval: Seconds to wait between configuration readiness checks.
        ready_timeout: Seconds to wait for readiness before giving up.
            None waits indefinitely.
    """

    poll_interval: float = DEFAULT_POLL_INTERVAL
    ready_timeout: float | None = None

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.ready_timeout is not None and self.ready_timeout <= 0:
            raise ConfigError(f"ready_timeout must be positive, got {self.ready_timeout}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AttachSettings:
        """Create settings from a dictionary.

        Args:
            data: Mapping with optional 'poll_interval' and 'ready_timeout' keys.

        Returns:
            Parsed settings.

        Raises:
            ConfigError: If a value is not a number or out of range.
        """
        unknown = set(data) - {"poll_interval", "ready_timeout"}
        if unknown:
            raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")

        poll_interval = _to_seconds("poll_interval", data.get("poll_interval"))
        ready_timeout = _to_seconds("ready_timeout", data.get("ready_timeout"))
        return cls(
            poll_interval=DEFAULT_POLL_INTERVAL if poll_interval is None else poll_interval,
            ready_timeout=ready_timeout,
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AttachSettings:
        """Create settings from PROJECTATTACH_* environment variables.

        An empty or 'none' readiness timeout means wait indefinitely.
        """
        env = os.environ if environ is None else environ

        data: dict[str, Any] = {}
        if ENV_POLL_INTERVAL in env:
            data["poll_interval"] = env[ENV_POLL_INTERVAL]

        raw_timeout = env.get(ENV_READY_TIMEOUT)
        if raw_timeout is not None and raw_timeout.strip().lower() not in _UNBOUNDED_VALUES:
            data["ready_timeout"] = raw_timeout

        return cls.from_dict(data)


def _to_seconds(name: str, value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number of seconds, got {value!r}") from e
