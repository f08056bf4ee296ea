"""Bridge settings resolved from ``GHOSTLINK_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

ENV_PREFIX = "GHOSTLINK_"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_STATUS_PORT = 4001
DEFAULT_WEBSOCKET_PORT = 0
# Some hosts emit an empty-document change right before the close event;
# holding local changes back this long lets the close win that race.
DEFAULT_SETTLE_DELAY_MS = 50
DEFAULT_SCRATCH_SUFFIX = ".txt"


def _env_int(environ: Mapping[str, str], key: str, fallback: int) -> int:
    value = environ.get(f"{ENV_PREFIX}{key}")
    if value is None:
        return fallback
    try:
        return int(value)
    except ValueError:
        return fallback


@dataclass(frozen=True)
class BridgeConfig:
    host: str = DEFAULT_HOST
    status_port: int = DEFAULT_STATUS_PORT
    websocket_port: int = DEFAULT_WEBSOCKET_PORT
    settle_delay_ms: int = DEFAULT_SETTLE_DELAY_MS
    scratch_suffix: str = DEFAULT_SCRATCH_SUFFIX

    def __post_init__(self) -> None:
        if self.settle_delay_ms < 0:
            raise ValueError("settle_delay_ms must not be negative")
        for name in ("status_port", "websocket_port"):
            port = getattr(self, name)
            if not 0 <= port <= 65535:
                raise ValueError(f"{name} out of range: {port}")

    @property
    def settle_delay(self) -> float:
        """Settling delay in seconds."""

        return self.settle_delay_ms / 1000.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BridgeConfig":
        env = os.environ if environ is None else environ
        return cls(
            host=env.get(f"{ENV_PREFIX}HOST", DEFAULT_HOST),
            status_port=_env_int(env, "STATUS_PORT", DEFAULT_STATUS_PORT),
            websocket_port=_env_int(env, "WEBSOCKET_PORT", DEFAULT_WEBSOCKET_PORT),
            settle_delay_ms=_env_int(env, "SETTLE_DELAY_MS", DEFAULT_SETTLE_DELAY_MS),
            scratch_suffix=env.get(f"{ENV_PREFIX}SCRATCH_SUFFIX", DEFAULT_SCRATCH_SUFFIX),
        )

    def with_overrides(self, **overrides: Any) -> "BridgeConfig":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


__all__ = ["BridgeConfig", "ENV_PREFIX"]
