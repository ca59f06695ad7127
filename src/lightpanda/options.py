"""Driver configuration.

Timeouts default from the environment so test suites and CI can stretch them
without code changes:

    LIGHTPANDA_DEFAULT_TIMEOUT   per-command and handshake timeout (seconds)
    LIGHTPANDA_PROCESS_TIMEOUT   engine startup timeout (seconds)
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from typing import Any

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9222
DEFAULT_TIMEOUT = 5.0
DEFAULT_PROCESS_TIMEOUT = 10.0


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, ignoring unparsable values."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Options:
    """Settings shared by the process supervisor, transport and client."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = field(
        default_factory=lambda: _env_float("LIGHTPANDA_DEFAULT_TIMEOUT", DEFAULT_TIMEOUT)
    )
    process_timeout: float = field(
        default_factory=lambda: _env_float("LIGHTPANDA_PROCESS_TIMEOUT", DEFAULT_PROCESS_TIMEOUT)
    )
    browser_path: str | None = None
    ws_url: str | None = None  # Attach to a running engine instead of spawning one

    # Listener may not accept yet right after the engine reports ready
    connect_retries: int = 10
    connect_retry_delay: float = 0.1

    # Grace period between SIGTERM and SIGKILL
    kill_timeout: float = 5.0

    # Passed to the engine as --log_level
    log_level: str = "info"

    @property
    def endpoint(self) -> str:
        """WebSocket URL to connect to."""
        return self.ws_url or f"ws://{self.host}:{self.port}/"

    @property
    def has_ws_url(self) -> bool:
        """True when an explicit endpoint bypasses process supervision."""
        return self.ws_url is not None

    def replace(self, **changes: Any) -> Options:
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["endpoint"] = self.endpoint
        return data
