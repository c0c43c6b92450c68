"""
Leo Link Configuration
======================
Endpoint, reconnect and browser settings for the agent and the relay server.

Defaults match the fixed values the extension always used. Every field can be
overridden from the environment (LEO_LINK_*, LEO_CDP_*) or from the CLI.
"""

import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Mapping
from dataclasses import dataclass, field
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

# Defaults
DEFAULT_SERVER_URL = "ws://127.0.0.1:2345"
DEFAULT_INITIAL_DELAY = 1.0   # seconds
DEFAULT_MAX_DELAY = 30.0      # seconds
DEFAULT_BACKOFF_FACTOR = 1.5
DEFAULT_CDP_HOST = "localhost"
DEFAULT_CDP_PORT = 9222
DEFAULT_HIGHLIGHT_MS = 2000
DEFAULT_MOMENTS_DIR = Path.home() / ".leo" / "moments"
LOG_DIR = Path.home() / ".leo" / "logs"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


@dataclass
class LinkConfig:
    """Configuration shared by the agent and the relay server."""
    server_url: str = DEFAULT_SERVER_URL
    initial_delay: float = DEFAULT_INITIAL_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
    cdp_host: str = DEFAULT_CDP_HOST
    cdp_port: int = DEFAULT_CDP_PORT
    highlight_ms: int = DEFAULT_HIGHLIGHT_MS
    serialize_commands: bool = False  # True = one command executes at a time
    moments_dir: Path = field(default_factory=lambda: DEFAULT_MOMENTS_DIR)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "LinkConfig":
        """Build a config from environment variables, falling back to defaults."""
        env = os.environ if env is None else env
        moments = env.get("LEO_MOMENTS_DIR", "").strip()
        return cls(
            server_url=env.get("LEO_LINK_URL", "").strip() or DEFAULT_SERVER_URL,
            initial_delay=_env_float(env, "LEO_LINK_INITIAL_DELAY", DEFAULT_INITIAL_DELAY),
            max_delay=_env_float(env, "LEO_LINK_MAX_DELAY", DEFAULT_MAX_DELAY),
            backoff_factor=_env_float(env, "LEO_LINK_BACKOFF_FACTOR", DEFAULT_BACKOFF_FACTOR),
            cdp_host=env.get("LEO_CDP_HOST", "").strip() or DEFAULT_CDP_HOST,
            cdp_port=_env_int(env, "LEO_CDP_PORT", DEFAULT_CDP_PORT),
            highlight_ms=_env_int(env, "LEO_LINK_HIGHLIGHT_MS", DEFAULT_HIGHLIGHT_MS),
            serialize_commands=env.get("LEO_LINK_SERIALIZE", "").strip().lower() in _TRUE_VALUES,
            moments_dir=Path(moments).expanduser() if moments else DEFAULT_MOMENTS_DIR,
        )

    @property
    def server_host(self) -> str:
        return urlparse(self.server_url).hostname or "127.0.0.1"

    @property
    def server_port(self) -> int:
        return urlparse(self.server_url).port or 2345

    def to_dict(self) -> Dict[str, Any]:
        return {
            "serverUrl": self.server_url,
            "initialDelay": self.initial_delay,
            "maxDelay": self.max_delay,
            "backoffFactor": self.backoff_factor,
            "cdpHost": self.cdp_host,
            "cdpPort": self.cdp_port,
            "highlightMs": self.highlight_ms,
            "serializeCommands": self.serialize_commands,
            "momentsDir": str(self.moments_dir),
        }
