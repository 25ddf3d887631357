"""Runtime configuration for the Dune Analytics MCP server."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_BASE_URL = "https://api.dune.com/api/v1"
DEFAULT_TIMEOUT = 300.0
DEFAULT_POLL_INTERVAL = 5.0

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class DuneSettings:
    """Connection settings shared by every tool call."""

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    debug: bool = False
    timeout: float = DEFAULT_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL

    @property
    def headers(self) -> dict:
        """Get headers for API requests."""
        return {"X-Dune-API-Key": self.api_key}

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DuneSettings":
        """
        Build settings from environment variables.

        When ``environ`` is omitted, a local ``.env`` file is loaded first and
        ``os.environ`` is read.

        Raises:
            ValueError: if DUNE_API_KEY is missing or empty.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        api_key = environ.get("DUNE_API_KEY")
        if not api_key:
            raise ValueError("DUNE_API_KEY environment variable is required")

        base_url = environ.get("DUNE_BASE_URL") or environ.get("BASE_URL") or DEFAULT_BASE_URL
        debug = environ.get("DUNE_MCP_DEBUG", "").strip().lower() in _TRUTHY

        return cls(api_key=api_key, base_url=base_url.rstrip("/"), debug=debug)
