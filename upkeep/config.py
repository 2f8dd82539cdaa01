"""Runtime configuration for Upkeep."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_COMMAND_TIMEOUT = 30.0
DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"


@dataclass
class Settings:
    """Process-wide settings, read once at startup."""

    log_level: str = "warning"
    log_json: bool = False
    debug: bool = False
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT  # seconds
    registry_url: str = DEFAULT_REGISTRY_URL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Priority for the log level: UPKEEP_LOG_LEVEL > LOG_LEVEL > DEBUG (debug)
        > default (warning).
        """
        env = os.environ if environ is None else environ

        debug = bool(env.get("DEBUG"))
        log_level = env.get("UPKEEP_LOG_LEVEL") or env.get("LOG_LEVEL")
        if not log_level:
            log_level = "debug" if debug else "warning"

        timeout = DEFAULT_COMMAND_TIMEOUT
        raw_timeout = env.get("UPKEEP_COMMAND_TIMEOUT")
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                timeout = DEFAULT_COMMAND_TIMEOUT

        return cls(
            log_level=log_level.lower(),
            log_json=env.get("UPKEEP_LOG_JSON", "0") == "1",
            debug=debug,
            command_timeout=timeout,
            registry_url=env.get("UPKEEP_REGISTRY_URL", DEFAULT_REGISTRY_URL).rstrip("/"),
        )
