from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigurationError

DEFAULT_SPEC_FILE = "planspec_plan.py"
DEFAULT_CREDENTIALS_FILE = ".credentials"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class Settings:
    """Process settings, read from the environment once per invocation."""
    server: Optional[str] = None
    spec_file: Optional[str] = None
    credentials_file: str = DEFAULT_CREDENTIALS_FILE
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        raw_timeout = env.get("PLANSPEC_TIMEOUT", str(DEFAULT_TIMEOUT))
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ConfigurationError(
                f"PLANSPEC_TIMEOUT must be a number, got {raw_timeout!r}",
                field="PLANSPEC_TIMEOUT",
            ) from None
        if timeout <= 0:
            raise ConfigurationError("PLANSPEC_TIMEOUT must be > 0", field="PLANSPEC_TIMEOUT")
        return cls(
            server=env.get("PLANSPEC_SERVER") or None,
            spec_file=env.get("PLANSPEC_SPEC_FILE") or None,
            credentials_file=env.get("PLANSPEC_CREDENTIALS_FILE", DEFAULT_CREDENTIALS_FILE),
            timeout=timeout,
        )

    def require_server(self) -> str:
        if not self.server:
            raise ConfigurationError(
                "No CI server address configured",
                field="PLANSPEC_SERVER",
            )
        return self.server.rstrip("/")
