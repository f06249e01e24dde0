# credentials.py
# Credentials are resolved outside the plan definition: from the environment,
# or from a properties file (username=..., password=...) kept out of VCS.

from __future__ import annotations

import base64
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping

from .errors import ConfigurationError

USERNAME_ENV = "PLANSPEC_USERNAME"
PASSWORD_ENV = "PLANSPEC_PASSWORD"


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)

    def authorization_header(self) -> str:
        token = base64.b64encode(f"{self.username}:{self.password}".encode("utf-8"))
        return "Basic " + token.decode("ascii")


def _read_properties(path: Path) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith(("#", "!")):
            continue
        sep = min((i for i in (line.find("="), line.find(":")) if i >= 0), default=-1)
        if sep < 0:
            continue
        values[line[:sep].strip()] = line[sep + 1:].strip()
    return values


def load_credentials(
    path: str | Path = ".credentials",
    environ: Mapping[str, str] | None = None,
) -> Credentials:
    """
    Resolve credentials for the CI server.

    PLANSPEC_USERNAME / PLANSPEC_PASSWORD win over the file.

    Raises:
        ConfigurationError: if neither source provides both values
    """
    env = os.environ if environ is None else environ
    username = env.get(USERNAME_ENV)
    password = env.get(PASSWORD_ENV)
    if username and password:
        return Credentials(username=username, password=password)

    cred_path = Path(path).expanduser()
    if not cred_path.is_file():
        raise ConfigurationError(
            f"No credentials: set {USERNAME_ENV}/{PASSWORD_ENV} or create {cred_path}",
            field="credentials",
        )

    props = _read_properties(cred_path)
    username = username or props.get("username")
    password = password or props.get("password")
    if not username or not password:
        raise ConfigurationError(
            f"Credentials file {cred_path} must define username and password",
            field="credentials",
        )
    return Credentials(username=username, password=password)
