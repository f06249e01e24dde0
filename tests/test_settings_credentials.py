from __future__ import annotations

import base64

import pytest

from planspec.credentials import Credentials, load_credentials
from planspec.errors import ConfigurationError
from planspec.settings import DEFAULT_TIMEOUT, Settings


def test_settings_defaults() -> None:
    s = Settings.from_env({})

    assert s.server is None
    assert s.spec_file is None
    assert s.credentials_file == ".credentials"
    assert s.timeout == DEFAULT_TIMEOUT


def test_settings_from_env() -> None:
    s = Settings.from_env({
        "PLANSPEC_SERVER": "http://ci.example.com:8085/",
        "PLANSPEC_SPEC_FILE": "ci_plan.py",
        "PLANSPEC_TIMEOUT": "5",
    })

    assert s.require_server() == "http://ci.example.com:8085"
    assert s.spec_file == "ci_plan.py"
    assert s.timeout == 5.0


@pytest.mark.parametrize("value", ["soon", "0", "-1"])
def test_settings_bad_timeout(value) -> None:
    with pytest.raises(ConfigurationError) as exc:
        Settings.from_env({"PLANSPEC_TIMEOUT": value})
    assert exc.value.field == "PLANSPEC_TIMEOUT"


def test_settings_missing_server() -> None:
    with pytest.raises(ConfigurationError) as exc:
        Settings.from_env({}).require_server()
    assert exc.value.field == "PLANSPEC_SERVER"


def test_credentials_from_file(tmp_path) -> None:
    path = tmp_path / ".credentials"
    path.write_text("# server account\nusername = ci-bot\npassword: s3cret\n")

    creds = load_credentials(path, environ={})

    assert creds == Credentials("ci-bot", "s3cret")
    assert "s3cret" not in repr(creds)


def test_environment_wins_over_file(tmp_path) -> None:
    path = tmp_path / ".credentials"
    path.write_text("username=file-user\npassword=file-pass\n")

    creds = load_credentials(path, environ={"PLANSPEC_USERNAME": "env-user", "PLANSPEC_PASSWORD": "env-pass"})

    assert creds.username == "env-user"


def test_missing_credentials(tmp_path) -> None:
    with pytest.raises(ConfigurationError) as exc:
        load_credentials(tmp_path / "nope", environ={})
    assert exc.value.field == "credentials"


def test_incomplete_credentials_file(tmp_path) -> None:
    path = tmp_path / ".credentials"
    path.write_text("username=ci-bot\n")

    with pytest.raises(ConfigurationError):
        load_credentials(path, environ={})


def test_basic_auth_header() -> None:
    header = Credentials("ci-bot", "s3cret").authorization_header()
    assert header == "Basic " + base64.b64encode(b"ci-bot:s3cret").decode("ascii")
