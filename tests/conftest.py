"""Shared test fixtures for almaverify.

Provides a backend configuration, the canonical user record, a
MockTransport-backed fake of the user API, isolated config directories,
and output state management. These fixtures are discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from almaverify.models import BackendConfig, Credentials
from almaverify.output import OutputManager, reset_output, set_output

API_ROOT = "https://api.example.edu/almaws/v1"
API_KEY = "l7xx-test-key"

JANE_DOE: dict[str, Any] = {
    "primary_id": "P100045",
    "first_name": "Jane",
    "last_name": "Doe",
    "user_group": {"value": "STAFF", "desc": "Staff Member"},
    "status": {"value": "ACTIVE"},
}


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    CliRunner swaps sys.stdout/sys.stderr; a manager created during one
    test would otherwise keep writing to closed streams in the next.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, colourless OutputManager for the test."""
    output = OutputManager(no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@pytest.fixture
def backend_config() -> BackendConfig:
    return BackendConfig(api_root=API_ROOT, api_key=API_KEY, timeout=5)


@pytest.fixture
def jdoe() -> Credentials:
    return Credentials(username="jdoe123", password="correct")


@pytest.fixture
def jane_doe() -> dict[str, Any]:
    """A fresh copy of the canonical active user record."""
    return copy.deepcopy(JANE_DOE)


# ---------------------------------------------------------------------------
# Fake backend
# ---------------------------------------------------------------------------


class FakeUserAPI:
    """A scripted stand-in for the remote user API.

    ``auth_status`` (or ``auth_response``) answers ``POST ...?op=auth``;
    ``user`` (or ``fetch_response``) answers ``GET /users/{id}``. Every request is
    recorded in :attr:`requests` for assertions.
    """

    def __init__(
        self,
        user: Optional[dict[str, Any]] = None,
        auth_status: int = 204,
        fetch_response: Optional[Callable[[httpx.Request], httpx.Response]] = None,
        auth_response: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ) -> None:
        self.user = user
        self.auth_status = auth_status
        self.auth_response = auth_response
        self.fetch_response = fetch_response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            if self.auth_response is not None:
                return self.auth_response(request)
            return httpx.Response(self.auth_status)
        if self.fetch_response is not None:
            return self.fetch_response(request)
        if self.user is None:
            return httpx.Response(404, json={"errorList": {"error": [
                {"errorCode": "401861", "errorMessage": "User not found"}
            ]}})
        return httpx.Response(200, json=self.user)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def methods(self) -> list[str]:
        return [r.method for r in self.requests]


@pytest.fixture
def fake_api(jane_doe: dict[str, Any]) -> FakeUserAPI:
    """A fake backend that accepts the password and returns Jane Doe."""
    return FakeUserAPI(user=jane_doe)


@pytest.fixture
def make_api() -> type[FakeUserAPI]:
    """The :class:`FakeUserAPI` class, for tests that script their own backend."""
    return FakeUserAPI


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME and XDG_DATA_HOME into tmp_path, forces the
    XDG layout, and clears every ALMA_* variable so tests never see the
    developer's real settings.
    """
    monkeypatch.setattr("almaverify.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["ALMA_API_ROOT", "ALMA_APIKEY", "ALMA_TIMEOUT"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
