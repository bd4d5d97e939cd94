"""almaverify -- verify library-system credentials against a remote REST API.

This package checks a username/password pair against an Alma-style user
API, fetches the matching user record, gates on the account's active
status, and returns a classified :mod:`~almaverify.models` outcome that a
host identity provider can map onto its own principal model.

Typical embedding::

    from almaverify import CredentialVerifier, Credentials
    from almaverify.config import load_backend_config

    verifier = CredentialVerifier(load_backend_config())
    outcome = verifier.verify(Credentials(username="jdoe123", password="..."))
    if outcome.is_success:
        principal = outcome.principal

Modules:
    verifier: Orchestration of the two backend calls into an outcome.
    requests: Pure builders for the auth and fetch requests.
    client: Blocking and asyncio HTTP executors over httpx.
    mapper: JSON body to :class:`~almaverify.models.RemoteUser` parsing.
    models: Pydantic models shared across the package.
    config: Backend configuration loading and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer application and CLI entry point.
"""

__version__ = "0.1.0"

from almaverify.models import (  # noqa: E402
    AccountInactive,
    BackendConfig,
    BackendError,
    Cancelled,
    Credentials,
    InvalidCredentials,
    Success,
    VerificationOutcome,
)
from almaverify.verifier import AsyncCredentialVerifier, CredentialVerifier  # noqa: E402

__all__ = [
    "AccountInactive",
    "AsyncCredentialVerifier",
    "BackendConfig",
    "BackendError",
    "Cancelled",
    "CredentialVerifier",
    "Credentials",
    "InvalidCredentials",
    "Success",
    "VerificationOutcome",
]
