"""Verify command -- check a login against the configured backend.

Runs one verification with :class:`~almaverify.verifier.AsyncCredentialVerifier`
and prints the result. A rejected password and an inactive account print
the same result and exit with the same code, so the command cannot be
used to learn which accounts exist; ``--verbose`` shows the internal
outcome to the operator on stderr.

Typical use::

    almaverify verify jdoe123                          # prompts for the password
    almaverify --json verify jdoe123 --password-source env:PW
"""

from __future__ import annotations

import asyncio
import signal
from typing import Any, Optional

import typer

from almaverify.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_BACKEND_ERROR,
    EXIT_CANCELLED,
    EXIT_SUCCESS,
)
from almaverify.models import (
    AccountInactive,
    BackendError,
    Cancelled,
    Credentials,
    InvalidCredentials,
    Success,
    VerificationOutcome,
)
from almaverify.output import debug, error, format_response, success, warning


def verify_command(
    username: str = typer.Argument(help="Username, barcode or member number to verify."),
    password_source: str = typer.Option(
        "prompt",
        "--password-source",
        help="Where to read the password: env:VAR, file:/path, or 'prompt'.",
    ),
    api_root: Optional[str] = typer.Option(
        None, "--api-root", help="Backend API root (overrides ALMA_API_ROOT)."
    ),
    api_key_source: Optional[str] = typer.Option(
        None, "--api-key-source", help="Where to read the API key: env:VAR, file:/path, or 'prompt'."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Request timeout in seconds."
    ),
) -> None:
    """Verify a username and password against the backend.

    Exit codes: 0 verified, 3 authentication failed, 5 backend error,
    130 cancelled, 2 configuration error.
    """
    from almaverify.config import load_backend_config, resolve_secret
    from almaverify.exceptions import ConfigError
    from almaverify.verifier import AsyncCredentialVerifier

    try:
        config = load_backend_config(
            api_root=api_root,
            api_key_source=api_key_source,
            timeout=timeout,
        )
        password = resolve_secret(password_source, prompt="Password: ")
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    debug(f"Verifying against {config.api_root} (timeout {config.timeout}s)")
    verifier = AsyncCredentialVerifier(config)
    outcome = asyncio.run(
        _run_cancellable(verifier, Credentials(username=username, password=password))
    )

    code = _report(outcome)
    if code != EXIT_SUCCESS:
        raise typer.Exit(code=code)


async def _run_cancellable(
    verifier: AsyncCredentialVerifier, credentials: Credentials
) -> VerificationOutcome:
    """Run the verification, cancelling it on SIGINT where the loop supports it."""
    task = asyncio.ensure_future(verifier.verify(credentials))
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, task.cancel)
    except (NotImplementedError, RuntimeError):
        pass  # Windows event loops, or not running in the main thread
    return await task


def _report(outcome: VerificationOutcome) -> int:
    """Print *outcome* and return the matching exit code."""
    debug(f"Outcome: {outcome.kind}")

    data: dict[str, Any]
    if isinstance(outcome, Success):
        data = {
            "result": "verified",
            "principal": outcome.principal,
            "display_name": outcome.display_name,
            "user_group": outcome.user_group_label,
        }
        format_response(data)
        success(f"Verified as {outcome.principal}")
        return EXIT_SUCCESS

    if isinstance(outcome, (InvalidCredentials, AccountInactive)):
        format_response({"result": "failed"})
        error("Authentication failed")
        return EXIT_AUTH_FAILURE

    if isinstance(outcome, BackendError):
        format_response({"result": "error", "detail": outcome.detail})
        error(f"Backend error: {outcome.detail}")
        return EXIT_BACKEND_ERROR

    if isinstance(outcome, Cancelled):
        format_response({"result": "cancelled"})
        warning("Verification cancelled")
        return EXIT_CANCELLED

    raise AssertionError(f"Unhandled outcome: {outcome!r}")
