"""Credential verification against the remote user API.

:class:`CredentialVerifier` (blocking) and :class:`AsyncCredentialVerifier`
(asyncio) run the same single-shot sequence for one pair of credentials:

1. **Authenticate** -- ``POST /users/{id}?op=auth``. A 400, 401, 403 or
   404 answer means the backend rejected the password or does not know
   the user: :class:`~almaverify.models.InvalidCredentials`. Any other
   failure is a :class:`~almaverify.models.BackendError`.
2. **Fetch** -- ``GET /users/{id}``. Only the fetched record can say who
   the user really is and whether the account may log in, so this call
   is never skipped. Transport or parse failures here are a
   :class:`~almaverify.models.BackendError`, not a credential failure.
3. **Gate** -- a record whose status is not ``ACTIVE`` yields
   :class:`~almaverify.models.AccountInactive`.
4. **Normalise** -- otherwise :class:`~almaverify.models.Success` with the
   backend's primary id, ``"first last"`` and ``"group / description"``.

Neither verifier raises across its public methods. Transport and parse
errors are logged and folded into outcomes; the only hard failure is
:class:`~almaverify.exceptions.ConfigError`, raised while building the
:class:`~almaverify.models.BackendConfig` before any call is attempted.

Both verifiers hold nothing but the immutable configuration, and every
call opens its own HTTP client, so one instance can serve concurrent
verifications.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Mapping
from typing import Any, Optional, Union

import httpx
from pydantic import ValidationError

from almaverify.client import AsyncExecutor, SyncExecutor, read_json
from almaverify.exceptions import BackendStatusError, ConfigError, ParseError, TransportError
from almaverify.mapper import parse_user
from almaverify.models import (
    AccountInactive,
    BackendConfig,
    BackendError,
    Cancelled,
    Credentials,
    InvalidCredentials,
    RemoteUser,
    Success,
    UserStatus,
    VerificationOutcome,
)
from almaverify.requests import build_auth_request, build_fetch_request

logger = logging.getLogger(__name__)

REJECTED_CREDENTIAL_STATUSES = frozenset({400, 401, 403, 404})
"""Auth-call statuses that mean "wrong password or unknown user"."""


class CredentialVerifier:
    """Verify credentials with blocking HTTP calls.

    Args:
        config: Backend settings. Loaded once at start-up and shared.
        transport: Optional httpx transport, mostly for tests.

    Raises:
        ConfigError: If *config* is neither a :class:`BackendConfig` nor a
            mapping that validates as one.

    Example::

        verifier = CredentialVerifier(config)
        outcome = verifier.verify(Credentials(username="jdoe123", password="s3cret"))
    """

    def __init__(
        self,
        config: Union[BackendConfig, Mapping[str, Any]],
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = _require_config(config)
        self._transport = transport

    @property
    def config(self) -> BackendConfig:
        return self._config

    def verify(
        self,
        credentials: Credentials,
        cancel_event: Optional[threading.Event] = None,
    ) -> VerificationOutcome:
        """Run the authenticate-then-fetch sequence for *credentials*.

        Args:
            credentials: The submitted username and password.
            cancel_event: Optional event checked before each backend call.
                Once set, no further call is made and the outcome is
                :class:`~almaverify.models.Cancelled`.

        Returns:
            The classified outcome. Never raises.
        """
        username = credentials.username
        logger.debug("Attempting to authenticate user %s", username)

        if _missing_input(credentials):
            return InvalidCredentials()
        if _is_set(cancel_event):
            return _cancelled(username)

        with SyncExecutor(self._config, transport=self._transport) as executor:
            try:
                executor.execute(build_auth_request(credentials, self._config))
            except TransportError as exc:
                return _auth_failure(username, exc)

            if _is_set(cancel_event):
                return _cancelled(username)

            try:
                response = executor.execute(build_fetch_request(credentials, self._config))
                user = parse_user(read_json(response))
            except (TransportError, ParseError) as exc:
                return _fetch_failure(username, exc)

        return _classify(username, user)


class AsyncCredentialVerifier:
    """Verify credentials with non-blocking HTTP calls.

    Mirrors :class:`CredentialVerifier`. Cancelling the task that awaits
    :meth:`verify` aborts the in-flight request and makes :meth:`verify`
    return :class:`~almaverify.models.Cancelled` instead of propagating
    :class:`asyncio.CancelledError`.

    Args:
        config: Backend settings. Loaded once at start-up and shared.
        transport: Optional async httpx transport, mostly for tests.
    """

    def __init__(
        self,
        config: Union[BackendConfig, Mapping[str, Any]],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = _require_config(config)
        self._transport = transport

    @property
    def config(self) -> BackendConfig:
        return self._config

    async def verify(self, credentials: Credentials) -> VerificationOutcome:
        """Run the authenticate-then-fetch sequence for *credentials*.

        Returns:
            The classified outcome. Never raises.
        """
        username = credentials.username
        logger.debug("Attempting to authenticate user %s", username)

        if _missing_input(credentials):
            return InvalidCredentials()

        try:
            async with AsyncExecutor(self._config, transport=self._transport) as executor:
                try:
                    await executor.execute(build_auth_request(credentials, self._config))
                except TransportError as exc:
                    return _auth_failure(username, exc)

                try:
                    response = await executor.execute(build_fetch_request(credentials, self._config))
                    user = parse_user(read_json(response))
                except (TransportError, ParseError) as exc:
                    return _fetch_failure(username, exc)
        except asyncio.CancelledError:
            return _cancelled(username)

        return _classify(username, user)


# ------------------------------------------------------------------ #
# Outcome classification shared by both verifiers
# ------------------------------------------------------------------ #


def _require_config(config: Union[BackendConfig, Mapping[str, Any]]) -> BackendConfig:
    if isinstance(config, BackendConfig):
        return config
    if isinstance(config, Mapping):
        try:
            return BackendConfig.model_validate(dict(config))
        except ValidationError as exc:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
            raise ConfigError(f"Invalid backend configuration: {fields}") from None
    raise ConfigError(
        f"Expected a BackendConfig or a mapping, got {type(config).__name__}; "
        "use almaverify.config.load_backend_config()"
    )


def _missing_input(credentials: Credentials) -> bool:
    if credentials.username and credentials.password.get_secret_value():
        return False
    logger.info("Rejecting login with an empty username or password")
    return True


def _is_set(event: Optional[threading.Event]) -> bool:
    return event is not None and event.is_set()


def _cancelled(username: str) -> Cancelled:
    logger.info("Verification for %s was cancelled", username)
    return Cancelled()


def _auth_failure(username: str, exc: TransportError) -> VerificationOutcome:
    if isinstance(exc, BackendStatusError) and exc.status_code in REJECTED_CREDENTIAL_STATUSES:
        logger.info("Login by %s rejected by backend (HTTP %s)", username, exc.status_code)
        return InvalidCredentials()
    logger.warning("Login by %s produced a backend error during authentication: %s", username, exc)
    return BackendError(detail=str(exc))


def _fetch_failure(username: str, exc: Exception) -> BackendError:
    logger.warning(
        "Password accepted for %s but the user record could not be confirmed: %s", username, exc
    )
    return BackendError(detail=str(exc))


def _classify(username: str, user: RemoteUser) -> VerificationOutcome:
    logger.debug("Backend returned primary id %s", user.primary_id)
    logger.debug("Backend returned name %s", user.display_name)
    logger.debug("Backend returned user group %s", user.user_group_label)

    if user.status is not UserStatus.ACTIVE:
        logger.info("User %s does not have active status (%s)", username, user.status.value)
        return AccountInactive()

    logger.info("Login by '%s' succeeded as '%s'", username, user.primary_id)
    return Success(
        primary_id=user.primary_id,
        display_name=user.display_name,
        user_group_label=user.user_group_label,
    )
