"""Builders for the two backend calls made during a verification.

Both builders are pure functions of their inputs. The username is
percent-encoded as a single path segment: ``/`` becomes ``%2F`` and the
dot segments ``.`` and ``..`` become ``%2E`` and ``%2E%2E``, so URL
normalisation can never move the request out of the ``/users/``
collection. Every query value is encoded when the request is rendered
by :attr:`~almaverify.models.BackendRequest.full_url` or sent by an
executor.
"""

from __future__ import annotations

from urllib.parse import quote

from almaverify.models import BackendConfig, BackendRequest, Credentials

_DOT_SEGMENTS = frozenset({".", ".."})


def user_url(credentials: Credentials, config: BackendConfig) -> str:
    """Return ``{api_root}/users/{username}`` with the username encoded."""
    segment = quote(credentials.username, safe="")
    if segment in _DOT_SEGMENTS:
        segment = segment.replace(".", "%2E")
    return f"{config.api_root}/users/{segment}"


def build_auth_request(credentials: Credentials, config: BackendConfig) -> BackendRequest:
    """Build the "authenticate user" call.

    Sent as a bodiless ``POST`` with ``op=auth``; the backend answers 2xx
    when the password matches and 4xx when it does not.

    Args:
        credentials: The submitted username and password.
        config: Backend connection settings.

    Returns:
        The request, ready for an executor.
    """
    return BackendRequest(
        method="POST",
        url=user_url(credentials, config),
        params={
            "format": "json",
            "op": "auth",
            "password": credentials.password.get_secret_value(),
            "apikey": config.api_key.get_secret_value(),
        },
    )


def build_fetch_request(credentials: Credentials, config: BackendConfig) -> BackendRequest:
    """Build the "retrieve user" call. The password is not included."""
    return BackendRequest(
        method="GET",
        url=user_url(credentials, config),
        params={
            "format": "json",
            "apikey": config.api_key.get_secret_value(),
        },
    )
