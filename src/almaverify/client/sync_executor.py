"""Blocking HTTP executor for backend calls.

This module provides :class:`SyncExecutor`, which wraps
:class:`httpx.Client` with the backend's timeout and TLS settings and turns
every failure into a distinct :class:`~almaverify.exceptions.TransportError`:

- **Connection failures** -- DNS, refused, reset, TLS handshake:
  :class:`~almaverify.exceptions.BackendConnectionError`.
- **Timeouts** -- connect, read, write or pool:
  :class:`~almaverify.exceptions.BackendTimeoutError`.
- **Non-2xx status** -- :class:`~almaverify.exceptions.BackendStatusError`
  carrying the status code. Redirects are not followed, so a 3xx answer
  is reported here too and credentials are never re-sent to the
  ``Location`` host.
- **Undecodable bodies** -- a broken ``Content-Encoding``:
  :class:`~almaverify.exceptions.MalformedBodyError`.

Bodies that are not a JSON object are reported by
:func:`~almaverify.client.errors.read_json` when the caller decodes the
response.

Requests are never retried.

See Also:
    :class:`~almaverify.client.async_executor.AsyncExecutor` for the
    asyncio equivalent.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from almaverify.client.errors import raise_for_status, translate_httpx_error
from almaverify.models import BackendConfig, BackendRequest

logger = logging.getLogger(__name__)


class SyncExecutor:
    """Execute :class:`~almaverify.models.BackendRequest` objects over httpx.

    Must be used as a context manager so that the underlying connection
    pool is opened and closed around one verification.

    Args:
        config: Backend settings supplying ``timeout`` and ``verify_ssl``.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.

    Example::

        with SyncExecutor(config) as executor:
            response = executor.execute(build_fetch_request(creds, config))
    """

    def __init__(
        self,
        config: BackendConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> SyncExecutor:
        self._client = httpx.Client(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=False,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def execute(self, request: BackendRequest) -> httpx.Response:
        """Send *request* and return the 2xx response.

        Args:
            request: The call to make.

        Returns:
            The :class:`httpx.Response`, guaranteed to have a 2xx status.

        Raises:
            BackendConnectionError: On network failures or an invalid URL.
            BackendTimeoutError: When the configured timeout elapses.
            BackendStatusError: On any non-2xx status, 3xx included.
            MalformedBodyError: When the body cannot be decoded.
        """
        assert self._client is not None, "Executor not initialised -- use as context manager"

        logger.debug("%s %s", request.method, request.redacted_url)
        try:
            response = self._client.request(
                request.method,
                request.full_url,
                headers={"Accept": "application/json"},
            )
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            # httpx messages carry the unredacted URL, so the chain is dropped.
            raise translate_httpx_error(exc, request) from None

        logger.debug("Backend returned status %s", response.status_code)
        raise_for_status(response, request)
        return response
