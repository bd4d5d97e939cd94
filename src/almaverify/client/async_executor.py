"""Asynchronous HTTP executor -- mirrors :class:`~almaverify.client.sync_executor.SyncExecutor`.

:class:`AsyncExecutor` wraps :class:`httpx.AsyncClient` and raises the same
:class:`~almaverify.exceptions.TransportError` subclasses as the blocking
executor, and like it never follows redirects. Cancelling the task that
awaits :meth:`AsyncExecutor.execute` aborts the in-flight request; leaving
the ``async with`` block then closes the connection pool.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from almaverify.client.errors import raise_for_status, translate_httpx_error
from almaverify.models import BackendConfig, BackendRequest

logger = logging.getLogger(__name__)


class AsyncExecutor:
    """Asynchronous executor for backend calls.

    Args:
        config: Backend settings supplying ``timeout`` and ``verify_ssl``.
        transport: Optional async httpx transport, e.g.
            :class:`httpx.MockTransport` in tests.

    Example::

        async with AsyncExecutor(config) as executor:
            response = await executor.execute(request)
    """

    def __init__(
        self,
        config: BackendConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AsyncExecutor:
        self._client = httpx.AsyncClient(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=False,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def execute(self, request: BackendRequest) -> httpx.Response:
        """Send *request* and return the 2xx response.

        Behaves identically to
        :meth:`~almaverify.client.sync_executor.SyncExecutor.execute` but
        is non-blocking.
        """
        assert self._client is not None, "Executor not initialised -- use as async context manager"

        logger.debug("%s %s", request.method, request.redacted_url)
        try:
            response = await self._client.request(
                request.method,
                request.full_url,
                headers={"Accept": "application/json"},
            )
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise translate_httpx_error(exc, request) from None

        logger.debug("Backend returned status %s", response.status_code)
        raise_for_status(response, request)
        return response
