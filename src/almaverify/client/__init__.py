"""HTTP executors for almaverify.

Provides blocking and asynchronous executors that wrap :mod:`httpx` with
the backend's timeout and TLS settings and classify every failure as a
:class:`~almaverify.exceptions.TransportError` subclass.

Classes:
    :class:`SyncExecutor` -- blocking executor backed by :class:`httpx.Client`.
    :class:`AsyncExecutor` -- non-blocking executor backed by :class:`httpx.AsyncClient`.

Example::

    from almaverify.client import SyncExecutor

    with SyncExecutor(config) as executor:
        resp = executor.execute(request)
"""

from almaverify.client.async_executor import AsyncExecutor
from almaverify.client.errors import read_json
from almaverify.client.sync_executor import SyncExecutor

__all__ = ["SyncExecutor", "AsyncExecutor", "read_json"]
