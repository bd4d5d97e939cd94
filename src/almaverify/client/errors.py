"""Translation of httpx failures and responses into the transport taxonomy.

Shared by :class:`~almaverify.client.sync_executor.SyncExecutor` and
:class:`~almaverify.client.async_executor.AsyncExecutor` so both report
exactly the same :class:`~almaverify.exceptions.TransportError` subclasses.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from almaverify.exceptions import (
    BackendConnectionError,
    BackendStatusError,
    BackendTimeoutError,
    MalformedBodyError,
    TransportError,
)
from almaverify.models import BackendRequest


def translate_httpx_error(exc: Exception, request: BackendRequest) -> TransportError:
    """Return the transport error matching an httpx exception.

    The message names the method and the redacted URL only; httpx's own
    message is not used because it may contain the unredacted URL.
    """
    target = f"{request.method} {request.redacted_url}"
    if isinstance(exc, httpx.TimeoutException):
        return BackendTimeoutError(f"Timed out waiting for backend ({type(exc).__name__}): {target}")
    if isinstance(exc, httpx.DecodingError):
        return MalformedBodyError(f"Could not decode backend response body: {target}")
    if isinstance(exc, httpx.TooManyRedirects):
        return BackendConnectionError(f"Backend redirected too many times: {target}")
    if isinstance(exc, httpx.InvalidURL):
        return BackendConnectionError(f"Invalid backend URL: {target}")
    return BackendConnectionError(f"Could not reach backend ({type(exc).__name__}): {target}")


def raise_for_status(response: httpx.Response, request: BackendRequest) -> None:
    """Raise :class:`BackendStatusError` for any non-2xx response."""
    status = response.status_code
    if 200 <= status < 300:
        return

    msg = _error_message(response)
    prefix = f"HTTP {status} from {request.method} {request.redacted_url}"
    raise BackendStatusError(status, f"{prefix}: {msg}" if msg else prefix)


def read_json(response: httpx.Response) -> dict[str, Any]:
    """Decode a response body that must be a JSON object.

    Raises:
        MalformedBodyError: If the body is empty, not JSON, or not an object.
    """
    if not response.content:
        raise MalformedBodyError("Backend returned an empty body")
    try:
        data = response.json()
    except RecursionError:
        raise MalformedBodyError("Backend returned JSON nested too deeply to decode") from None
    except ValueError as exc:
        raise MalformedBodyError(f"Backend returned a non-JSON body: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedBodyError(
            f"Backend returned JSON {type(data).__name__}, expected an object"
        )
    return data


def _error_message(response: httpx.Response) -> str:
    """Pull a short error description out of an error response body.

    Understands the backend's ``errorList.error[].errorMessage`` envelope
    and falls back to common ``message``/``error`` keys, then raw text.
    """
    try:
        detail = response.json()
    except (ValueError, RecursionError):
        return response.text[:200] if response.text else ""

    if not isinstance(detail, dict):
        return str(detail)[:200]

    error_list = detail.get("errorList")
    errors = error_list.get("error") if isinstance(error_list, dict) else None
    if isinstance(errors, dict):
        errors = [errors]
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        first = errors[0]
        code = first.get("errorCode")
        message = first.get("errorMessage") or ""
        return f"{message} (code {code})" if code else str(message)

    return str(detail.get("message") or detail.get("error") or detail.get("detail") or "")
