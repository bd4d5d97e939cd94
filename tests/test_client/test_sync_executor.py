"""Tests for the blocking HTTP executor and its error classification."""

from __future__ import annotations

import httpx
import pytest

from almaverify.client import SyncExecutor, read_json
from almaverify.exceptions import (
    BackendConnectionError,
    BackendStatusError,
    BackendTimeoutError,
    MalformedBodyError,
)
from almaverify.models import BackendConfig, BackendRequest


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _request(password: str = "hunter2") -> BackendRequest:
    return BackendRequest(
        method="POST",
        url="https://api.example.edu/almaws/v1/users/jdoe123",
        params={"format": "json", "op": "auth", "password": password, "apikey": "k"},
    )


def _executor(config: BackendConfig, handler) -> SyncExecutor:
    return SyncExecutor(config, transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Context manager
# ---------------------------------------------------------------------------


class TestContextManager:
    def test_enter_creates_client(self, backend_config: BackendConfig) -> None:
        executor = SyncExecutor(backend_config)
        assert executor._client is None
        with executor:
            assert executor._client is not None
        assert executor._client is None

    def test_execute_outside_context_fails(self, backend_config: BackendConfig) -> None:
        with pytest.raises(AssertionError):
            SyncExecutor(backend_config).execute(_request())

    def test_client_uses_configured_timeout(self, backend_config: BackendConfig) -> None:
        with SyncExecutor(backend_config) as executor:
            assert executor._client is not None
            assert executor._client.timeout == httpx.Timeout(5.0)


# ---------------------------------------------------------------------------
# Successful requests
# ---------------------------------------------------------------------------


class TestExecute:
    def test_sends_method_and_encoded_query(self, backend_config: BackendConfig) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        with _executor(backend_config, handler) as executor:
            response = executor.execute(_request(password="p@ss&w rd"))

        assert response.status_code == 204
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/almaws/v1/users/jdoe123"
        assert seen[0].url.params["password"] == "p@ss&w rd"
        assert seen[0].url.params["op"] == "auth"
        assert seen[0].headers["accept"] == "application/json"

    def test_returns_json_response(self, backend_config: BackendConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"primary_id": "P1"})

        with _executor(backend_config, handler) as executor:
            response = executor.execute(_request())
        assert read_json(response) == {"primary_id": "P1"}


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


class TestStatusErrors:
    @pytest.mark.parametrize("status", [400, 401, 404, 500, 503])
    def test_non_2xx_raises_status_error(self, backend_config: BackendConfig, status: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status)

        with _executor(backend_config, handler) as executor:
            with pytest.raises(BackendStatusError) as exc_info:
                executor.execute(_request())
        assert exc_info.value.status_code == status
        assert f"HTTP {status}" in str(exc_info.value)

    def test_backend_error_list_extracted(self, backend_config: BackendConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400,
                json={
                    "errorsExist": True,
                    "errorList": {"error": [
                        {"errorCode": "401652", "errorMessage": "General Error - An error has occurred"}
                    ]},
                },
            )

        with _executor(backend_config, handler) as executor:
            with pytest.raises(BackendStatusError, match="General Error .*code 401652"):
                executor.execute(_request())

    def test_plain_text_error_body(self, backend_config: BackendConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        with _executor(backend_config, handler) as executor:
            with pytest.raises(BackendStatusError, match="Bad Gateway"):
                executor.execute(_request())

    def test_message_never_contains_secrets(self, backend_config: BackendConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        with _executor(backend_config, handler) as executor:
            with pytest.raises(BackendStatusError) as exc_info:
                executor.execute(_request(password="hunter2"))
        assert "hunter2" not in str(exc_info.value)
        assert "password=***" in str(exc_info.value)


class TestTransportErrors:
    def test_connect_error(self, backend_config: BackendConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        with _executor(backend_config, handler) as executor:
            with pytest.raises(BackendConnectionError, match="ConnectError"):
                executor.execute(_request())

    def test_read_timeout(self, backend_config: BackendConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with _executor(backend_config, handler) as executor:
            with pytest.raises(BackendTimeoutError, match="ReadTimeout"):
                executor.execute(_request())

    def test_connect_timeout_is_a_timeout(self, backend_config: BackendConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        with _executor(backend_config, handler) as executor:
            with pytest.raises(BackendTimeoutError):
                executor.execute(_request())

    def test_remote_protocol_error(self, backend_config: BackendConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.RemoteProtocolError("peer closed connection", request=request)

        with _executor(backend_config, handler) as executor:
            with pytest.raises(BackendConnectionError):
                executor.execute(_request())

    def test_error_hides_httpx_chain(self, backend_config: BackendConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError(f"failed for {request.url}", request=request)

        with _executor(backend_config, handler) as executor:
            with pytest.raises(BackendConnectionError) as exc_info:
                executor.execute(_request(password="hunter2"))
        assert exc_info.value.__cause__ is None
        assert exc_info.value.__suppress_context__ is True
        assert "hunter2" not in str(exc_info.value)


class TestReadJson:
    def _response(self, **kwargs) -> httpx.Response:
        return httpx.Response(200, request=httpx.Request("GET", "https://x"), **kwargs)

    def test_empty_body(self) -> None:
        with pytest.raises(MalformedBodyError, match="empty"):
            read_json(self._response())

    def test_non_json_body(self) -> None:
        with pytest.raises(MalformedBodyError, match="non-JSON"):
            read_json(self._response(text="<html></html>"))

    def test_non_object_body(self) -> None:
        with pytest.raises(MalformedBodyError, match="expected an object"):
            read_json(self._response(json=["a"]))

    def test_deeply_nested_body(self) -> None:
        body = "[" * 200_000 + "]" * 200_000
        with pytest.raises(MalformedBodyError, match="nested too deeply"):
            read_json(self._response(text=body))


class TestRedirects:
    def test_redirect_is_not_followed(self, backend_config: BackendConfig) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(303, headers={"Location": "https://collector.example.com/"})

        with _executor(backend_config, handler) as executor:
            with pytest.raises(BackendStatusError) as exc_info:
                executor.execute(_request())
        assert exc_info.value.status_code == 303
        assert len(seen) == 1

    def test_too_many_redirects_is_connection_error(self, backend_config: BackendConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.TooManyRedirects("Exceeded maximum allowed redirects.", request=request)

        with _executor(backend_config, handler) as executor:
            with pytest.raises(BackendConnectionError, match="redirected too many times"):
                executor.execute(_request(password="hunter2"))


class TestUndecodableBody:
    def test_bad_content_encoding(self, backend_config: BackendConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"notgzip")

        with _executor(backend_config, handler) as executor:
            with pytest.raises(MalformedBodyError, match="decode") as exc_info:
                executor.execute(_request(password="hunter2"))
        assert "hunter2" not in str(exc_info.value)
        assert exc_info.value.__cause__ is None
