"""Exception hierarchy for almaverify.

All exceptions inherit from :class:`AlmaVerifyError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`almaverify.exit_codes`.

Transport and parse errors are raised by the executors and the mapper,
then caught by :class:`~almaverify.verifier.CredentialVerifier` and
converted into a :class:`~almaverify.models.BackendError` outcome. Only
:class:`ConfigError` is allowed to cross the verifier's public boundary.

Subclass hierarchy::

    AlmaVerifyError (exit 1)
    +-- ConfigError              (exit 2)
    +-- TransportError           (exit 5)
    |   +-- BackendConnectionError (exit 6)
    |   +-- BackendTimeoutError    (exit 6)
    |   +-- BackendStatusError     (exit 5)
    |   +-- MalformedBodyError     (exit 5)
    +-- ParseError               (exit 5)

Messages never include the password or the API key.
"""

from almaverify.exit_codes import (
    EXIT_BACKEND_ERROR,
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
)


class AlmaVerifyError(Exception):
    """Base exception for all almaverify errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(AlmaVerifyError):
    """Raised for configuration problems (missing API root or key, invalid config file)."""

    exit_code = EXIT_CONFIG_ERROR


class TransportError(AlmaVerifyError):
    """Base class for failures talking to the backend."""

    exit_code = EXIT_BACKEND_ERROR


class BackendConnectionError(TransportError):
    """Raised on network-level failures (DNS resolution, connection refused, reset)."""

    exit_code = EXIT_CONNECTION_ERROR


class BackendTimeoutError(TransportError):
    """Raised when the backend does not answer within the configured timeout."""

    exit_code = EXIT_CONNECTION_ERROR


class BackendStatusError(TransportError):
    """Raised when the backend answers with a non-2xx HTTP status.

    Args:
        status_code: The HTTP status returned by the backend.
        message: Human-readable description.
    """

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class MalformedBodyError(TransportError):
    """Raised when a response body is not the JSON object the backend promises."""


class ParseError(AlmaVerifyError):
    """Raised when a user record is missing required fields or has the wrong shape."""

    exit_code = EXIT_BACKEND_ERROR
