"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific outcome or error category and is
referenced by the corresponding :class:`~almaverify.exceptions.AlmaVerifyError`
subclass or by the ``verify`` command. Shell wrappers can inspect the exit
code without parsing stderr.

Example::

    $ almaverify verify jdoe123 --password-source env:PW
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- credentials rejected or account not active
"""

EXIT_SUCCESS = 0
"""The credentials were verified and the account is active."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_CONFIG_ERROR = 2
"""The backend configuration is missing or invalid."""

EXIT_AUTH_FAILURE = 3
"""The credentials were rejected or the account is not active."""

EXIT_BACKEND_ERROR = 5
"""The backend answered with an error or an unusable response."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CANCELLED = 130
"""The verification was interrupted before it completed."""
