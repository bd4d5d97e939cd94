"""Canonical Pydantic models shared across all almaverify modules.

The models fall into three groups:

**Inputs** -- supplied by the host for each verification or once at start-up:
    :class:`Credentials`, :class:`BackendConfig` and the on-disk
    :class:`StoredConfig`.

**Backend shapes** -- built from inputs or parsed from responses:
    :class:`BackendRequest`, :class:`UserGroup`, :class:`UserStatus` and
    :class:`RemoteUser`.

**Outcomes** -- the tagged result of one verification, discriminated by
the ``kind`` field:
    :class:`Success`, :class:`InvalidCredentials`,
    :class:`AccountInactive`, :class:`BackendError` and :class:`Cancelled`,
    joined as :data:`VerificationOutcome`.

Secrets (the password and the API key) are held as
:class:`~pydantic.SecretStr` so they never show up in ``repr()``, log
lines, or ``model_dump()`` output.
"""

from __future__ import annotations

import enum
from typing import Annotated, Literal, Optional, Union
from urllib.parse import quote, urlencode

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from almaverify.exceptions import ConfigError

DEFAULT_TIMEOUT = 10.0
"""Connect/read timeout in seconds applied to every backend call."""

REDACTED_PARAMS = frozenset({"password", "apikey"})
"""Query parameters whose values are masked in :attr:`BackendRequest.redacted_url`."""


# --- Inputs ---


class Credentials(BaseModel):
    """A username/password pair submitted for a single verification.

    The username may be any identifier the backend accepts (primary id,
    barcode, member number); the canonical id comes back in
    :attr:`Success.primary_id`.
    """

    model_config = ConfigDict(frozen=True)

    username: str
    password: SecretStr


class BackendConfig(BaseModel):
    """Connection settings for the remote user API.

    Loaded once at the application boundary (see
    :func:`~almaverify.config.load_backend_config`) and never mutated
    afterwards.

    Raises:
        ConfigError: If ``api_root`` or ``api_key`` is empty.

    Example::

        BackendConfig(
            api_root="https://api-na.hosted.exlibrisgroup.com/almaws/v1",
            api_key="l7xx...",
        )
    """

    model_config = ConfigDict(frozen=True)

    api_root: str = Field(description="Base URL of the user API, without trailing slash")
    api_key: SecretStr = Field(description="API key sent as the apikey query parameter")
    timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        gt=0,
        allow_inf_nan=False,
        description="Connect/read timeout in seconds",
    )
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")

    @field_validator("api_root")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @model_validator(mode="after")
    def _require_endpoint_and_key(self) -> BackendConfig:
        if not self.api_root:
            raise ConfigError("Backend API root is not configured")
        if not self.api_key.get_secret_value().strip():
            raise ConfigError("Backend API key is not configured")
        return self


class StoredConfig(BaseModel):
    """User-wide settings persisted at ``~/.config/almaverify/config.json``.

    Every field is optional; unset fields fall through to the defaults of
    :class:`BackendConfig`. The API key itself is never stored, only a
    source descriptor (``env:VAR``, ``file:/path`` or ``prompt``) that
    :func:`~almaverify.config.resolve_secret` turns into the key.
    """

    api_root: Optional[str] = None
    api_key_source: Optional[str] = None
    timeout: Optional[float] = Field(default=None, gt=0)
    verify_ssl: Optional[bool] = None


# --- Backend shapes ---


class BackendRequest(BaseModel):
    """One HTTP call to the backend, fully described but not yet sent.

    ``url`` carries the already-encoded path; ``params`` holds the raw
    query values, which are percent-encoded when the request is rendered.
    """

    model_config = ConfigDict(frozen=True)

    method: Literal["GET", "POST"]
    url: str
    params: dict[str, str] = Field(default_factory=dict)

    @property
    def full_url(self) -> str:
        """The URL with every query value percent-encoded."""
        if not self.params:
            return self.url
        return f"{self.url}?{urlencode(self.params, quote_via=quote)}"

    @property
    def redacted_url(self) -> str:
        """The URL with password and API key values masked. Safe to log."""
        masked = {
            key: ("***" if key in REDACTED_PARAMS else value)
            for key, value in self.params.items()
        }
        if not masked:
            return self.url
        return f"{self.url}?{urlencode(masked, quote_via=quote, safe='*')}"


class UserStatus(str, enum.Enum):
    """Account state reported by the backend.

    Only ``ACTIVE`` accounts may complete a login.
    """

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    OTHER = "OTHER"

    @classmethod
    def from_backend(cls, value: str) -> UserStatus:
        """Map a raw ``status.value`` string, case-sensitively."""
        if value == "ACTIVE":
            return cls.ACTIVE
        if value == "INACTIVE":
            return cls.INACTIVE
        return cls.OTHER


class UserGroup(BaseModel):
    """The user's group code and its human description."""

    model_config = ConfigDict(frozen=True)

    value: str
    desc: str


class RemoteUser(BaseModel):
    """A user record as returned by the backend, after validation."""

    model_config = ConfigDict(frozen=True)

    primary_id: str
    first_name: str
    last_name: str
    user_group: UserGroup
    status: UserStatus

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def user_group_label(self) -> str:
        return f"{self.user_group.value} / {self.user_group.desc}"


# --- Outcomes ---


class _Outcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    @property
    def is_success(self) -> bool:
        return False


class Success(_Outcome):
    """The password was accepted and the account is active."""

    kind: Literal["success"] = "success"
    primary_id: str
    display_name: str
    user_group_label: str

    @property
    def is_success(self) -> bool:
        return True

    @property
    def principal(self) -> str:
        """The identity a host should record: the backend's primary id,
        not whatever the user typed into the login form."""
        return self.primary_id


class InvalidCredentials(_Outcome):
    """The backend rejected the username/password pair."""

    kind: Literal["invalid_credentials"] = "invalid_credentials"


class AccountInactive(_Outcome):
    """The password was accepted but the account is not active."""

    kind: Literal["account_inactive"] = "account_inactive"


class BackendError(_Outcome):
    """The backend could not be reached or returned something unusable."""

    kind: Literal["backend_error"] = "backend_error"
    detail: str


class Cancelled(_Outcome):
    """The caller cancelled the verification before it completed."""

    kind: Literal["cancelled"] = "cancelled"


VerificationOutcome = Annotated[
    Union[Success, InvalidCredentials, AccountInactive, BackendError, Cancelled],
    Field(discriminator="kind"),
]
