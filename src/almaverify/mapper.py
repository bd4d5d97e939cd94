"""Parse a backend user record into :class:`~almaverify.models.RemoteUser`.

The backend is trusted but external, so its JSON is validated field by
field against a wire model before anything reads it. Required fields::

    primary_id, first_name, last_name,
    user_group.value, user_group.desc,
    status.value

Every one must be present and a string. Anything else -- missing fields,
numbers where strings belong, a top-level array, invalid JSON -- raises
:class:`~almaverify.exceptions.ParseError` naming the offending field
paths. Field values are never copied into error messages.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, StrictStr, ValidationError

from almaverify.exceptions import ParseError
from almaverify.models import RemoteUser, UserGroup, UserStatus


class _NameValue(BaseModel):
    value: StrictStr
    desc: StrictStr


class _Status(BaseModel):
    value: StrictStr = Field(min_length=1)
    desc: Optional[StrictStr] = None


class _UserPayload(BaseModel):
    primary_id: StrictStr
    first_name: StrictStr
    last_name: StrictStr
    user_group: _NameValue
    status: _Status


def parse_user(body: Union[bytes, str, dict[str, Any]]) -> RemoteUser:
    """Validate a user record and return the normalised :class:`RemoteUser`.

    Args:
        body: The raw response body, or an already-decoded JSON object.

    Returns:
        The parsed user. ``status`` is mapped case-sensitively: ``"ACTIVE"``
        and ``"INACTIVE"`` map to their members, any other non-empty value
        to :attr:`UserStatus.OTHER`.

    Raises:
        ParseError: If the body is not a JSON object or a required field
            is missing, empty where it must not be, or of the wrong type.
    """
    data = _decode(body)
    try:
        payload = _UserPayload.model_validate(data)
    except ValidationError as exc:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
        raise ParseError(
            f"User record is missing or has invalid fields: {', '.join(fields)}"
        ) from None

    return RemoteUser(
        primary_id=payload.primary_id,
        first_name=payload.first_name,
        last_name=payload.last_name,
        user_group=UserGroup(value=payload.user_group.value, desc=payload.user_group.desc),
        status=UserStatus.from_backend(payload.status.value),
    )


def _decode(body: Union[bytes, str, dict[str, Any]]) -> dict[str, Any]:
    if isinstance(body, dict):
        return body
    try:
        data = json.loads(body)
    except RecursionError:
        raise ParseError("User record is nested too deeply to decode") from None
    except ValueError as exc:
        raise ParseError(f"User record is not valid JSON: {exc}") from None
    if not isinstance(data, dict):
        raise ParseError(f"User record must be a JSON object, got {type(data).__name__}")
    return data
