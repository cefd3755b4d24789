from __future__ import annotations

import json
from base64 import b64encode
from collections.abc import MutableMapping
from typing import Any

from itsdangerous import TimestampSigner

from auth.errors import SessionPersistError

# Browsers drop cookies larger than this.
MAX_COOKIE_BYTES = 4096

STATE_KEY = "state"
ID_TOKEN_KEY = "id_token"
ACCESS_TOKEN_KEY = "access_token"
PROFILE_KEY = "profile"


class SessionStore:
    """get/set/save view over the signed cookie session of one request.

    The Starlette session middleware writes the cookie when the response is
    sent; ``save`` checks up front that the data will survive that trip.
    """

    def __init__(
        self,
        data: MutableMapping[str, Any],
        *,
        secret_key: str,
        cookie_name: str = "session",
        max_cookie_bytes: int = MAX_COOKIE_BYTES,
    ) -> None:
        self._data = data
        self._committed = dict(data)
        self._signer = TimestampSigner(str(secret_key))
        self._cookie_name = cookie_name
        self._max_cookie_bytes = max_cookie_bytes

    @classmethod
    def from_request(
        cls,
        request,
        *,
        secret_key: str,
        cookie_name: str = "session",
        max_cookie_bytes: int = MAX_COOKIE_BYTES,
    ) -> "SessionStore":
        return cls(
            request.session,
            secret_key=secret_key,
            cookie_name=cookie_name,
            max_cookie_bytes=max_cookie_bytes,
        )

    def get(self, key: str) -> Any:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def clear(self) -> None:
        self._data.clear()

    def save(self) -> None:
        try:
            encoded = json.dumps(dict(self._data)).encode("utf-8")
        except (TypeError, ValueError) as error:
            raise SessionPersistError(f"session is not serializable: {error}") from error

        signed = self._signer.sign(b64encode(encoded))
        size = len(self._cookie_name) + 1 + len(signed)
        if size > self._max_cookie_bytes:
            raise SessionPersistError(
                f"session cookie too large: {size} bytes (limit {self._max_cookie_bytes})"
            )
        self._committed = dict(self._data)

    def rollback(self) -> None:
        """Drop changes made since construction or the last successful save."""
        self._data.clear()
        self._data.update(self._committed)


def is_authenticated(session: SessionStore | MutableMapping[str, Any]) -> bool:
    return session.get(PROFILE_KEY) is not None
