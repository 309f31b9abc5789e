"""Reversible wrapping of a downstream client's redirect context into an OAuth state.

Google only echoes the ``state`` parameter back, so the client's own
``redirect_uri`` and ``state`` travel inside it. No server-side session is
created, which keeps every process able to finish any flow.
"""

import base64
import binascii
import hashlib
import hmac
import json
import re
from typing import NamedTuple

from ..exceptions import InvalidStateError

_BASE64URL = re.compile(r"^[A-Za-z0-9_-]+$")
_FIELDS = ("redirect_uri", "state")


class WrappedState(NamedTuple):
    """Client redirect context carried through the provider round trip."""

    redirect_uri: str
    state: str


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64decode(text: str) -> bytes:
    if not _BASE64URL.match(text):
        raise InvalidStateError("State is not base64url encoded")
    try:
        data = base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))
    except (binascii.Error, ValueError) as e:
        raise InvalidStateError("State is not base64url encoded") from e
    # Reject non-canonical encodings (stray trailing bits, truncated groups)
    if _b64encode(data) != text:
        raise InvalidStateError("State is not canonically encoded")
    return data


def _sign(key: bytes, payload: str) -> str:
    digest = hmac.new(key, payload.encode("ascii"), hashlib.sha256).digest()
    return _b64encode(digest)


class StateCodec:
    """Encode and decode :class:`WrappedState` values.

    With a ``signing_key`` the encoded payload is followed by ``.`` and an
    HMAC-SHA256 tag, so a state altered in transit is rejected instead of
    redirecting somewhere the client never asked for.
    """

    def __init__(self, signing_key: bytes | None = None) -> None:
        self._signing_key = signing_key

    def encode(self, redirect_uri: str, state: str) -> str:
        raw = json.dumps(
            {"redirect_uri": redirect_uri, "state": state},
            ensure_ascii=False,
            separators=(",", ":"),
        )
        payload = _b64encode(raw.encode("utf-8"))
        if self._signing_key is None:
            return payload
        return f"{payload}.{_sign(self._signing_key, payload)}"

    def decode(self, encoded: str) -> WrappedState:
        """Decode a state produced by :meth:`encode`.

        Raises:
            InvalidStateError: for any input that did not come from ``encode``.
        """
        if not encoded:
            raise InvalidStateError("State parameter is empty")

        payload = encoded
        if self._signing_key is not None:
            payload, sep, tag = encoded.partition(".")
            if not sep or not tag:
                raise InvalidStateError("State signature is missing")
            if not (_BASE64URL.match(payload) and _BASE64URL.match(tag)):
                raise InvalidStateError("State is not base64url encoded")
            if not hmac.compare_digest(tag, _sign(self._signing_key, payload)):
                raise InvalidStateError("State signature does not match")

        try:
            data = json.loads(_b64decode(payload).decode("utf-8"))
        except (UnicodeDecodeError, ValueError, RecursionError) as e:
            raise InvalidStateError("State payload is not valid JSON") from e

        if not isinstance(data, dict) or sorted(data) != sorted(_FIELDS):
            raise InvalidStateError("State payload has unexpected fields")
        if not all(isinstance(data[field], str) for field in _FIELDS):
            raise InvalidStateError("State payload fields must be strings")

        return WrappedState(redirect_uri=data["redirect_uri"], state=data["state"])
