"""Codecs applied to the serialised session list before it reaches the store.

``XorObfuscationCodec`` only hides the payload from casual inspection; it
offers no confidentiality. Use ``FernetCodec`` when the stored sessions
must stay private.
"""

from __future__ import annotations

import base64
import binascii
from typing import Optional, Protocol

from cryptography.fernet import Fernet, InvalidToken

from ..config.errors import ConfigurationError

CODEC_NAMES = ("plain", "xor", "fernet")


class PayloadCodecError(ValueError):
    """Raised when a stored payload cannot be decoded."""


class PayloadCodec(Protocol):
    name: str

    def encode(self, payload: str) -> str: ...

    def decode(self, payload: str) -> str: ...


class PlainCodec:
    name = "plain"

    def encode(self, payload: str) -> str:
        return payload

    def decode(self, payload: str) -> str:
        return payload


class XorObfuscationCodec:
    """Repeating-key XOR followed by base64."""

    name = "xor"

    def __init__(self, key: str) -> None:
        if not key:
            raise ValueError("XorObfuscationCodec requires a non-empty key")
        self._key = key.encode("utf-8")

    def _xor(self, data: bytes) -> bytes:
        key = self._key
        return bytes(byte ^ key[index % len(key)] for index, byte in enumerate(data))

    def encode(self, payload: str) -> str:
        return base64.b64encode(self._xor(payload.encode("utf-8"))).decode("ascii")

    def decode(self, payload: str) -> str:
        try:
            raw = base64.b64decode(payload.encode("ascii"), validate=True)
            return self._xor(raw).decode("utf-8")
        except (binascii.Error, UnicodeError) as exc:
            raise PayloadCodecError(f"Cannot decode obfuscated payload: {exc}") from exc


class FernetCodec:
    """Authenticated symmetric encryption from ``cryptography``."""

    name = "fernet"

    def __init__(self, key: str) -> None:
        try:
            self._fernet = Fernet(key)
        except (ValueError, TypeError) as exc:
            raise ValueError("FernetCodec requires a 32-byte url-safe base64 key") from exc

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("ascii")

    def encode(self, payload: str) -> str:
        return self._fernet.encrypt(payload.encode("utf-8")).decode("ascii")

    def decode(self, payload: str) -> str:
        try:
            return self._fernet.decrypt(payload.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as exc:
            raise PayloadCodecError("Session payload failed authentication") from exc


def build_codec(name: str, key: Optional[str] = None) -> PayloadCodec:
    """Instantiate a codec by name; raises ``ConfigurationError`` when misconfigured."""
    normalized = (name or "plain").strip().lower()
    if normalized == "plain":
        return PlainCodec()
    if normalized not in CODEC_NAMES:
        raise ConfigurationError(f"Unknown session codec {name!r}; expected one of {', '.join(CODEC_NAMES)}")
    if not key:
        raise ConfigurationError(f"Session codec {normalized!r} requires CVGUARD_SESSION_ENCRYPTION_KEY")
    try:
        if normalized == "xor":
            return XorObfuscationCodec(key)
        return FernetCodec(key)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


__all__ = [
    "CODEC_NAMES",
    "FernetCodec",
    "PayloadCodec",
    "PayloadCodecError",
    "PlainCodec",
    "XorObfuscationCodec",
    "build_codec",
]
