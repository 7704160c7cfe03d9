"""
Request signatures for device uploads.

A device signs every upload with the shared secret:

    HMAC-SHA256(secret, timestamp + content_type + device_id + file_hash)

The fields are concatenated as-is, in that order, with no delimiters.
``file_hash`` is the lowercase hex SHA-256 of the file content and the
signature travels as lowercase hex.
"""
import hashlib
import hmac
from typing import Union

from fastapi import Depends

from ..config import Settings, get_settings


def hmac_sha256(key: Union[str, bytes], data: Union[str, bytes]) -> str:
    """Return the lowercase hex HMAC-SHA256 of ``data`` under ``key``."""
    if isinstance(key, str):
        key = key.encode("utf-8")
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hmac.new(key, data, hashlib.sha256).hexdigest()


def calculate_signature(
    timestamp: str,
    content_type: str,
    device_id: str,
    file_hash: str,
    secret: bytes,
) -> str:
    data = timestamp + content_type + device_id + file_hash
    return hmac_sha256(secret, data)


def verify_signature(expected: str, received: str) -> bool:
    """
    Compare two signatures in constant time.

    Only the length check can return early; otherwise every character pair
    is XORed into the accumulator, so the running time does not depend on
    the position of the first difference.
    """
    if len(expected) != len(received):
        return False

    result = 0
    for a, b in zip(expected, received):
        result |= ord(a) ^ ord(b)
    return result == 0


class SignatureVerifier:
    """Holds the shared secret and checks device signatures against it."""

    def __init__(self, secret: bytes):
        if not secret:
            raise ValueError("secret must not be empty")
        self._secret = bytes(secret)

    def __repr__(self) -> str:
        return "SignatureVerifier(secret=<redacted>)"

    def calculate(self, timestamp: str, content_type: str, device_id: str, file_hash: str) -> str:
        return calculate_signature(timestamp, content_type, device_id, file_hash, self._secret)

    def verify(
        self,
        signature: str,
        timestamp: str,
        content_type: str,
        device_id: str,
        file_hash: str,
    ) -> bool:
        expected = self.calculate(timestamp, content_type, device_id, file_hash)
        return verify_signature(expected, signature)


def get_verifier(settings: Settings = Depends(get_settings)) -> SignatureVerifier:
    return SignatureVerifier(settings.secret_bytes)
