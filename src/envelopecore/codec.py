"""Pre-authentication encoding and base64 helpers.

PAE is the exact byte string every signature covers:

    "DSSEv1" SP len(type) SP type SP len(payload) SP payload

Lengths are ASCII decimal byte counts and precede the content they
describe, so no byte inside the type or payload can be mistaken for a
delimiter. Two different (type, payload) pairs never encode to the same
bytes.

Base64 fields are written with the standard alphabet. Reading is
tolerant: the standard alphabet is tried first, then the URL-safe one,
because some producers emit URL-safe base64 for the same fields.
"""

from __future__ import annotations

import base64
import binascii

from envelopecore.errors import CorruptEncodingError

PAE_PREFIX = b"DSSEv1"

_STD_ALPHABET = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
)


def pae(payload_type: str, payload: bytes) -> bytes:
    """Encode (payload_type, payload) into the bytes that get signed.

    Args:
        payload_type: Free-form type string, encoded as UTF-8
        payload: Raw payload bytes

    Returns:
        Canonical PAE bytes, with no trailing delimiter
    """
    type_bytes = payload_type.encode("utf-8")
    return b" ".join([
        PAE_PREFIX,
        str(len(type_bytes)).encode("ascii"),
        type_bytes,
        str(len(payload)).encode("ascii"),
        payload,
    ])


def b64_encode(data: bytes) -> str:
    """Standard-alphabet, padded base64 text."""
    return base64.b64encode(data).decode("ascii")


def b64_decode(text: str | bytes) -> bytes:
    """Decode base64 in either the standard or the URL-safe alphabet.

    Raises:
        CorruptEncodingError: If neither alphabet decodes the input. The
            error's offset is the first byte the standard alphabet rejects.
    """
    raw = text.encode("utf-8") if isinstance(text, str) else bytes(text)

    try:
        return base64.b64decode(raw, validate=True)
    except binascii.Error:
        pass

    # The URL-safe alphabet has no "+" or "/"; mixed input is malformed in both
    if b"+" in raw or b"/" in raw:
        raise CorruptEncodingError(_corrupt_offset(raw))

    try:
        return base64.b64decode(raw, altchars=b"-_", validate=True)
    except binascii.Error:
        raise CorruptEncodingError(_corrupt_offset(raw)) from None


def _corrupt_offset(raw: bytes) -> int:
    """Locate the first byte that breaks standard base64.

    Padding is only legal as a trailing run. When every byte is legal
    the fault is in the length or padding, reported at the end of input.
    """
    for index, byte in enumerate(raw):
        if byte in _STD_ALPHABET:
            continue
        if byte == ord("=") and raw[index:] == b"=" * (len(raw) - index):
            break
        return index
    return len(raw)
