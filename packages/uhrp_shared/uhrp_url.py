"""UHRP content URLs: Base58Check over a SHA-256 digest.

A UHRP URL is ``Base58Check(0xce 0x00 0xfe || sha256(content))``. Clients may
prefix it with ``uhrp://`` or ``web+uhrp://``; the bare form is canonical and
is what the index labels carry.
"""

from __future__ import annotations

import hashlib

import base58

URL_PREFIX = bytes((0xCE, 0x00, 0xFE))
DIGEST_LENGTH = 32
_SCHEMES = ("web+uhrp://", "uhrp://", "uhrp:")


class InvalidUhrpUrlError(ValueError):
    """Raised when a string is not a well-formed UHRP URL."""


def url_for_hash(digest: bytes) -> str:
    """Return the canonical UHRP URL for a 32-byte SHA-256 digest."""
    if len(digest) != DIGEST_LENGTH:
        raise InvalidUhrpUrlError(f"digest must be {DIGEST_LENGTH} bytes")
    return base58.b58encode_check(URL_PREFIX + digest).decode("ascii")


def url_for_content(content: bytes) -> str:
    """Hash ``content`` and return its UHRP URL."""
    return url_for_hash(hashlib.sha256(content).digest())


def hash_from_url(url: str) -> bytes:
    """Return the digest committed to by ``url``; checksum and prefix are verified."""
    bare = normalize_url(url)
    try:
        decoded = base58.b58decode_check(bare)
    except ValueError as exc:
        raise InvalidUhrpUrlError("invalid UHRP URL checksum") from exc
    if not decoded.startswith(URL_PREFIX) or len(decoded) != len(URL_PREFIX) + DIGEST_LENGTH:
        raise InvalidUhrpUrlError("invalid UHRP URL prefix or length")
    return decoded[len(URL_PREFIX) :]


def normalize_url(url: str) -> str:
    """Strip surrounding whitespace and any UHRP scheme prefix."""
    value = url.strip()
    lowered = value.lower()
    for scheme in _SCHEMES:
        if lowered.startswith(scheme):
            value = value[len(scheme) :]
            break
    if value == "":
        raise InvalidUhrpUrlError("UHRP URL must be non-empty")
    return value


def canonical_url(url: str) -> str:
    """Validate ``url`` and return it in canonical bare form."""
    return url_for_hash(hash_from_url(url))
