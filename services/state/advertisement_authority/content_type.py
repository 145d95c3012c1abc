"""Content sniffing used when no advertisement names a content type."""

from __future__ import annotations

import json
import re

OCTET_STREAM = "application/octet-stream"
SNIFF_LENGTH = 512

EXTENSION_TYPES: dict[str, str] = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".ico": "image/x-icon",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
}

_MAGIC: tuple[tuple[bytes, str], ...] = (
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG", "image/png"),
    (b"GIF8", "image/gif"),
    (b"%PDF", "application/pdf"),
    (b"PK", "application/zip"),
)
_PRINTABLE_RE = re.compile(rb"^[\x20-\x7e\t\n\r\x0b\x0c]*$")


def sniff_content_type(head: bytes) -> str:
    """Guess a MIME type from the leading bytes of a file."""
    for magic, mime in _MAGIC:
        if head.startswith(magic):
            return mime
    sample = head[:SNIFF_LENGTH]
    if not _PRINTABLE_RE.fullmatch(sample):
        return OCTET_STREAM
    text = sample.decode("ascii").strip()
    lowered = text.lower()
    if lowered.startswith("<!doctype html") or lowered.startswith("<html"):
        return "text/html"
    if text.startswith(("{", "[")):
        try:
            json.loads(text)
        except ValueError:
            return "text/plain"
        return "application/json"
    return "text/plain"


def content_type_for_name(name: str) -> str | None:
    """Map a file name's extension to a MIME type, if known."""
    dot = name.rfind(".")
    if dot == -1:
        return None
    return EXTENSION_TYPES.get(name[dot:].lower())
