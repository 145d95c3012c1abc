"""Request-scoped log fields carried in a ContextVar.

Fields bound for a block appear on every record formatted inside it, including
threadpool work started from that block.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from types import MappingProxyType
from typing import Iterator, Mapping

_EMPTY: Mapping[str, str] = MappingProxyType({})
_FIELDS: ContextVar[Mapping[str, str]] = ContextVar("uhrp_log_fields", default=_EMPTY)


def current_fields() -> dict[str, str]:
    return dict(_FIELDS.get())


@contextmanager
def scoped_fields(values: Mapping[str, object]) -> Iterator[None]:
    """Add ``values`` (stringified, ``None`` skipped) for the duration of a block."""
    merged = dict(_FIELDS.get())
    merged.update({key: str(value) for key, value in values.items() if value is not None})
    token = _FIELDS.set(MappingProxyType(merged))
    try:
        yield
    finally:
        _FIELDS.reset(token)
