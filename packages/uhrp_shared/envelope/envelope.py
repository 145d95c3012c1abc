"""Result envelope returned by every public component method."""

from __future__ import annotations

from typing import Generic, Iterable, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from packages.uhrp_shared.errors import ErrorDetail

from .meta import EnvelopeMeta

T = TypeVar("T")


class Payload(BaseModel, Generic[T]):
    model_config = ConfigDict(frozen=True, extra="forbid")

    value: T


class Envelope(BaseModel, Generic[T]):
    """Request metadata plus either a payload or the errors that prevented one."""

    model_config = ConfigDict(frozen=True)

    metadata: EnvelopeMeta
    payload: Payload[T] | None = None
    errors: list[ErrorDetail] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def first_error(self) -> ErrorDetail | None:
        """The error a route reports; clients see one code per response."""
        return self.errors[0] if self.errors else None


def success(*, meta: EnvelopeMeta, payload: T) -> Envelope[T]:
    return Envelope[T](metadata=meta, payload=Payload[T](value=payload))


def failure(*, meta: EnvelopeMeta, errors: Iterable[ErrorDetail]) -> Envelope[T]:
    """Failed envelope; at least one error is required."""
    collected = list(errors)
    if not collected:
        raise ValueError("a failed envelope needs at least one error")
    return Envelope[T](metadata=meta, errors=collected)
