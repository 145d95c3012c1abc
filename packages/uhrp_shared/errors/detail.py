"""Structured failures carried back to storage clients.

Public component methods return envelopes instead of raising. Each failure is
an ``ErrorDetail``: ``code`` is the ``ERR_*`` string clients branch on and
``category`` picks the HTTP status the route layer answers with.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from . import codes


class ErrorCategory(str, Enum):
    """Failure classes, one per HTTP status family the host emits."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    POLICY = "policy"
    DEPENDENCY = "dependency"
    INTERNAL = "internal"


@dataclass(frozen=True)
class ErrorDetail:
    code: str
    message: str
    category: ErrorCategory
    retryable: bool = False
    metadata: Mapping[str, str] = field(default_factory=dict)

    def summary(self) -> str:
        """``CODE: message`` form used in log lines and span attributes."""
        return f"{self.code}: {self.message}"


def _detail(
    category: ErrorCategory,
    message: str,
    code: str,
    retryable: bool,
    metadata: Mapping[str, str] | None,
) -> ErrorDetail:
    return ErrorDetail(
        code=code,
        message=message,
        category=category,
        retryable=retryable,
        metadata=dict(metadata or {}),
    )


def validation_error(
    message: str,
    *,
    code: str = codes.INVALID_REQUEST,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Bad or missing input. Resubmitting the same request cannot succeed."""
    return _detail(ErrorCategory.VALIDATION, message, code, False, metadata)


def not_found_error(
    message: str,
    *,
    code: str = codes.NOT_FOUND,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    return _detail(ErrorCategory.NOT_FOUND, message, code, False, metadata)


def conflict_error(
    message: str,
    *,
    code: str = codes.CONFLICT,
    retryable: bool = False,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """The ledger moved underneath the caller, e.g. an output was already spent."""
    return _detail(ErrorCategory.CONFLICT, message, code, retryable, metadata)


def policy_error(
    message: str,
    *,
    code: str = codes.FORBIDDEN,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    return _detail(ErrorCategory.POLICY, message, code, False, metadata)


def dependency_error(
    message: str,
    *,
    code: str = codes.UPSTREAM,
    retryable: bool = True,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Wallet, overlay relay, exchange-rate feed or object store failed."""
    return _detail(ErrorCategory.DEPENDENCY, message, code, retryable, metadata)


def internal_error(
    message: str,
    *,
    code: str = codes.INTERNAL,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    return _detail(ErrorCategory.INTERNAL, message, code, False, metadata)
