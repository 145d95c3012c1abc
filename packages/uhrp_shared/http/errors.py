"""Failures raised by ``HttpClient`` for the host's outbound calls.

The host reaches three kinds of upstream over HTTP: the wallet, overlay relay
hosts and the exchange-rate feed. Each resource translates these into its own
exceptions before anything reaches a service.
"""

from __future__ import annotations


class UpstreamError(Exception):
    """Base class; ``retryable`` says whether the same call may later succeed."""

    def __init__(self, message: str, *, method: str, url: str, retryable: bool) -> None:
        super().__init__(message)
        self.method = method
        self.url = url
        self.retryable = retryable


class UpstreamUnreachable(UpstreamError):
    """No answer at all: connect failure, timeout or DNS error."""

    def __init__(self, message: str, *, method: str, url: str) -> None:
        super().__init__(message, method=method, url=url, retryable=True)


class UpstreamStatusError(UpstreamError):
    """The upstream answered with a non-2xx status."""

    def __init__(
        self, message: str, *, method: str, url: str, status_code: int, body: str
    ) -> None:
        super().__init__(
            message,
            method=method,
            url=url,
            retryable=status_code >= 500 or status_code == 429,
        )
        self.status_code = status_code
        self.body = body


class UpstreamPayloadError(UpstreamError):
    """A 2xx answer whose body is not the JSON object the caller expects."""

    def __init__(self, message: str, *, method: str, url: str, body: str) -> None:
        super().__init__(message, method=method, url=url, retryable=False)
        self.body = body
