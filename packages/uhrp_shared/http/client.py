"""Blocking httpx client shared by the wallet, relay and exchange-rate calls."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from .errors import UpstreamPayloadError, UpstreamStatusError, UpstreamUnreachable

# Error bodies are kept for logs only; upstream HTML error pages can be large.
_BODY_LIMIT = 2048


def _body_excerpt(response: httpx.Response) -> str:
    try:
        return response.text[:_BODY_LIMIT]
    except UnicodeDecodeError:
        return ""


class HttpClient:
    """One pooled ``httpx.Client`` per upstream.

    ``post`` returns the raw response for bodies the caller interprets itself
    (overlay ``/submit`` answers). ``get_object`` and ``post_object`` decode a
    JSON object and raise ``UpstreamPayloadError`` for anything else.
    """

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout_seconds: float = 10.0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
            headers=dict(headers or {}),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Issue one request; any non-2xx answer raises ``UpstreamStatusError``."""
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            target = str(exc.request.url)
            raise UpstreamUnreachable(
                f"{method} {target} failed: {type(exc).__name__}",
                method=method,
                url=target,
            ) from exc
        if response.is_error:
            raise UpstreamStatusError(
                f"{method} {response.request.url} answered {response.status_code}",
                method=method,
                url=str(response.request.url),
                status_code=response.status_code,
                body=_body_excerpt(response),
            )
        return response

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.send("POST", url, **kwargs)

    def get_object(self, url: str, **kwargs: Any) -> dict[str, Any]:
        return self._decode_object(self.send("GET", url, **kwargs))

    def post_object(self, url: str, *, json: Any, **kwargs: Any) -> dict[str, Any]:
        return self._decode_object(self.send("POST", url, json=json, **kwargs))

    @staticmethod
    def _decode_object(response: httpx.Response) -> dict[str, Any]:
        method = response.request.method
        url = str(response.request.url)
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamPayloadError(
                f"{method} {url} returned a body that is not JSON",
                method=method,
                url=url,
                body=_body_excerpt(response),
            ) from exc
        if not isinstance(payload, dict):
            raise UpstreamPayloadError(
                f"{method} {url} returned JSON that is not an object",
                method=method,
                url=url,
                body=_body_excerpt(response),
            )
        return payload
