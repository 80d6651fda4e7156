"""HTTP transport used by the persistence adapter.

Components that talk to the backend receive a ``Transport`` explicitly, so
the same calls can run against a real server, an in-process test client
or a desktop bridge without swapping a global.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from smflow.config import BASE_URL, HTTP_TIMEOUT
from smflow.errors import TransportError


class Transport(Protocol):
    """Send one JSON request and return the decoded JSON body (None when empty)."""

    def request(self, method: str, path: str, json: Any = None) -> Any:
        ...


class HttpxTransport:
    """Transport backed by an ``httpx.Client``."""

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = HTTP_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        """
        Args:
            base_url: Prefix joined with every request path
            timeout: HTTP request timeout in seconds
            client: Existing client to reuse; it is not closed by ``close()``
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def request(self, method: str, path: str, json: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self._client.request(method, url, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"{method} {url} failed with status {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise TransportError(f"Failed to connect to server at {self.base_url}: {e}") from e

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON in response from {url}") from e

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
