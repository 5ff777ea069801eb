"""
HTTP transport strategy for remote providers.

A transport is any callable taking (url, method, body, headers, timeout)
and returning a TransportResult. It must not raise: failures without an
HTTP response come back with status 0 and an error message. Tests inject
stubs; production uses HttpxTransport.
"""

from dataclasses import dataclass
from typing import Protocol

import httpx

from gatekeeper.core.logging import get_logger
from gatekeeper.core.typing import StringDict

logger = get_logger("providers.transport")


@dataclass
class TransportResult:
    status: int = 0  # 0 = no HTTP response received
    body: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status < 500

    @property
    def is_server_error(self) -> bool:
        return self.status >= 500


class Transport(Protocol):
    def __call__(
        self,
        url: str,
        method: str,
        body: str,
        headers: StringDict,
        timeout: float,
    ) -> TransportResult:
        ...


class HttpxTransport:
    """Synchronous transport backed by a shared httpx.Client."""

    def __init__(self, client: httpx.Client | None = None):
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(follow_redirects=True)
        return self._client

    def __call__(
        self,
        url: str,
        method: str,
        body: str,
        headers: StringDict,
        timeout: float,
    ) -> TransportResult:
        try:
            response = self.client.request(
                method,
                url,
                content=body.encode("utf-8") if body else None,
                headers=headers,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {url} timed out after {timeout}s: {e}")
            return TransportResult(error=f"timeout: {e}")
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {e}")
            return TransportResult(error=str(e) or e.__class__.__name__)

        return TransportResult(status=response.status_code, body=response.text)

    def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            self._client.close()
            self._client = None
