"""Shared HTTP plumbing for the provider's Messages and Files endpoints.

Both clients authenticate with an API key passed in at construction, send
the version and beta headers, and translate httpx failures into the
pipeline's error taxonomy:

- connect timeout             -> ProviderConnectTimeoutError
- read timeout                -> ProviderStillProcessingError
- non-2xx response            -> ServiceError(status, body)
- any other transport problem -> ProviderCallError
"""
import logging
from typing import Dict, List, Optional

import httpx

from filechat.errors import (
    ProviderCallError,
    ProviderConnectTimeoutError,
    ProviderStillProcessingError,
    ServiceError,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_API_VERSION = "2023-06-01"

CONNECT_TIMEOUT_SECONDS = 30.0
# Code execution can run for minutes before the first byte comes back.
READ_TIMEOUT_SECONDS = 300.0
WRITE_TIMEOUT_SECONDS = 30.0


def build_timeout(
    connect: float = CONNECT_TIMEOUT_SECONDS,
    read: float = READ_TIMEOUT_SECONDS,
    write: float = WRITE_TIMEOUT_SECONDS,
) -> httpx.Timeout:
    return httpx.Timeout(connect=connect, read=read, write=write, pool=connect)


class ProviderHTTPClient:
    """Base class for clients of the provider REST API.

    Attributes:
        api_key: Provider API key.
        base_url: API base URL (without ``/v1``).
        api_version: Value of the ``anthropic-version`` header.
        beta_features: Values joined into the ``anthropic-beta`` header.
        timeout: httpx timeout applied to every request.
    """

    def __init__(
        self,
        api_key: str,
        beta_features: List[str],
        base_url: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_key:
            raise ValueError("A provider API key is required")
        self.api_key = api_key
        self.beta_features = list(beta_features)
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.api_version = api_version or DEFAULT_API_VERSION
        self.timeout = timeout or build_timeout()
        self._transport = transport

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "anthropic-beta": ",".join(self.beta_features),
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        session_id: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs,
    ) -> httpx.Response:
        """Send one request and return the 2xx response.

        Args:
            method: HTTP method.
            path: Path below the base URL, e.g. ``/v1/files``.
            session_id: Container the request belongs to; reported back on
                read timeouts.
            headers: Extra headers merged over the defaults.
            **kwargs: Passed through to ``httpx.AsyncClient.request``.

        Raises:
            ProviderConnectTimeoutError: No connection within the connect timeout.
            ProviderStillProcessingError: No response within the read timeout.
            ServiceError: Non-2xx response.
            ProviderCallError: Any other transport failure.
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, headers=self._headers(headers), **kwargs)
        except httpx.ConnectTimeout as e:
            logger.error(f"Provider connection timeout on {method} {path}: {e}")
            raise ProviderConnectTimeoutError(str(e) or "connect timeout") from e
        except httpx.ReadTimeout as e:
            logger.error(f"Provider read timeout on {method} {path} (container={session_id})")
            raise ProviderStillProcessingError(session_id) from e
        except httpx.HTTPError as e:
            logger.error(f"Provider request failed on {method} {path}: {e.__class__.__name__} - {e}")
            raise ProviderCallError(f"{e.__class__.__name__}: {e}") from e

        if not response.is_success:
            logger.error(f"Provider API error on {method} {path}: {response.status_code} - {response.text}")
            raise ServiceError(response.status_code, response.text)

        return response

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderCallError(f"Invalid JSON response: {e}") from e
        if not isinstance(data, dict):
            raise ProviderCallError(f"Unexpected response payload: {type(data).__name__}")
        return data
