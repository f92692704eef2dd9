"""
HTTP-backed providers

HttpProvider owns an httpx.AsyncClient (or borrows an injected one) and
maps transport and status errors onto the provider failure taxonomy:

- timeouts, network errors, 429 and 5xx -> transient
- other 4xx (bad token, bad url)        -> permanent
"""

from typing import Any, Dict, Optional

import httpx

from zoom_sync.models.errors import PermanentProviderError, TransientProviderError
from zoom_sync.providers.base import DataProvider

USER_AGENT = "zoom-sync"


class HttpProvider(DataProvider):
    """DataProvider with a JSON GET helper"""

    def __init__(self, config, http_client: Optional[httpx.AsyncClient] = None, **context):
        super().__init__(config, **context)
        self._client = http_client
        self._owns_client = http_client is None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            )
            self._owns_client = True
        return self._client

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        client = self._ensure_client()
        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise TransientProviderError(f"Request to {url} timed out") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            details = {"status": status, "url": url}
            if status == 429 or status >= 500:
                raise TransientProviderError(f"HTTP {status} from {url}", details) from e
            raise PermanentProviderError(f"HTTP {status} from {url}", details) from e
        except httpx.HTTPError as e:
            raise TransientProviderError(f"Network error: {e}", {"url": url}) from e

        try:
            data = response.json()
        except ValueError as e:
            raise TransientProviderError(f"Invalid JSON from {url}") from e
        if not isinstance(data, dict):
            raise TransientProviderError(f"Unexpected response shape from {url}")
        return data

    async def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
