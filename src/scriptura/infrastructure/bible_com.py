"""HTTP client for the upstream scripture site."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from scriptura.errors import UpstreamStaleTokenError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.bible.com"
DEFAULT_TIMEOUT = 10.0


class BibleComClient:
    """Fetches the landing page, token-addressed data documents and version listings.

    Token-addressed resources answer 404 once the build token rotates; that
    status is reported as :class:`UpstreamStaleTokenError`. Every other
    failure is an :class:`UpstreamUnavailableError`.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self.timeout = timeout

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_landing_page(self) -> str:
        response = await self._request(f"{self.base_url}/", token_scoped=False)
        return response.text

    async def fetch_chapter(
        self,
        token: str,
        *,
        language: str,
        version_id: int,
        book: str,
        chapter: str,
        abbreviation: str,
    ) -> dict[str, Any]:
        usfm = f"{book.upper()}.{chapter}.{abbreviation}"
        url = f"{self.base_url}/_next/data/{token}/{language}/bible/{version_id}/{usfm}.json"
        params = {"versionId": version_id, "usfm": usfm}
        return await self._get_json(url, params=params, token_scoped=True)

    async def fetch_version(self, token: str, *, language: str, version_id: int) -> dict[str, Any]:
        url = f"{self.base_url}/_next/data/{token}/{language}/versions/{version_id}.json"
        return await self._get_json(url, token_scoped=True)

    async def fetch_versions(self, language_tag: str) -> dict[str, Any]:
        url = f"{self.base_url}/api/bible/versions"
        params = {"language_tag": language_tag, "type": "all"}
        return await self._get_json(url, params=params, token_scoped=False)

    async def fetch_configuration(self) -> dict[str, Any]:
        return await self._get_json(f"{self.base_url}/api/bible/configuration", token_scoped=False)

    async def _get_json(
        self, url: str, *, params: dict[str, Any] | None = None, token_scoped: bool
    ) -> dict[str, Any]:
        response = await self._request(url, params=params, token_scoped=token_scoped)
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamUnavailableError(f"Upstream returned invalid JSON for {url}") from e
        if not isinstance(data, dict):
            raise UpstreamUnavailableError(f"Unexpected data structure received from {url}")
        return data

    async def _request(
        self, url: str, *, params: dict[str, Any] | None = None, token_scoped: bool
    ) -> httpx.Response:
        logger.debug(f"GET {url} params={params}")
        try:
            response = await self._client.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if token_scoped and status == 404:
                raise UpstreamStaleTokenError(f"Upstream resource not found: {url}", 404) from e
            raise UpstreamUnavailableError(f"Upstream returned status {status} for {url}", status) from e
        except httpx.TimeoutException as e:
            raise UpstreamUnavailableError(f"Upstream request timed out: {url}", 504) from e
        except httpx.RequestError as e:
            raise UpstreamUnavailableError(f"Upstream request failed: {url}: {e}") from e
