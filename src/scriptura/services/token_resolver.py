from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable

from scriptura.errors import TokenUnavailableError

logger = logging.getLogger(__name__)

# The upstream embeds its current build id in every static asset path.
BUILD_ID_PATTERN = re.compile(r"/_next/static/([a-zA-Z0-9_-]+)/_buildManifest\.js")


def extract_token(html: str) -> str | None:
    match = BUILD_ID_PATTERN.search(html or "")
    return match.group(1) if match else None


class TokenResolver:
    """Process-wide holder of the upstream address token.

    States are ``Unset`` (``token is None``) and ``Known``. ``resolve()``
    fetches the landing page only when unset; ``invalidate()`` forces the
    next ``resolve()`` to fetch again. Concurrent resolutions share one
    in-flight landing page fetch.
    """

    def __init__(self, fetch_landing_page: Callable[[], Awaitable[str]]) -> None:
        self._fetch_landing_page = fetch_landing_page
        self._token: str | None = None
        self._inflight: asyncio.Task[str] | None = None

    @property
    def token(self) -> str | None:
        return self._token

    async def resolve(self) -> str:
        if self._token is not None:
            return self._token

        task = self._inflight
        if task is None:
            task = asyncio.create_task(self._fetch_token())
            self._inflight = task
            task.add_done_callback(self._forget)
        return await asyncio.shield(task)

    def invalidate(self) -> None:
        if self._token is not None:
            logger.info(f"Invalidating upstream token {self._token}")
        self._token = None

    def _forget(self, task: asyncio.Task[str]) -> None:
        # Cleared even when every waiter was cancelled before the fetch ended.
        if self._inflight is task:
            self._inflight = None

    async def _fetch_token(self) -> str:
        logger.info("Fetching upstream landing page to resolve token")
        html = await self._fetch_landing_page()
        token = extract_token(html)
        if not token:
            logger.error("Token pattern not found in upstream landing page")
            raise TokenUnavailableError("Upstream token pattern not found in landing page")
        logger.info(f"Resolved upstream token: {token}")
        self._token = token
        return token
