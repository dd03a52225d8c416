"""Content-addressed cache over object storage for text, metadata and audio.

Key layout::

    text/{VERSION}/{BOOK}/{CHAPTER}.json
    audio/{VERSION}/{BOOK}/{CHAPTER}.mp3
    versions/{VERSION}.json
    versions/{LANG}/index.json
    versions/index.json

Keys are write-once in practice. Concurrent writers of one key race
(last write wins); callers that care coalesce through ``SingleFlight``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import tempfile
import uuid
from pathlib import Path
from typing import Any

from scriptura.errors import StorageError
from scriptura.infrastructure.storage import StorageClient
from scriptura.models import ChapterReference

logger = logging.getLogger(__name__)

VERSIONS_INDEX_KEY = "versions/index.json"


def text_key(reference: ChapterReference) -> str:
    return f"text/{reference.version}/{reference.book}/{reference.chapter}.json"


def audio_key(reference: ChapterReference) -> str:
    return f"audio/{reference.version}/{reference.book}/{reference.chapter}.mp3"


def version_key(abbreviation: str) -> str:
    return f"versions/{abbreviation}.json"


def language_versions_key(language: str) -> str:
    return f"versions/{language.lower()}/index.json"


class ContentCache:
    """Key/value store of immutable JSON documents and binary blobs.

    The strict methods (``exists``/``get``/``put``) raise ``StorageError``.
    The ``lookup_*``/``store_json`` helpers treat the cache as advisory:
    read failures look like misses, write failures are logged and dropped.
    """

    def __init__(self, storage: StorageClient, staging_dir: str | Path | None = None):
        self.storage = storage
        self.staging_dir = Path(staging_dir or tempfile.gettempdir())

    def public_url(self, key: str) -> str:
        return self.storage.public_url(key)

    async def exists(self, key: str) -> bool:
        return await self.storage.exists(key)

    async def get(self, key: str) -> bytes:
        return await self.storage.download_bytes(key)

    async def get_json(self, key: str) -> Any:
        raw = await self.get(key)
        try:
            return json.loads(raw)
        except ValueError as e:
            raise StorageError(f"Cached object {key} is not valid JSON: {e}") from e

    async def put(self, key: str, local_file_path: str | Path, content_type: str) -> str:
        """Upload *local_file_path* under *key*; the local file is always removed."""
        return await self.storage.upload_file(key, local_file_path, content_type)

    async def put_json(self, key: str, data: Any) -> str:
        self.staging_dir.mkdir(parents=True, exist_ok=True)
        temp_path = self.staging_dir / f"{uuid.uuid4()}.json"
        payload = json.dumps(data, ensure_ascii=False).encode("utf-8")
        try:
            await asyncio.to_thread(temp_path.write_bytes, payload)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise StorageError(f"Could not stage JSON for {key}: {e}") from e
        return await self.put(key, temp_path, "application/json")

    async def lookup_json(self, key: str) -> Any | None:
        """Return the cached JSON document for *key*, or None on miss or failure."""
        try:
            if not await self.exists(key):
                return None
            data = await self.get_json(key)
        except StorageError as e:
            logger.warning(f"Cache read failed for {key}, continuing without cache: {e}")
            return None
        logger.info(f"Cache hit for {key}")
        return data

    async def lookup_url(self, key: str) -> str | None:
        """Return the public URL of *key* if it is already stored."""
        try:
            if await self.exists(key):
                logger.info(f"Cache hit for {key}")
                return self.public_url(key)
        except StorageError as e:
            logger.warning(f"Cache check failed for {key}, continuing without cache: {e}")
        return None

    async def store_json(self, key: str, data: Any) -> None:
        try:
            await self.put_json(key, data)
            logger.info(f"Cached {key}")
        except StorageError as e:
            logger.error(f"Error saving {key} to cache: {e}")
