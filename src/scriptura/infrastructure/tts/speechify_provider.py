from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from scriptura.catalog import VoiceProfile
from scriptura.errors import SynthesisError
from scriptura.infrastructure.tts.base import ResponseFormat, SpeechProvider
from scriptura.models import SpeechResponse

logger = logging.getLogger(__name__)

SPEECHIFY_API_URL = "https://audio.api.speechify.com/generateAudioFiles"

# The endpoint only answers requests that look like they come from its web client.
_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/113.0",
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.5",
    "Origin": "https://speechify.com/voiceover/",
    "Referer": "https://speechify.com/voiceover/",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-site",
    "X-Speechify-Client": "API",
    "X-Speechify-Client-Version": "0.1.297",
}


class SpeechifyProvider(SpeechProvider):
    """Speech provider for the Speechify audio generation endpoint.

    One request per chunk; the response carries the chunk audio as a
    Base64 string in ``audioStream``.
    """

    name: str = "speechify"

    def __init__(
        self,
        api_url: str = SPEECHIFY_API_URL,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_url = api_url
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def synth(
        self,
        *,
        text: str,
        voice: VoiceProfile,
        format: ResponseFormat = "mp3",
    ) -> str:
        """Request audio for one chunk and return its Base64 payload."""
        logger.info(f"Requesting audio for chunk starting with: '{text[:50]}'")
        payload = {
            "audioFormat": format,
            "paragraphChunks": [text],
            "voiceParams": {
                "name": voice.name,
                "engine": voice.engine,
                "languageCode": voice.language_code,
            },
        }

        try:
            response = await self._client.post(
                self.api_url, json=payload, headers=_HEADERS, timeout=self.timeout
            )
        except httpx.HTTPError as e:
            raise SynthesisError(f"Failed to generate audio via Speechify: {e}") from e

        if response.status_code != 200:
            logger.error(f"Speechify API error: status {response.status_code}: {response.text[:200]}")
            raise SynthesisError(f"Speechify API returned status {response.status_code}")

        try:
            result = SpeechResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise SynthesisError(f"Invalid response received from Speechify API: {e}") from e

        if not result.audio_stream:
            raise SynthesisError("Invalid response received from Speechify API (missing audioStream)")
        return result.audio_stream
