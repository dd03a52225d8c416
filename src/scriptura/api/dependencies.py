"""Process-wide service instances wired from settings (overridable in tests)."""

from functools import lru_cache

from scriptura.infrastructure.bible_com import BibleComClient
from scriptura.infrastructure.storage import StorageClient
from scriptura.infrastructure.tts import SpeechifyProvider
from scriptura.services.audio_service import AudioSynthesisOrchestrator
from scriptura.services.content_cache import ContentCache
from scriptura.services.single_flight import SingleFlight
from scriptura.services.text_service import TextRetrievalService
from scriptura.services.token_resolver import TokenResolver

from .settings import get_settings


@lru_cache
def get_upstream_client() -> BibleComClient:
    settings = get_settings()
    return BibleComClient(base_url=settings.upstream_base_url, timeout=settings.upstream_timeout)


@lru_cache
def get_token_resolver() -> TokenResolver:
    return TokenResolver(get_upstream_client().fetch_landing_page)


@lru_cache
def get_content_cache() -> ContentCache:
    settings = get_settings()
    return ContentCache(StorageClient.from_settings(settings), staging_dir=settings.staging_dir)


@lru_cache
def get_single_flight() -> SingleFlight | None:
    return SingleFlight() if get_settings().single_flight_enabled else None


@lru_cache
def get_text_service() -> TextRetrievalService:
    return TextRetrievalService(
        upstream=get_upstream_client(),
        token_resolver=get_token_resolver(),
        cache=get_content_cache(),
        single_flight=get_single_flight(),
    )


@lru_cache
def get_speech_provider() -> SpeechifyProvider:
    settings = get_settings()
    return SpeechifyProvider(api_url=settings.speech_api_url, timeout=settings.speech_timeout)


@lru_cache
def get_audio_service() -> AudioSynthesisOrchestrator:
    settings = get_settings()
    return AudioSynthesisOrchestrator(
        text_service=get_text_service(),
        speech_provider=get_speech_provider(),
        cache=get_content_cache(),
        char_limit=settings.speech_char_limit,
        max_concurrency=settings.synthesis_concurrency,
        staging_dir=settings.staging_dir,
        single_flight=get_single_flight(),
    )


async def close_clients() -> None:
    """Close the HTTP clients that were created, and forget them."""
    if get_upstream_client.cache_info().currsize:
        await get_upstream_client().aclose()
    if get_speech_provider.cache_info().currsize:
        await get_speech_provider().aclose()
    for factory in (
        get_audio_service,
        get_text_service,
        get_speech_provider,
        get_token_resolver,
        get_upstream_client,
    ):
        factory.cache_clear()
