import logging
from typing import Any

from fastapi import APIRouter, Depends

from scriptura.models import AudioBibleRequest, ChapterReference
from scriptura.services.audio_service import AudioSynthesisOrchestrator
from scriptura.services.text_service import TextRetrievalService

from .dependencies import get_audio_service, get_text_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Bible"])


@router.get("/versions")
async def get_versions_configuration(
    text_service: TextRetrievalService = Depends(get_text_service),
) -> dict[str, Any]:
    """Default versions configuration."""
    return {"data": await text_service.get_versions_configuration()}


@router.get("/versions/{lang}")
async def get_versions_by_language(
    lang: str,
    text_service: TextRetrievalService = Depends(get_text_service),
) -> dict[str, Any]:
    """All versions for a 2-letter ISO 639-1 language code."""
    return {"data": await text_service.list_versions(lang)}


@router.post("/audio-bible")
async def create_audio_bible(
    request: AudioBibleRequest,
    audio_service: AudioSynthesisOrchestrator = Depends(get_audio_service),
) -> dict[str, str]:
    reference = request.to_reference()
    logger.info(f"Audio requested for {reference}")
    return {"audio_url": await audio_service.synthesize(reference)}


@router.get("/{lang}/{bible_abbreviation}")
async def get_version_info(
    lang: str,
    bible_abbreviation: str,
    text_service: TextRetrievalService = Depends(get_text_service),
) -> dict[str, Any]:
    info = await text_service.get_version_info(lang, bible_abbreviation)
    return {"data": info.model_dump(mode="json")}


@router.get("/{lang}/{bible_abbreviation}/{bible_book}/{bible_chapter}")
async def get_chapter(
    lang: str,
    bible_abbreviation: str,
    bible_book: str,
    bible_chapter: str,
    text_service: TextRetrievalService = Depends(get_text_service),
) -> dict[str, Any]:
    reference = ChapterReference(
        language=lang, version=bible_abbreviation, book=bible_book, chapter=bible_chapter
    )
    chapter = await text_service.get_chapter_text(reference)
    return {"data": chapter.model_dump(mode="json")}
