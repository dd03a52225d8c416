from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def split_text_into_chunks(text: str, limit: int) -> list[str]:
    """Split *text* into chunks of at most *limit* characters, breaking on whitespace.

    Words are packed greedily and joined with single spaces. A word longer
    than *limit* is cut into ``limit``-sized slices after the pending chunk
    is flushed, so no chunk ever exceeds the limit.
    """
    if limit <= 0:
        raise ValueError(f"Chunk limit must be positive, got {limit}")

    chunks: list[str] = []
    current_chunk = ""

    for word in text.split():
        if len(word) > limit:
            logger.warning(f"Word '{word[:50]}' exceeds limit {limit}, splitting mid-word")
            if current_chunk:
                chunks.append(current_chunk)
                current_chunk = ""
            chunks.extend(word[i : i + limit] for i in range(0, len(word), limit))
            continue

        separator = 1 if current_chunk else 0
        if len(current_chunk) + separator + len(word) <= limit:
            current_chunk += (" " if current_chunk else "") + word
        else:
            chunks.append(current_chunk)
            current_chunk = word

    if current_chunk:
        chunks.append(current_chunk)

    return chunks
