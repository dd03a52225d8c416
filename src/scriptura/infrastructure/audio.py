"""Local staging of chunk audio and concatenation into a single file."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable, Sequence
from pathlib import Path

from pydub import AudioSegment

from scriptura.errors import ConcatenationError

logger = logging.getLogger(__name__)


def remove_files(paths: Iterable[str | Path]) -> int:
    """Delete *paths*, ignoring ones already gone. Returns how many were removed."""
    removed = 0
    for path in paths:
        path = Path(path)
        try:
            if path.exists():
                path.unlink()
                removed += 1
        except OSError as e:
            logger.warning(f"Failed to delete temp file {path}: {e}")
    return removed


class StagingArea:
    """Tracks every local file created for one request and removes them on exit.

    Files already consumed by a later step (concatenation, upload) are simply
    skipped during cleanup.
    """

    def __init__(self, directory: str | Path, prefix: str = "") -> None:
        self.directory = Path(directory)
        self.prefix = prefix
        self._paths: list[Path] = []

    @property
    def paths(self) -> list[Path]:
        return list(self._paths)

    def new_file(self, suffix: str = ".mp3", name: str | None = None) -> Path:
        path = self.directory / (name or f"{self.prefix}{uuid.uuid4()}{suffix}")
        self._paths.append(path)
        return path

    def leftovers(self) -> list[Path]:
        return [p for p in self._paths if p.exists()]

    def cleanup(self) -> None:
        removed = remove_files(self._paths)
        if removed:
            logger.info(f"Cleaned up {removed} staged audio file(s)")

    def __enter__(self) -> StagingArea:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None and self.leftovers():
            logger.error(f"Cleaning up {len(self.leftovers())} temporary audio file(s) due to error")
        self.cleanup()


def _concatenate(input_paths: Sequence[Path], output_path: Path, format: str) -> None:
    combined: AudioSegment | None = None
    for i, path in enumerate(input_paths):
        logger.debug(f"Loading segment {i + 1}/{len(input_paths)}")
        segment = AudioSegment.from_file(path, format=format)
        combined = segment if combined is None else combined + segment
    if combined is None:
        raise ValueError("No audio segments to concatenate")
    combined.export(output_path, format=format)


async def concatenate_audio_files(
    input_paths: Sequence[str | Path], output_path: str | Path, format: str = "mp3"
) -> Path:
    """Concatenate *input_paths* in order into *output_path*.

    The inputs are deleted whether or not concatenation succeeds; on failure a
    partially written output is deleted as well.
    """
    inputs = [Path(p) for p in input_paths]
    output = Path(output_path)
    logger.info(f"Concatenating {len(inputs)} files into {output}")
    try:
        await asyncio.to_thread(_concatenate, inputs, output, format)
    except Exception as e:
        logger.error(f"Error during audio concatenation: {e}")
        remove_files([output])
        raise ConcatenationError(f"Audio concatenation failed: {e}") from e
    finally:
        remove_files(inputs)
    return output
