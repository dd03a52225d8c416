from pathlib import Path
from unittest.mock import patch

import pytest

from scriptura.errors import ConcatenationError
from scriptura.infrastructure.audio import StagingArea, concatenate_audio_files, remove_files


class FakeSegment:
    """Stands in for ``pydub.AudioSegment``: concatenation joins the raw bytes."""

    def __init__(self, data: bytes):
        self.data = data

    @classmethod
    def from_file(cls, path, format=None):
        return cls(Path(path).read_bytes())

    def __add__(self, other):
        return FakeSegment(self.data + other.data)

    def export(self, path, format=None):
        Path(path).write_bytes(self.data)


def write_chunks(directory: Path, *payloads: bytes) -> list[Path]:
    paths = []
    for i, payload in enumerate(payloads):
        path = directory / f"chunk_{i}.mp3"
        path.write_bytes(payload)
        paths.append(path)
    return paths


@pytest.mark.asyncio
async def test_concatenate_in_order_and_remove_inputs(tmp_path):
    inputs = write_chunks(tmp_path, b"one", b"two", b"three")
    output = tmp_path / "final.mp3"

    with patch("scriptura.infrastructure.audio.AudioSegment", FakeSegment):
        result = await concatenate_audio_files(inputs, output)

    assert result == output
    assert output.read_bytes() == b"onetwothree"
    assert not any(p.exists() for p in inputs)


@pytest.mark.asyncio
async def test_concatenate_failure_removes_everything(tmp_path):
    inputs = write_chunks(tmp_path, b"one", b"two")
    output = tmp_path / "final.mp3"

    class BrokenSegment(FakeSegment):
        def export(self, path, format=None):
            Path(path).write_bytes(b"partial")
            raise RuntimeError("encoder crashed")

    with patch("scriptura.infrastructure.audio.AudioSegment", BrokenSegment):
        with pytest.raises(ConcatenationError):
            await concatenate_audio_files(inputs, output)

    assert not output.exists()
    assert not any(p.exists() for p in inputs)


@pytest.mark.asyncio
async def test_concatenate_nothing_is_an_error(tmp_path):
    with pytest.raises(ConcatenationError):
        await concatenate_audio_files([], tmp_path / "final.mp3")


def test_remove_files_counts_existing(tmp_path):
    present = write_chunks(tmp_path, b"a", b"b")

    assert remove_files([*present, tmp_path / "missing.mp3"]) == 2
    assert not any(p.exists() for p in present)


def test_staging_area_removes_files_on_exit(tmp_path):
    directory = tmp_path / "staging"

    with StagingArea(directory, prefix="RVR1960_GEN_1_") as staging:
        first = staging.new_file()
        first.write_bytes(b"a")
        named = staging.new_file(name="final_RVR1960_GEN_1.mp3")
        named.write_bytes(b"b")
        staging.new_file()  # never written

        assert first.name.startswith("RVR1960_GEN_1_")
        assert first.suffix == ".mp3"
        assert named == directory / "final_RVR1960_GEN_1.mp3"
        assert staging.leftovers() == [first, named]

    assert list(directory.iterdir()) == []


def test_staging_area_cleans_up_after_error(tmp_path):
    directory = tmp_path / "staging"

    with pytest.raises(RuntimeError):
        with StagingArea(directory) as staging:
            staging.new_file().write_bytes(b"a")
            raise RuntimeError("boom")

    assert list(directory.iterdir()) == []
