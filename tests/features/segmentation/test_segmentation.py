import asyncio
from pathlib import Path

import pytest

from captioner.core.errors import ExportFailed
from captioner.core.tempfiles.arena import TempFileArena
from captioner.features.audio_analysis.domain.models import AudioAnalysis
from captioner.features.audio_export.domain.models import AudioSlice
from captioner.features.segmentation.domain.models import SegmentationConfig
from captioner.features.segmentation.service.engine import SegmentationEngine
from conftest import FakeNormalizer


def _analysis(path, duration):
    return AudioAnalysis(
        duration=duration, file_size_bytes=8000, average_rms_dbfs=-20.0,
        leading_silence=0.0, normalized_audio_path=path
    )


def test_default_geometry():
    config = SegmentationConfig()
    assert config.chunk_seconds == 300.0
    assert config.overlap_seconds == 0.5


@pytest.mark.parametrize("chunk, overlap", [(0.0, 0.0), (10.0, 12.0), (10.0, -0.1)])
def test_invalid_config(chunk, overlap):
    with pytest.raises(ValueError):
        SegmentationConfig(chunk_seconds=chunk, overlap_seconds=overlap)


def test_segments_cover_long_media(media_file, temp_root):
    media = media_file("normalized.m4a")
    normalizer = FakeNormalizer()
    engine = SegmentationEngine(normalizer)

    with TempFileArena(root=temp_root) as arena:
        slices = asyncio.run(engine.segment(_analysis(media, 1000.0), arena))

    assert [s.start_offset for s in slices] == [0.0, 300.0, 600.0, 900.0]


def test_folded_tail_passes_the_coverage_check(media_file, temp_root):
    media = media_file("normalized.m4a")
    engine = SegmentationEngine(FakeNormalizer())

    with TempFileArena(root=temp_root) as arena:
        slices = asyncio.run(engine.segment(_analysis(media, 600.2), arena))

    assert [s.start_offset for s in slices] == [0.0, 300.0]


def test_custom_geometry_is_passed_through(media_file, temp_root):
    media = media_file("normalized.m4a")
    engine = SegmentationEngine(FakeNormalizer(), SegmentationConfig(chunk_seconds=60.0, overlap_seconds=1.0))

    with TempFileArena(root=temp_root) as arena:
        slices = asyncio.run(engine.segment(_analysis(media, 150.0), arena))

    assert [s.start_offset for s in slices] == [0.0, 60.0, 120.0]


class _GappyNormalizer(FakeNormalizer):
    async def slice_segments(self, source, chunk_seconds, overlap_seconds, arena, total_duration=None):
        return [AudioSlice(Path("a.m4a"), 0.0), AudioSlice(Path("b.m4a"), chunk_seconds * 2)]


def test_gaps_are_rejected(media_file, temp_root):
    engine = SegmentationEngine(_GappyNormalizer())

    with TempFileArena(root=temp_root) as arena:
        with pytest.raises(ExportFailed):
            asyncio.run(engine.segment(_analysis(media_file(), 700.0), arena))


def test_export_failure_propagates(media_file, temp_root):
    engine = SegmentationEngine(FakeNormalizer(fail={"slice"}))

    with TempFileArena(root=temp_root) as arena:
        with pytest.raises(ExportFailed):
            asyncio.run(engine.segment(_analysis(media_file(), 700.0), arena))
