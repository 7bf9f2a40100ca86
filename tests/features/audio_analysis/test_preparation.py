import asyncio

import pytest

from captioner.core.errors import FileUnreadable
from captioner.features.audio_analysis.data.repository import SqlAnalysisStore
from captioner.features.audio_analysis.domain.interfaces import IAnalysisStore
from captioner.features.audio_analysis.service.preparation import AudioPreparationService
from conftest import FakeAnalyzer, FakeNormalizer


def test_friendly_container_is_analysed_in_place_and_cached(media_file, temp_root):
    media = media_file("talk.wav")
    analyzer, normalizer = FakeAnalyzer(duration=12.0), FakeNormalizer()
    service = AudioPreparationService(analyzer, normalizer, temp_root=temp_root)

    first = asyncio.run(service.prepare(media))
    second = asyncio.run(service.prepare(media))

    assert first is second
    assert first.normalized_audio_path == media
    assert analyzer.calls == [media]
    assert normalizer.events == []
    assert service.cached_path == media.resolve()


def test_other_containers_are_normalized_first(media_file, temp_root):
    media = media_file("lecture.mp4")
    analyzer, normalizer = FakeAnalyzer(), FakeNormalizer()
    service = AudioPreparationService(analyzer, normalizer, temp_root=temp_root)

    analysis = asyncio.run(service.prepare(media))

    assert normalizer.events == ["normalize"]
    assert analysis.normalized_audio_path != media
    assert analysis.normalized_audio_path.exists()
    assert analyzer.calls == [analysis.normalized_audio_path]


def test_export_failure_falls_back_to_original(media_file, temp_root):
    media = media_file("lecture.mkv")
    analyzer, normalizer = FakeAnalyzer(), FakeNormalizer(fail={"normalize"})
    service = AudioPreparationService(analyzer, normalizer, temp_root=temp_root)

    analysis = asyncio.run(service.prepare(media))

    assert analysis.normalized_audio_path == media
    assert analyzer.calls == [media]


def test_new_path_drops_previous_normalized_file(media_file, temp_root):
    first_media = media_file("one.mp4")
    second_media = media_file("two.mp4")
    service = AudioPreparationService(FakeAnalyzer(), FakeNormalizer(), temp_root=temp_root)

    first = asyncio.run(service.prepare(first_media))
    asyncio.run(service.prepare(second_media))

    assert not first.normalized_audio_path.exists()
    assert service.cached_path == second_media.resolve()


def test_invalidate_forces_reanalysis(media_file, temp_root):
    media = media_file("lecture.mp4")
    analyzer = FakeAnalyzer()
    service = AudioPreparationService(analyzer, FakeNormalizer(), temp_root=temp_root)

    analysis = asyncio.run(service.prepare(media))
    service.invalidate()

    assert service.cached_path is None
    assert not analysis.normalized_audio_path.exists()
    assert list(temp_root.iterdir()) == []

    asyncio.run(service.prepare(media))
    assert len(analyzer.calls) == 2


def test_analyzer_errors_propagate(media_file, temp_root):
    media = media_file("talk.wav")
    service = AudioPreparationService(FakeAnalyzer(error=FileUnreadable("bad")), FakeNormalizer(), temp_root=temp_root)

    with pytest.raises(FileUnreadable):
        asyncio.run(service.prepare(media))
    assert service.cached_path is None


def test_persistent_store_skips_decoding(media_file, temp_root, session_factory):
    media = media_file("lecture.mp4")
    store = SqlAnalysisStore(session_factory)

    first_analyzer = FakeAnalyzer(duration=321.0, leading_silence=1.5)
    first = AudioPreparationService(first_analyzer, FakeNormalizer(), store=store, temp_root=temp_root)
    asyncio.run(first.prepare(media))
    first.invalidate()

    # A fresh service (e.g. after restart) reuses the stored statistics
    second_analyzer = FakeAnalyzer(duration=1.0)
    second = AudioPreparationService(second_analyzer, FakeNormalizer(), store=store, temp_root=temp_root)
    restored = asyncio.run(second.prepare(media))

    assert second_analyzer.calls == []
    assert restored.duration == 321.0
    assert restored.leading_silence == 1.5
    # The normalized file is always produced fresh
    assert restored.normalized_audio_path.exists()
    assert restored.normalized_audio_path.suffix == ".m4a"


class _BrokenStore(IAnalysisStore):
    def load(self, fingerprint):
        raise OSError("disk gone")

    def save(self, fingerprint, analysis):
        raise OSError("disk gone")


def test_store_failures_are_not_fatal(media_file, temp_root):
    media = media_file("talk.wav")
    analyzer = FakeAnalyzer(duration=9.0)
    service = AudioPreparationService(analyzer, FakeNormalizer(), store=_BrokenStore(), temp_root=temp_root)

    analysis = asyncio.run(service.prepare(media))

    assert analysis.duration == 9.0
    assert analyzer.calls == [media]
