import asyncio

import pytest

pytest.importorskip("whisper")

from captioner.features.transcription.service import api
from captioner.features.transcription.service.pipeline import TranscriptionPipeline
from conftest import FakeAnalyzer, FakeNormalizer, FakeRecognizer, seg


@pytest.fixture
def fake_pipeline(monkeypatch, temp_root):
    recognizer = FakeRecognizer(
        handler=lambda path, locale: [seg(f"{locale} line", 0.0, 1.0)],
        supported=("en-US", "zh-Hant"),
        on_device=("en-US",)
    )
    pipeline = TranscriptionPipeline(
        recognizer=recognizer,
        normalizer=FakeNormalizer(),
        analyzer=FakeAnalyzer(),
        allow_cloud_fallback=True,
        default_locale="en-US",
        temp_root=temp_root
    )
    monkeypatch.setattr(api, "_pipeline", pipeline)
    return pipeline


def test_module_functions_share_one_pipeline(fake_pipeline, media_file):
    assert api.get_pipeline() is fake_pipeline

    result = asyncio.run(api.transcribe_media(str(media_file()), ["zh-Hant"]))
    assert result == [seg("zh-Hant line", 0.0, 1.0)]

    api.set_allow_cloud_fallback(False)
    assert fake_pipeline.allow_cloud_fallback is False
    result = asyncio.run(api.transcribe_media(str(media_file()), ["zh-Hant", "en-US"]))
    assert result == [seg("en-US line", 0.0, 1.0)]


def test_cancel_without_invocation_is_a_no_op(fake_pipeline):
    api.cancel_transcription()
    assert fake_pipeline.current is None
