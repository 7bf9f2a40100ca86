# File: tests/conftest.py

import asyncio
import os
import shutil
import sys
from pathlib import Path

import pytest
import sqlalchemy
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

# 1. Add project root to path
sys.path.append(os.getcwd())

from captioner.core.database.connection import init_db
from captioner.core.errors import ExportFailed
from captioner.core.shared_types import CaptionSegment
from captioner.features.audio_analysis.domain.interfaces import IAudioAnalyzer
from captioner.features.audio_analysis.domain.models import AudioAnalysis
from captioner.features.audio_export.domain.interfaces import IContainerNormalizer
from captioner.features.audio_export.domain.models import AudioSlice, plan_slices
from captioner.features.recognition.domain.interfaces import ISpeechRecognizer

FFMPEG_AVAILABLE = shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None
requires_ffmpeg = pytest.mark.skipif(not FFMPEG_AVAILABLE, reason="ffmpeg/ffprobe not installed")

# Comfortably above the recognizer's minimum file size
FAKE_AUDIO_BYTES = 8000


def seg(text: str, start: float, duration: float) -> CaptionSegment:
    return CaptionSegment(text=text, start=start, duration=duration)


def write_fake_audio(path: Path, size: int = FAKE_AUDIO_BYTES) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x00" * size)
    return path


# --- Fakes for the external collaborators ---

class FakeRecognizer(ISpeechRecognizer):
    """
    Recognizer driven by a handler(path, locale) -> segments (or raise).
    `delay` (or delay_for(path)) keeps the call pending to exercise timeouts and cancellation.
    """

    def __init__(self, handler=None, supported=("en-US", "zh-Hant"), on_device=None, delay=0.0, delay_for=None):
        self.handler = handler or (lambda path, locale: [])
        self.supported = {loc.lower() for loc in supported}
        self.on_device = self.supported if on_device is None else {loc.lower() for loc in on_device}
        self.delay = delay
        self.delay_for = delay_for
        self.calls = []
        self.cancelled_calls = 0

    async def recognize(self, audio_path, locale, on_device_only):
        audio_path = Path(audio_path)
        self.calls.append((audio_path, locale))
        delay = self.delay_for(audio_path) if self.delay_for else self.delay
        if delay:
            try:
                await asyncio.sleep(delay)
            except asyncio.CancelledError:
                self.cancelled_calls += 1
                raise
        return self.handler(audio_path, locale)

    def supports_locale(self, locale):
        return locale.lower() in self.supported

    def supports_on_device(self, locale):
        return locale.lower() in self.on_device

    def paths_called(self):
        return [path for path, _ in self.calls]

    def locales_called(self):
        return [locale for _, locale in self.calls]


class FakeNormalizer(IContainerNormalizer):
    """
    Writes placeholder files into the arena and records every operation.
    """

    def __init__(self, fail=(), default_duration=60.0):
        self.fail = set(fail)
        self.default_duration = default_duration
        self.events = []
        self.trims = []
        self.exports = []
        self.slices = []

    def _check(self, op):
        self.events.append(op)
        if op in self.fail:
            raise ExportFailed(f"fake {op} failure")

    async def to_normalized_container(self, source, arena):
        self._check("normalize")
        out = write_fake_audio(arena.new_path(".m4a", hint="normalized"))
        self.exports.append((Path(source), out))
        return out

    async def slice_segments(self, source, chunk_seconds, overlap_seconds, arena, total_duration=None):
        self._check("slice")
        total = self.default_duration if total_duration is None else total_duration
        result = []
        for time_range in plan_slices(total, chunk_seconds, overlap_seconds):
            out = write_fake_audio(arena.new_path(".m4a", hint=f"chunk{time_range.start_seconds:.0f}"))
            result.append(AudioSlice(path=out, start_offset=time_range.start_seconds))
        self.slices = result
        return result

    async def trim(self, source, start_seconds, arena):
        self._check("trim")
        out = write_fake_audio(arena.new_path(".wav", hint="trim"))
        self.trims.append((Path(source), start_seconds, out))
        return out

    def offset_of(self, path):
        for chunk in self.slices:
            if chunk.path == path:
                return chunk.start_offset
        return None


class FakeAnalyzer(IAudioAnalyzer):
    def __init__(self, duration=30.0, leading_silence=0.0, rms=-20.0, error=None):
        self.duration = duration
        self.leading_silence = leading_silence
        self.rms = rms
        self.error = error
        self.calls = []

    async def analyze(self, path):
        self.calls.append(Path(path))
        if self.error is not None:
            raise self.error
        return AudioAnalysis(
            duration=self.duration,
            file_size_bytes=Path(path).stat().st_size,
            average_rms_dbfs=self.rms,
            leading_silence=self.leading_silence,
            normalized_audio_path=Path(path)
        )


# --- Fixtures ---

@pytest.fixture
def media_file(tmp_path):
    """Factory: media_file('talk.wav') -> path of a placeholder media file."""
    def _make(name="talk.wav", size=FAKE_AUDIO_BYTES):
        return write_fake_audio(tmp_path / "media" / name, size)
    return _make


@pytest.fixture
def temp_root(tmp_path):
    root = tmp_path / "arenas"
    root.mkdir()
    return root


@pytest.fixture(scope="session")
def test_engine(tmp_path_factory):
    """
    SQLite database for the analysis cache, created once per session.
    """
    db_path = tmp_path_factory.mktemp("db") / "captioner_test.db"
    engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """
    Runs before every DB test: empties all tables and hands out a session factory.
    """
    with test_engine.connect() as conn:
        trans = conn.begin()
        for table in sqlalchemy.inspect(test_engine).get_table_names():
            conn.execute(text(f'DELETE FROM "{table}";'))
        trans.commit()

    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
