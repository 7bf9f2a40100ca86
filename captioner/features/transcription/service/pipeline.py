# File: captioner/features/transcription/service/pipeline.py
import asyncio
import logging
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from captioner.core.config.settings import settings
from captioner.core.errors import (
    AllLocalesFailed, CaptionPipelineError, FileUnreadable, LocaleTranscriptionFailed,
    NoCapableLocales, TranscriptionCancelled
)
from captioner.core.shared_types import CaptionSegment, MediaFile
from captioner.core.tempfiles.arena import TempFileArena
from captioner.features.audio_analysis.domain.interfaces import IAnalysisStore, IAudioAnalyzer
from captioner.features.audio_analysis.service.preparation import AudioPreparationService
from captioner.features.audio_export.domain.interfaces import IContainerNormalizer
from captioner.features.fallback.domain.models import FallbackPolicy
from captioner.features.fallback.service.orchestrator import FallbackOrchestrator
from captioner.features.merge.service.engine import MergeEngine
from captioner.features.recognition.domain.interfaces import ISpeechRecognizer
from captioner.features.recognition.domain.models import CancellationToken, RecognitionConfig
from captioner.features.recognition.service.attempt import RecognitionAttempt
from captioner.features.segmentation.domain.models import SegmentationConfig
from captioner.features.segmentation.service.engine import SegmentationEngine
from ..domain.models import TranscriptionRequest, dedupe_locales

logger = logging.getLogger(__name__)


class TranscriptionHandle:
    """
    One in-flight invocation. Cancelling it discards any partial result.
    """

    def __init__(self, request: TranscriptionRequest, task: asyncio.Task, token: CancellationToken):
        self.request = request
        self._task = task
        self._token = token

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._token.is_cancelled

    def cancel(self):
        self._token.cancel()
        self._task.cancel()

    async def wait(self):
        """Waits for the invocation to settle without raising."""
        if not self._task.done():
            await asyncio.wait({self._task})

    async def result(self) -> List[CaptionSegment]:
        """
        Returns the merged captions, or [] if the invocation was cancelled.

        Raises:
            CaptionPipelineError: NoCapableLocales, FileUnreadable or AllLocalesFailed.
        """
        await self.wait()
        if self._task.cancelled() or self._token.is_cancelled:
            return []
        return self._task.result()


class TranscriptionPipeline:
    """
    Entry point of the caption pipeline.

    Exactly one invocation is current at a time: start() cancels the previous
    handle and waits for it to settle before the new one runs.
    """

    def __init__(self,
                 recognizer: ISpeechRecognizer,
                 normalizer: IContainerNormalizer,
                 analyzer: IAudioAnalyzer,
                 store: Optional[IAnalysisStore] = None,
                 recognition_config: Optional[RecognitionConfig] = None,
                 segmentation_config: Optional[SegmentationConfig] = None,
                 policy: Optional[FallbackPolicy] = None,
                 merge_engine: Optional[MergeEngine] = None,
                 allow_cloud_fallback: Optional[bool] = None,
                 default_locale: Optional[str] = None,
                 temp_root: Optional[Path] = None):
        self.recognizer = recognizer
        self.preparation = AudioPreparationService(analyzer, normalizer, store=store, temp_root=temp_root)
        self.orchestrator = FallbackOrchestrator(
            attempt=RecognitionAttempt(
                recognizer,
                recognition_config or RecognitionConfig(timeout_seconds=settings.RECOGNITION_TIMEOUT_SECONDS)
            ),
            normalizer=normalizer,
            segmentation=SegmentationEngine(normalizer, segmentation_config),
            policy=policy
        )
        self.merge_engine = merge_engine or MergeEngine()
        self.allow_cloud_fallback = settings.ALLOW_CLOUD_FALLBACK if allow_cloud_fallback is None else allow_cloud_fallback
        self.default_locale = default_locale or settings.DEFAULT_LOCALE
        self.temp_root = temp_root

        self._current: Optional[TranscriptionHandle] = None
        self._lock = asyncio.Lock()

    def set_allow_cloud_fallback(self, allowed: bool):
        """Takes effect for the next invocation."""
        self.allow_cloud_fallback = allowed

    @property
    def current(self) -> Optional[TranscriptionHandle]:
        return self._current

    async def start(self, media_path, locales: Optional[Iterable[str]] = None) -> TranscriptionHandle:
        request = TranscriptionRequest(
            media_path=Path(media_path),
            locales=tuple(dedupe_locales(locales, self.default_locale))
        )
        async with self._lock:
            previous = self._current
            if previous is not None and not previous.done:
                logger.info(f"Cancelling transcription of {previous.request.media_path.name}")
                previous.cancel()
                await previous.wait()

            token = CancellationToken()
            task = asyncio.create_task(self._run(request, token))
            self._current = TranscriptionHandle(request, task, token)
            return self._current

    async def transcribe(self, media_path, locales: Optional[Iterable[str]] = None) -> List[CaptionSegment]:
        handle = await self.start(media_path, locales)
        return await handle.result()

    def cancel(self):
        if self._current is not None and not self._current.done:
            self._current.cancel()

    def invalidate_cache(self):
        self.preparation.invalidate()

    async def close(self):
        if self._current is not None and not self._current.done:
            self._current.cancel()
            await self._current.wait()
        self.preparation.invalidate()

    # --- One invocation ---

    async def _run(self, request: TranscriptionRequest, token: CancellationToken) -> List[CaptionSegment]:
        arena = TempFileArena(label="transcription", root=self.temp_root)
        started = time.monotonic()
        try:
            captions = await self._transcribe(request, token, arena)
            logger.info(
                f"Transcription of {request.media_path.name} finished: {len(captions)} captions "
                f"in {time.monotonic() - started:.1f}s"
            )
            return captions
        except TranscriptionCancelled:
            logger.info(f"Transcription of {request.media_path.name} cancelled, partial results discarded")
            return []
        finally:
            arena.cleanup()

    async def _transcribe(self, request: TranscriptionRequest, token: CancellationToken,
                          arena: TempFileArena) -> List[CaptionSegment]:
        allow_cloud = self.allow_cloud_fallback
        locales = [
            locale for locale in request.locales
            if self.recognizer.supports_locale(locale)
            and (allow_cloud or self.recognizer.supports_on_device(locale))
        ]
        if not locales:
            raise NoCapableLocales(request.locales, allow_cloud)

        skipped = [loc for loc in request.locales if loc not in locales]
        if skipped:
            logger.info(f"Skipping locales without a usable recognizer: {skipped}")

        media = MediaFile(request.media_path)
        if not media.exists():
            raise FileUnreadable(f"Media file not found: {request.media_path}")

        try:
            analysis = await self.preparation.prepare(request.media_path)
        except CaptionPipelineError as e:
            # Whole-file recognition still works without statistics
            logger.warning(f"Audio analysis failed for {request.media_path.name}, continuing without it: {e}")
            analysis = None

        transcripts: Dict[str, List[CaptionSegment]] = {}
        failures: Dict[str, CaptionPipelineError] = {}
        for locale in locales:
            token.raise_if_cancelled()
            try:
                transcript = await self.orchestrator.transcribe_locale(
                    request.media_path, locale, analysis, arena, token,
                    on_device_only=not allow_cloud
                )
            except LocaleTranscriptionFailed as e:
                logger.warning(f"Locale {locale} failed: {e.cause}")
                failures[locale] = e.cause
                continue
            transcripts[locale] = transcript.segments

        if not transcripts and failures:
            raise AllLocalesFailed(failures)

        token.raise_if_cancelled()
        return self.merge_engine.merge(transcripts)
