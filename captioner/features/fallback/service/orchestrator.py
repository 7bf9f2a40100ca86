# File: captioner/features/fallback/service/orchestrator.py
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from captioner.core.errors import CaptionPipelineError, ExportFailed, LocaleTranscriptionFailed, TranscriptionCancelled
from captioner.core.media.ffmpeg import describe_audio_file
from captioner.core.shared_types import CaptionSegment
from captioner.core.tempfiles.arena import TempFileArena
from captioner.features.audio_analysis.domain.models import AudioAnalysis
from captioner.features.audio_export.domain.interfaces import IContainerNormalizer
from captioner.features.merge.service.engine import coalesce
from captioner.features.recognition.domain.models import (
    CancellationToken, Cancelled, EmptyResult, RecognitionOutcome, RecognizerError, RecognizerErrorKind, Success
)
from captioner.features.recognition.service.attempt import RecognitionAttempt, is_hard_failure, outcome_to_error
from captioner.features.segmentation.service.engine import SegmentationEngine
from ..domain.models import AttemptStage, FallbackPolicy, LocaleTranscript

logger = logging.getLogger(__name__)


class _LocaleRun:
    """Bookkeeping for one locale: what ran, what it returned, which hard errors occurred."""

    def __init__(self, locale: str):
        self.locale = locale
        self.outcomes: List[Tuple[AttemptStage, RecognitionOutcome]] = []
        self.hard_errors: List[CaptionPipelineError] = []

    @property
    def last_outcome(self) -> Optional[RecognitionOutcome]:
        return self.outcomes[-1][1] if self.outcomes else None

    def record(self, stage: AttemptStage, outcome: RecognitionOutcome):
        self.outcomes.append((stage, outcome))
        if is_hard_failure(outcome):
            self.hard_errors.append(outcome_to_error(outcome))

    def saw_file_open_error(self) -> bool:
        return any(
            isinstance(outcome, RecognizerError) and outcome.kind == RecognizerErrorKind.FILE_OPEN
            for _, outcome in self.outcomes
        )


class FallbackOrchestrator:
    """
    Decides, for one locale, which recognition attempts run and in what order:

        original -> normalized -> trimmed -> container export   (whole-file tier)
        -> segmented                                             (when mandatory)

    Stage and chunk failures are recovered here. A locale only fails when every
    tier came back empty and at least one of them hit a hard error.
    """

    def __init__(self,
                 attempt: RecognitionAttempt,
                 normalizer: IContainerNormalizer,
                 segmentation: SegmentationEngine,
                 policy: Optional[FallbackPolicy] = None):
        self.attempt = attempt
        self.normalizer = normalizer
        self.segmentation = segmentation
        self.policy = policy or FallbackPolicy()

    async def transcribe_locale(self,
                                media_path: Path,
                                locale: str,
                                analysis: Optional[AudioAnalysis],
                                arena: TempFileArena,
                                token: CancellationToken,
                                on_device_only: bool = False) -> LocaleTranscript:
        """
        Raises:
            TranscriptionCancelled: If the token was cancelled at any stage.
            LocaleTranscriptionFailed: Nothing recognized and at least one hard error occurred.
        """
        token.raise_if_cancelled()
        run = _LocaleRun(locale)

        whole: List[CaptionSegment] = []
        stage: Optional[AttemptStage] = None

        if analysis is not None and analysis.duration >= self.policy.force_segmentation_duration:
            logger.info(
                f"[{locale}] {analysis.duration:.0f}s >= {self.policy.force_segmentation_duration:.0f}s, "
                f"skipping whole-file recognition"
            )
        else:
            stage, whole = await self._whole_file(run, media_path, analysis, arena, token, on_device_only)

        segments, winner = whole, stage
        if self._needs_segmentation(analysis, whole):
            segmented = await self._segmented(run, analysis, arena, token, on_device_only)
            if len(segmented) > len(whole):
                logger.info(f"[{locale}] segmentation wins: {len(segmented)} vs {len(whole)} segments")
                segments, winner = segmented, AttemptStage.SEGMENTED
            else:
                logger.debug(f"[{locale}] keeping whole-file result: {len(whole)} vs {len(segmented)} segments")

        if not segments and run.hard_errors:
            raise LocaleTranscriptionFailed(locale, run.hard_errors[0])

        if not segments:
            logger.info(f"[{locale}] no speech recognized")
        return LocaleTranscript(locale=locale, segments=segments, stage=winner if segments else None)

    # --- Whole-file tier ---

    async def _whole_file(self, run: _LocaleRun, media_path: Path, analysis: Optional[AudioAnalysis],
                          arena: TempFileArena, token: CancellationToken,
                          on_device_only: bool) -> Tuple[Optional[AttemptStage], List[CaptionSegment]]:
        segments = await self._try_stage(run, AttemptStage.ORIGINAL, media_path, token, on_device_only)
        if segments:
            return AttemptStage.ORIGINAL, segments

        if analysis is not None and not _same_file(analysis.normalized_audio_path, media_path):
            segments = await self._try_stage(
                run, AttemptStage.NORMALIZED, analysis.normalized_audio_path, token, on_device_only
            )
            if segments:
                return AttemptStage.NORMALIZED, segments

        if self._should_trim(run, analysis):
            trim_start = max(0.0, analysis.leading_silence - self.policy.trim_lead_in)
            try:
                trimmed = await self.normalizer.trim(analysis.normalized_audio_path, trim_start, arena)
            except ExportFailed as e:
                logger.warning(f"[{run.locale}] trimmed export failed: {e}")
                run.hard_errors.append(e)
            else:
                segments = await self._try_stage(run, AttemptStage.TRIMMED, trimmed, token, on_device_only)
                if segments:
                    return AttemptStage.TRIMMED, [s.shifted(trim_start) for s in segments]

        if run.saw_file_open_error():
            token.raise_if_cancelled()
            try:
                exported = await self.normalizer.to_normalized_container(media_path, arena)
            except ExportFailed as e:
                logger.warning(f"[{run.locale}] container export failed: {e}")
                run.hard_errors.append(e)
            else:
                segments = await self._try_stage(
                    run, AttemptStage.CONTAINER_EXPORT, exported, token, on_device_only
                )
                if segments:
                    return AttemptStage.CONTAINER_EXPORT, segments

        return None, []

    def _should_trim(self, run: _LocaleRun, analysis: Optional[AudioAnalysis]) -> bool:
        return (
            analysis is not None
            and isinstance(run.last_outcome, EmptyResult)
            and analysis.leading_silence > self.policy.trim_min_leading_silence
            and analysis.duration > self.policy.trim_min_duration
        )

    async def _try_stage(self, run: _LocaleRun, stage: AttemptStage, path: Path,
                         token: CancellationToken, on_device_only: bool) -> List[CaptionSegment]:
        token.raise_if_cancelled()
        await describe_audio_file(path, f"{run.locale}.{stage.value}")

        outcome = await self.attempt.attempt(path, run.locale, on_device_only=on_device_only, token=token)
        if isinstance(outcome, Cancelled):
            raise TranscriptionCancelled(f"Cancelled during {stage.value} stage for {run.locale}")

        run.record(stage, outcome)
        if isinstance(outcome, Success):
            logger.debug(f"[{run.locale}] {stage.value} stage: {len(outcome.segments)} segments")
            return outcome.segments

        logger.debug(f"[{run.locale}] {stage.value} stage produced {type(outcome).__name__}")
        return []

    # --- Segmentation tier ---

    def _needs_segmentation(self, analysis: Optional[AudioAnalysis], whole: List[CaptionSegment]) -> bool:
        if analysis is None:
            return False
        duration = analysis.duration
        if duration >= self.policy.force_segmentation_duration:
            return True
        if not whole and duration > self.policy.segment_after_empty_duration:
            return True
        return duration >= self.policy.long_audio_duration and len(whole) < self.policy.long_audio_min_segments

    async def _segmented(self, run: _LocaleRun, analysis: AudioAnalysis, arena: TempFileArena,
                         token: CancellationToken, on_device_only: bool) -> List[CaptionSegment]:
        token.raise_if_cancelled()
        try:
            slices = await self.segmentation.segment(analysis, arena)
        except ExportFailed as e:
            logger.warning(f"[{run.locale}] segmentation export failed: {e}")
            run.hard_errors.append(e)
            return []

        collected: List[CaptionSegment] = []
        for index, chunk in enumerate(slices):
            token.raise_if_cancelled()
            outcome = await self.attempt.attempt(chunk.path, run.locale, on_device_only=on_device_only, token=token)
            if isinstance(outcome, Cancelled):
                raise TranscriptionCancelled(f"Cancelled during segmentation for {run.locale}")

            if isinstance(outcome, RecognizerError) and outcome.kind == RecognizerErrorKind.TOO_SHORT:
                # Silent stretches compress below the size gate; such a chunk holds no speech
                logger.debug(f"[{run.locale}] chunk {index + 1}/{len(slices)} is below the size gate, treated as empty")
                outcome = EmptyResult()

            run.record(AttemptStage.SEGMENTED, outcome)
            if isinstance(outcome, Success):
                collected.extend(s.shifted(chunk.start_offset) for s in outcome.segments)
            else:
                logger.warning(
                    f"[{run.locale}] chunk {index + 1}/{len(slices)} at {chunk.start_offset:.1f}s skipped: "
                    f"{type(outcome).__name__}"
                )

        collected.sort(key=lambda s: (s.start, s.end))
        return coalesce(collected, self.policy.coalesce_tolerance)


def _same_file(a: Path, b: Path) -> bool:
    try:
        return a.resolve() == b.resolve()
    except OSError:
        return a == b
