# File: captioner/features/audio_analysis/service/preparation.py
import dataclasses
import logging
from pathlib import Path
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from captioner.core.errors import ExportFailed
from captioner.core.media.ffmpeg import describe_audio_file
from captioner.core.tempfiles.arena import TempFileArena
from captioner.features.audio_export.domain.interfaces import IContainerNormalizer
from captioner.features.audio_export.domain.models import ExportConfig
from ..domain.interfaces import IAudioAnalyzer, IAnalysisStore
from ..domain.models import AudioAnalysis, MediaFingerprint

logger = logging.getLogger(__name__)


class AudioPreparationService:
    """
    Runs normalization + analysis once per media file and keeps the result.

    The cached analysis (and the normalized file it points to) survives across
    invocations on the same path; preparing a different path, or calling
    invalidate(), drops it and deletes its files.
    """

    def __init__(self,
                 analyzer: IAudioAnalyzer,
                 normalizer: IContainerNormalizer,
                 store: Optional[IAnalysisStore] = None,
                 export_config: Optional[ExportConfig] = None,
                 temp_root: Optional[Path] = None):
        self.analyzer = analyzer
        self.normalizer = normalizer
        self.store = store
        self.export_config = export_config or ExportConfig()
        self.temp_root = temp_root

        self._cached: Optional[Tuple[Path, AudioAnalysis]] = None
        self._arena: Optional[TempFileArena] = None

    @property
    def cached_path(self) -> Optional[Path]:
        return self._cached[0] if self._cached else None

    async def prepare(self, media_path: Path) -> AudioAnalysis:
        """
        Raises:
            FileUnreadable / NoAudioTrack: From the analyzer. Callers treat these as non-fatal.
        """
        key = media_path.resolve()

        if self._cached and self._cached[0] == key:
            analysis = self._cached[1]
            if analysis.normalized_audio_path.exists():
                logger.debug(f"AUDIO analysis cache hit for {media_path.name}")
                return analysis

        # Different media (or the cached file vanished): start over
        self.invalidate()
        self._arena = TempFileArena(label="prepared", root=self.temp_root)

        logger.debug(f"AUDIO prepare start for {media_path.name}")
        base = media_path
        if not self.export_config.is_friendly(media_path):
            try:
                base = await self.normalizer.to_normalized_container(media_path, self._arena)
                logger.debug(f"AUDIO exported normalized base={base.name}")
            except ExportFailed as e:
                logger.warning(f"AUDIO normalized export failed, falling back to original container: {e}")

        await describe_audio_file(base, "analysis.base")

        analysis = self._load_from_store(media_path, base)
        if analysis is None:
            analysis = await self.analyzer.analyze(base)
            self._save_to_store(media_path, analysis)

        self._cached = (key, analysis)
        return analysis

    def invalidate(self):
        self._cached = None
        if self._arena is not None:
            self._arena.cleanup()
            self._arena = None

    def _load_from_store(self, media_path: Path, base: Path) -> Optional[AudioAnalysis]:
        if self.store is None:
            return None
        try:
            stored = self.store.load(MediaFingerprint.of(media_path))
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"AUDIO analysis cache unavailable: {e}")
            return None
        if stored is None:
            return None

        logger.debug(f"AUDIO analysis restored from store for {media_path.name}")
        return dataclasses.replace(stored, normalized_audio_path=base)

    def _save_to_store(self, media_path: Path, analysis: AudioAnalysis):
        if self.store is None:
            return
        try:
            self.store.save(MediaFingerprint.of(media_path), analysis)
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"AUDIO could not persist analysis for {media_path.name}: {e}")
