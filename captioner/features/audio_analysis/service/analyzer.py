# File: captioner/features/audio_analysis/service/analyzer.py
import logging
from pathlib import Path
from typing import Optional

from captioner.core.errors import NoAudioTrack
from captioner.core.shared_types import MediaFile
from ..domain.interfaces import IAudioAnalyzer, IPcmSource
from ..domain.models import AnalysisConfig, AudioAnalysis
from ..data.ffmpeg_decoder import FFmpegPcmSource
from ..data.pcm_stats import compute_pcm_stats

logger = logging.getLogger(__name__)


class PcmAudioAnalyzer(IAudioAnalyzer):
    """
    Probes the container, decodes a bounded prefix to PCM and measures it.
    Pure read: nothing is written to disk.
    """

    def __init__(self, pcm_source: Optional[IPcmSource] = None, config: Optional[AnalysisConfig] = None):
        self.pcm_source = pcm_source or FFmpegPcmSource()
        self.config = config or AnalysisConfig()

    async def analyze(self, path: Path) -> AudioAnalysis:
        probe = await self.pcm_source.probe(path)
        if probe.sample_rate_hz is None:
            raise NoAudioTrack(f"No usable audio track in {path.name}")

        window = min(probe.duration, self.config.max_analysis_seconds)
        samples = await self.pcm_source.decode(path, window, self.config.sample_rate_hz)
        stats = compute_pcm_stats(samples, self.config.sample_rate_hz, self.config)

        analysis = AudioAnalysis(
            duration=probe.duration,
            file_size_bytes=MediaFile(path).size_bytes(),
            average_rms_dbfs=stats.average_rms_dbfs,
            leading_silence=stats.leading_silence,
            normalized_audio_path=path
        )
        logger.debug(
            f"AUDIO analysis {path.name}: duration={analysis.duration:.2f}s size={analysis.file_size_bytes}B "
            f"avgRMS={analysis.average_rms_dbfs:.1f}dBFS leadingSilence={analysis.leading_silence:.2f}s "
            f"analyzed={stats.analyzed_seconds:.1f}s"
        )
        return analysis
