import logging
from pathlib import Path

import numpy as np

from captioner.core.errors import FileUnreadable
from captioner.core.media.ffmpeg import FFmpegError, run_ffmpeg, probe_duration, probe_audio_sample_rate
from ..domain.interfaces import IPcmSource, ProbeResult

logger = logging.getLogger(__name__)

class FFmpegPcmSource(IPcmSource):
    """
    Reads audio through ffprobe/ffmpeg, streaming signed 16-bit little endian PCM over stdout.
    """

    async def probe(self, path: Path) -> ProbeResult:
        if not path.exists():
            raise FileUnreadable(f"Media not found: {path}")
        try:
            duration = await probe_duration(path)
            sample_rate = await probe_audio_sample_rate(path)
        except FFmpegError as e:
            raise FileUnreadable(f"Cannot open {path.name}: {e}") from e
        return ProbeResult(duration=duration, sample_rate_hz=sample_rate)

    async def decode(self, path: Path, max_seconds: float, sample_rate_hz: int) -> np.ndarray:
        # -t bounds the decode; -f s16le writes headerless PCM to stdout
        args = [
            "-i", str(path),
            "-vn",
            "-t", f"{max_seconds:.3f}",
            "-ac", "1",
            "-ar", str(sample_rate_hz),
            "-acodec", "pcm_s16le",
            "-f", "s16le",
            "pipe:1"
        ]
        try:
            raw = await run_ffmpeg(args)
        except FFmpegError as e:
            raise FileUnreadable(f"PCM decode failed for {path.name}: {e}") from e

        # Drop a trailing odd byte if the stream was cut mid-sample
        usable = len(raw) - (len(raw) % 2)
        samples = np.frombuffer(raw[:usable], dtype=np.int16).astype(np.float32) / 32768.0
        logger.debug(f"Decoded {samples.shape[0]} samples ({samples.shape[0] / sample_rate_hz:.2f}s) from {path.name}")
        return samples
