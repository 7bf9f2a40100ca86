from pathlib import Path
from ..domain.models import AudioAnalysis
from .analyzer import PcmAudioAnalyzer

async def analyze_audio(audio_path: str) -> AudioAnalysis:
    """
    Standalone API for measuring one audio file (duration, loudness, leading silence).
    Useful for diagnostics without running recognition.
    """
    return await PcmAudioAnalyzer().analyze(Path(audio_path))
