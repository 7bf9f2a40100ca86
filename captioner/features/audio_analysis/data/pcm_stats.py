import numpy as np

from ..domain.models import AnalysisConfig, PcmStats, db_to_linear, linear_to_db

def compute_pcm_stats(samples: np.ndarray, sample_rate_hz: int, config: AnalysisConfig) -> PcmStats:
    """
    Loudness and leading silence over 20 ms non-overlapping windows.

    - RMS: running sum of squares over every analysed sample, converted to dBFS
      (floored at config.silence_floor_dbfs for digital silence).
    - Leading silence: windows are consumed from the start while their peak
      absolute sample stays below the silence threshold; the first louder
      window stops the run.
    """
    used = int(samples.shape[0])
    if used == 0:
        return PcmStats(average_rms_dbfs=config.silence_floor_dbfs, leading_silence=0.0, analyzed_seconds=0.0)

    x = np.abs(samples.astype(np.float64, copy=False))
    sum_squares = float(np.dot(x, x))
    rms = float(np.sqrt(sum_squares / max(1, used)))

    window = max(1, int(sample_rate_hz * config.window_seconds))
    starts = np.arange(0, used, window)
    peaks = np.maximum.reduceat(x, starts)

    threshold = db_to_linear(config.silence_threshold_dbfs)
    loud = np.flatnonzero(peaks >= threshold)
    # The silent run ends where the first loud window begins
    leading_frames = used if loud.size == 0 else int(starts[loud[0]])

    return PcmStats(
        average_rms_dbfs=linear_to_db(rms, config.silence_floor_dbfs),
        leading_silence=leading_frames / float(sample_rate_hz),
        analyzed_seconds=used / float(sample_rate_hz),
    )
