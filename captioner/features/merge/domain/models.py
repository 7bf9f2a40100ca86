from dataclasses import dataclass


@dataclass(frozen=True)
class MergeConfig:
    """
    Scoring weights and time tolerances for merging per-locale transcripts.
    The weights were tuned by ear; only their relative order matters.
    """
    # Segments closer than this are treated as overlapping
    cluster_tolerance: float = 0.15
    # Identical neighbours closer than this are joined
    coalesce_tolerance: float = 0.15

    locale_script_weight: float = 2.0
    script_ratio_weight: float = 1.0
    char_weight: float = 0.01
    detector_bonus: float = 0.3
