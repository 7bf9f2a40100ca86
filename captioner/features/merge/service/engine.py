# File: captioner/features/merge/service/engine.py
import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from captioner.core.shared_types import CaptionSegment
from ..data.script_detector import ScriptLanguageDetector, script_ratios
from ..domain.interfaces import ILanguageDetector
from ..domain.models import MergeConfig

logger = logging.getLogger(__name__)

# Float slack on time comparisons
_EPSILON = 1e-9

# Detector answers that earn the bonus
_BONUS_LANGUAGES = frozenset({"zh", "en"})


@dataclass(frozen=True)
class _Candidate:
    locale: str
    segment: CaptionSegment


def _overlaps(a_start: float, a_end: float, b_start: float, b_end: float, tolerance: float) -> bool:
    return not (a_end + tolerance < b_start - _EPSILON or b_end + tolerance < a_start - _EPSILON)


def _strictly_overlaps(a: CaptionSegment, b: CaptionSegment) -> bool:
    return a.start < b.end - _EPSILON and b.start < a.end - _EPSILON


def coalesce(segments: Sequence[CaptionSegment], tolerance: float) -> List[CaptionSegment]:
    """
    Joins neighbours with identical text whose gap is at most `tolerance`.
    The joined segment keeps the earlier start and ends at the later end.
    Input must be sorted by start.
    """
    result: List[CaptionSegment] = []
    for seg in segments:
        if result and result[-1].text == seg.text and result[-1].end + tolerance + _EPSILON >= seg.start:
            result[-1] = result[-1].extended_to(seg.end)
        else:
            result.append(seg)
    return result


class MergeEngine:
    """
    Combines per-locale transcripts into one ordered, non-overlapping track.

    Phase 1 groups the pooled segments into overlap clusters. Inside a cluster,
    lines are accepted best score first, skipping any that sit on top of an
    accepted line, so the winning locale can change from one window to the next.
    Phase 2 coalesces identical neighbours left over from chunk overlap.
    """

    def __init__(self, detector: Optional[ILanguageDetector] = None, config: Optional[MergeConfig] = None):
        self.detector = detector or ScriptLanguageDetector()
        self.config = config or MergeConfig()

    def merge(self, transcripts: Mapping[str, Sequence[CaptionSegment]]) -> List[CaptionSegment]:
        pool = [
            _Candidate(locale=locale, segment=seg)
            for locale, segments in transcripts.items()
            for seg in segments
        ]
        if not pool:
            return []

        # Content-based order makes the result independent of input order
        pool.sort(key=lambda c: (c.segment.start, c.segment.end, c.segment.text, c.locale))

        kept: List[CaptionSegment] = []
        for cluster in self._clusters(pool):
            kept.extend(self._resolve(cluster))

        kept.sort(key=lambda s: (s.start, s.end))
        merged = coalesce(kept, self.config.coalesce_tolerance)
        logger.debug(
            f"Merged {len(pool)} segments from {len(transcripts)} locales into {len(merged)}"
        )
        return merged

    def score(self, text: str, locale: str) -> float:
        cjk_ratio, latin_ratio = script_ratios(text)
        prefix = locale.lower()

        value = 0.0
        if prefix.startswith("zh"):
            value += cjk_ratio * self.config.locale_script_weight
        if prefix.startswith("en"):
            value += latin_ratio * self.config.locale_script_weight
        value += (cjk_ratio + latin_ratio) * self.config.script_ratio_weight
        value += max(1, len(text.strip())) * self.config.char_weight
        if self.detector.detect(text) in _BONUS_LANGUAGES:
            value += self.config.detector_bonus
        return value

    def _clusters(self, pool: List[_Candidate]) -> List[List[_Candidate]]:
        clusters: List[List[_Candidate]] = []
        current: List[_Candidate] = []
        bound_start = bound_end = 0.0

        for cand in pool:
            seg = cand.segment
            if current and _overlaps(bound_start, bound_end, seg.start, seg.end, self.config.cluster_tolerance):
                current.append(cand)
                bound_end = max(bound_end, seg.end)
                continue
            if current:
                clusters.append(current)
            current = [cand]
            bound_start, bound_end = seg.start, seg.end

        if current:
            clusters.append(current)
        return clusters

    def _resolve(self, cluster: List[_Candidate]) -> List[CaptionSegment]:
        if len(cluster) == 1:
            return [cluster[0].segment]

        # Best score first; sorted() is stable, so ties keep pool order
        ranked = sorted(cluster, key=lambda c: -self.score(c.segment.text, c.locale))

        # Any locale may fill a window the higher-ranked lines left free
        kept: List[CaptionSegment] = []
        for cand in ranked:
            if not any(_strictly_overlaps(cand.segment, k) for k in kept):
                kept.append(cand.segment)
        return kept
