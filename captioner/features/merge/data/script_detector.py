# File: captioner/features/merge/data/script_detector.py
import re
from typing import Optional

from ..domain.interfaces import ILanguageDetector

_CJK_RANGES = (
    (0x4E00, 0x9FFF),
    (0x3400, 0x4DBF),
    (0x20000, 0x2A6DF),
    (0x2A700, 0x2B73F),
    (0x2B740, 0x2B81F),
    (0x2B820, 0x2CEAF),
    (0xF900, 0xFAFF),
)
_KANA_RANGE = (0x3040, 0x30FF)
_HANGUL_RANGES = ((0xAC00, 0xD7AF), (0x1100, 0x11FF))

_ENGLISH_STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "is", "are", "was", "were", "be", "to", "of", "in",
    "on", "at", "for", "with", "it", "this", "that", "you", "i", "we", "they", "he", "she",
    "not", "do", "have", "has", "what", "so", "my", "your", "can", "will", "just", "there",
})

_WORD_RE = re.compile(r"[A-Za-z']+")


def _in_ranges(code: int, ranges) -> bool:
    return any(lo <= code <= hi for lo, hi in ranges)


def count_cjk(text: str) -> int:
    return sum(1 for ch in text if _in_ranges(ord(ch), _CJK_RANGES))


def count_latin(text: str) -> int:
    """ASCII letters only."""
    return sum(1 for ch in text if ("A" <= ch <= "Z") or ("a" <= ch <= "z"))


def script_ratios(text: str):
    """
    (cjk_ratio, latin_ratio) relative to the stripped character count.
    """
    total = max(1, len(text.strip()))
    return count_cjk(text) / total, count_latin(text) / total


class ScriptLanguageDetector(ILanguageDetector):
    """
    Lightweight detector based on Unicode script counts.
    Han text is 'zh' unless kana shows up ('ja'); Hangul is 'ko';
    Latin text is 'en' only if it contains common English function words.
    """

    def detect(self, text: str) -> Optional[str]:
        letters = [ch for ch in text if ch.isalpha()]
        if not letters:
            return None
        total = len(letters)

        kana = sum(1 for ch in letters if _KANA_RANGE[0] <= ord(ch) <= _KANA_RANGE[1])
        hangul = sum(1 for ch in letters if _in_ranges(ord(ch), _HANGUL_RANGES))
        cjk = count_cjk(text)
        latin = count_latin(text)

        if (cjk + kana) / total >= 0.5:
            return "ja" if kana > 0 and kana / total > 0.1 else "zh"
        if hangul / total >= 0.5:
            return "ko"
        if latin / total >= 0.5:
            words = {w.lower() for w in _WORD_RE.findall(text)}
            return "en" if words & _ENGLISH_STOPWORDS else None
        return None
