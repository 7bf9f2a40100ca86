from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple


def dedupe_locales(locales: Optional[Iterable[str]], default_locale: str) -> List[str]:
    """
    Keeps the first occurrence of each locale (case-insensitive) in request order.
    An empty request means the default locale.
    """
    seen = set()
    result = []
    for locale in locales or []:
        locale = locale.strip()
        if not locale or locale.lower() in seen:
            continue
        seen.add(locale.lower())
        result.append(locale)
    return result or [default_locale]


@dataclass(frozen=True)
class TranscriptionRequest:
    media_path: Path
    locales: Tuple[str, ...]
