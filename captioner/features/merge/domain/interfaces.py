from abc import ABC, abstractmethod
from typing import Optional


class ILanguageDetector(ABC):
    """
    Contract for guessing the dominant language of a caption line.
    """

    @abstractmethod
    def detect(self, text: str) -> Optional[str]:
        """
        Returns an ISO 639-1 code ('zh', 'en', ...) or None when undecided.
        """
        pass
