from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from captioner.core.tempfiles.arena import TempFileArena
from .models import AudioSlice

class IContainerNormalizer(ABC):
    """
    Contract for producing recognizer-friendly audio files.
    Every operation writes a NEW file into the given arena and never touches the input.
    """

    @abstractmethod
    async def to_normalized_container(self, source: Path, arena: TempFileArena) -> Path:
        """
        Re-encodes the audio track of `source` into a small mono compressed container.

        Raises:
            ExportFailed: If the export could not be produced.
        """
        pass

    @abstractmethod
    async def slice_segments(self,
                             source: Path,
                             chunk_seconds: float,
                             overlap_seconds: float,
                             arena: TempFileArena,
                             total_duration: Optional[float] = None) -> List[AudioSlice]:
        """
        Exports consecutive time ranges of `chunk_seconds`, each non-final one
        extended by `overlap_seconds`. Returned in timeline order.
        """
        pass

    @abstractmethod
    async def trim(self, source: Path, start_seconds: float, arena: TempFileArena) -> Path:
        """
        Exports `source` from `start_seconds` to its end.
        """
        pass
