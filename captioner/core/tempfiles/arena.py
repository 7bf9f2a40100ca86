# File: captioner/core/tempfiles/arena.py

import logging
import shutil
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from captioner.core.config.settings import settings

logger = logging.getLogger(__name__)


@dataclass
class CleanupStats:
    files_removed: int = 0
    bytes_removed: int = 0


class TempFileArena:
    """
    Scoped owner of every temporary file one unit of work produces
    (normalized containers, trimmed exports, segmentation chunks).

    All paths live in one private directory which is removed on cleanup(),
    whether the work completed, failed or was cancelled.
    """

    def __init__(self, label: str = "captioner", root: Optional[Path] = None):
        self.label = label
        self._root = Path(root) if root else settings.TEMP_DIR
        self._dir: Optional[Path] = None
        self._paths: List[Path] = []
        self._closed = False

    @property
    def directory(self) -> Path:
        if self._closed:
            raise RuntimeError(f"Temp arena '{self.label}' is already cleaned up.")
        if self._dir is None:
            self._root.mkdir(parents=True, exist_ok=True)
            self._dir = Path(tempfile.mkdtemp(prefix=f"{self.label}_", dir=self._root))
        return self._dir

    def new_path(self, suffix: str, hint: str = "") -> Path:
        """
        Reserves a unique file path inside the arena. The file is not created.
        """
        stem = f"{uuid.uuid4().hex}_{hint}" if hint else uuid.uuid4().hex
        path = self.directory / f"{stem}{suffix}"
        self._paths.append(path)
        return path

    def owns(self, path: Path) -> bool:
        return self._dir is not None and Path(path).parent == self._dir

    @property
    def paths(self) -> List[Path]:
        return list(self._paths)

    def cleanup(self) -> CleanupStats:
        stats = CleanupStats()
        if self._closed:
            return stats
        self._closed = True

        if self._dir is None:
            return stats

        for item in self._dir.iterdir():
            if item.is_file():
                stats.files_removed += 1
                stats.bytes_removed += item.stat().st_size

        shutil.rmtree(self._dir, ignore_errors=True)
        logger.debug(
            f"Temp arena '{self.label}' cleaned: files={stats.files_removed} bytes={stats.bytes_removed}"
        )
        return stats

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cleanup()
        return False
