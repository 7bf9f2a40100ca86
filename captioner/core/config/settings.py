# File: captioner/core/config/settings.py

import os
import shutil
import tempfile
from pathlib import Path


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


class Settings:
    # --- Paths ---
    # captioner/core/config/settings.py -> captioner/core/config -> captioner/core -> captioner -> ROOT
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent.parent
    DATA_DIR: Path = Path(os.getenv("CAPTIONER_DATA_DIR", str(BASE_DIR / "data")))
    TEMP_DIR: Path = Path(os.getenv("CAPTIONER_TEMP_DIR", tempfile.gettempdir()))

    # --- Database (optional analysis cache) ---
    ANALYSIS_CACHE_ENABLED: bool = _env_flag("ANALYSIS_CACHE_ENABLED", "false")

    @property
    def DATABASE_URL(self) -> str:
        explicit = os.getenv("CAPTIONER_DATABASE_URL")
        if explicit:
            return explicit
        return f"sqlite:///{self.DATA_DIR / 'captioner.db'}"

    # --- External Tools ---
    # Auto-detect ffmpeg/ffprobe or use env var
    FFMPEG_BINARY: str = os.getenv("FFMPEG_BINARY_PATH", shutil.which("ffmpeg") or "ffmpeg")
    FFPROBE_BINARY: str = os.getenv("FFPROBE_BINARY_PATH", shutil.which("ffprobe") or "ffprobe")

    # --- Recognizer ---
    WHISPER_MODEL_NAME: str = os.getenv("WHISPER_MODEL_NAME", "small")
    WHISPER_DEVICE: str = "cuda" if _env_flag("USE_CUDA", "true") else "cpu"
    RECOGNITION_TIMEOUT_SECONDS: float = float(os.getenv("RECOGNITION_TIMEOUT_SECONDS", "180"))
    ALLOW_CLOUD_FALLBACK: bool = _env_flag("ALLOW_CLOUD_FALLBACK", "true")
    DEFAULT_LOCALE: str = os.getenv("DEFAULT_LOCALE", "en-US")

    def ensure_dirs(self):
        """Creates necessary data directories if they don't exist."""
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)
        self.TEMP_DIR.mkdir(parents=True, exist_ok=True)


settings = Settings()
