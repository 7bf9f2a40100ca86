# File: captioner/features/recognition/data/whisper_adapter.py
import asyncio
import logging
from threading import Lock
from pathlib import Path
from typing import List, Optional

import torch
import whisper
from whisper.tokenizer import LANGUAGES

from captioner.core.config.settings import settings
from captioner.core.model_lifecycle.orchestrator import ModelOrchestrator
from captioner.core.model_lifecycle.types import ModelType
from captioner.core.shared_types import CaptionSegment
from ..domain.interfaces import ISpeechRecognizer, RecognizerFailure
from ..domain.models import RecognizerErrorKind, base_language

logger = logging.getLogger(__name__)


class WhisperRecognizer(ISpeechRecognizer):
    """
    Local Whisper model behind the recognizer contract.
    Whisper never talks to the network, so every supported locale is on-device.

    A timed-out or cancelled call keeps running in its worker thread. The resident
    model is shared and its decoder hooks are not reentrant, so every call holds
    `_inference_lock` and a new one waits for an abandoned one to finish.
    """
    _inference_lock = Lock()

    def __init__(self, model_name: Optional[str] = None, device: Optional[str] = None):
        self.orchestrator = ModelOrchestrator()
        self.model_name = model_name or settings.WHISPER_MODEL_NAME
        if device is None:
            device = settings.WHISPER_DEVICE if torch.cuda.is_available() else "cpu"
        self.device = device

    def supports_locale(self, locale: str) -> bool:
        return base_language(locale) in LANGUAGES

    def supports_on_device(self, locale: str) -> bool:
        return self.supports_locale(locale)

    async def recognize(self, audio_path: Path, locale: str, on_device_only: bool) -> List[CaptionSegment]:
        language = base_language(locale)
        if language not in LANGUAGES:
            raise RecognizerFailure(RecognizerErrorKind.UNSUPPORTED_LOCALE, f"Whisper has no language for {locale}")

        # Whisper is blocking; keep the event loop free for the timeout race
        return await asyncio.to_thread(self._transcribe_sync, str(audio_path), language)

    def _transcribe_sync(self, audio_path: str, language: str) -> List[CaptionSegment]:
        logger.info(f"Requesting Whisper ({self.model_name}) for {Path(audio_path).name} [{language}]...")

        def loader():
            logger.debug(f"Loading Whisper {self.model_name} on {self.device}...")
            return whisper.load_model(self.model_name, device=self.device)

        with self._inference_lock:
            model = self.orchestrator.request_model(ModelType.WHISPER, loader, variant=self.model_name)
            try:
                result_raw = model.transcribe(
                    audio_path,
                    language=language,
                    fp16=(self.device == "cuda"),
                    verbose=None
                )
            except RuntimeError as e:
                # whisper.audio.load_audio wraps ffmpeg decode failures in this message
                if "Failed to load audio" in str(e):
                    raise RecognizerFailure(RecognizerErrorKind.FILE_OPEN, str(e)) from e
                raise RecognizerFailure(RecognizerErrorKind.UNKNOWN, str(e)) from e

        segments = []
        for seg in result_raw.get("segments", []):
            text = seg["text"].strip()
            if not text:
                continue
            start = max(0.0, float(seg["start"]))
            end = max(start, float(seg["end"]))
            segments.append(CaptionSegment(text=text, start=start, duration=end - start))

        return segments
