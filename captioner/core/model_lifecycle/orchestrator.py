# File: captioner/core/model_lifecycle/orchestrator.py

import gc
import torch
import logging
from threading import Lock
from typing import Optional
from .types import ModelType

logger = logging.getLogger(__name__)

class ModelOrchestrator:
    """
    Singleton Resource Manager.
    Ensures only one recognizer model (one type, one variant) is resident at a time.
    """
    _instance = None
    _lock = Lock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                cls._instance = super(ModelOrchestrator, cls).__new__(cls)
                cls._instance._current_type = None
                cls._instance._current_variant = None
                cls._instance._loaded_model = None
        return cls._instance

    def request_model(self, model_type: ModelType, loader_func, variant: Optional[str] = None):
        """
        Request usage of a model. If it's not loaded (or a different variant is), unload current and load requested.

        Args:
            model_type: The enum identifier for the model.
            loader_func: A callable returning the loaded model object.
                         Only called if the model needs to be loaded.
            variant: Model size/name; a change forces a reload.
        """
        with self._lock:
            # 1. Already loaded? Return immediately.
            if (self._current_type == model_type
                    and self._current_variant == variant
                    and self._loaded_model is not None):
                return self._loaded_model

            # 2. Unload different model if exists
            if self._loaded_model is not None:
                self._unload()

            # 3. Load new model
            logger.info(f"Orchestrator: Loading {model_type.value} ({variant or 'default'})...")
            try:
                self._loaded_model = loader_func()
                self._current_type = model_type
                self._current_variant = variant
                return self._loaded_model
            except Exception as e:
                logger.error(f"Failed to load {model_type.value}: {e}")
                raise

    def release(self):
        """Drops the resident model, e.g. when the pipeline shuts down."""
        with self._lock:
            if self._loaded_model is not None:
                self._unload()

    def _unload(self):
        """Forcefully removes the current model from memory."""
        if self._current_type:
            logger.info(f"Orchestrator: Unloading {self._current_type.value} ({self._current_variant or 'default'})...")

        del self._loaded_model
        self._loaded_model = None
        self._current_type = None
        self._current_variant = None

        # Force GC and CUDA clear
        gc.collect()
        if torch.cuda.is_available():
            torch.cuda.empty_cache()

    def get_current_model_type(self):
        """Helper for testing state."""
        return self._current_type
