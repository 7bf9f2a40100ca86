import pytest

from captioner.core.model_lifecycle.orchestrator import ModelOrchestrator
from captioner.core.model_lifecycle.types import ModelType


@pytest.fixture
def orchestrator():
    orch = ModelOrchestrator()
    orch.release()
    yield orch
    orch.release()


def test_singleton():
    assert ModelOrchestrator() is ModelOrchestrator()


def test_model_loaded_once_per_variant(orchestrator):
    loads = []

    def loader(name):
        def _load():
            loads.append(name)
            return object()
        return _load

    first = orchestrator.request_model(ModelType.WHISPER, loader("small"), variant="small")
    second = orchestrator.request_model(ModelType.WHISPER, loader("small"), variant="small")
    assert first is second
    assert loads == ["small"]

    third = orchestrator.request_model(ModelType.WHISPER, loader("base"), variant="base")
    assert third is not first
    assert loads == ["small", "base"]
    assert orchestrator.get_current_model_type() == ModelType.WHISPER


def test_release_unloads(orchestrator):
    orchestrator.request_model(ModelType.WHISPER, lambda: object(), variant="tiny")
    orchestrator.release()
    assert orchestrator.get_current_model_type() is None


def test_failed_load_propagates(orchestrator):
    def broken():
        raise RuntimeError("no weights")

    with pytest.raises(RuntimeError):
        orchestrator.request_model(ModelType.WHISPER, broken, variant="tiny")
    assert orchestrator.get_current_model_type() is None
