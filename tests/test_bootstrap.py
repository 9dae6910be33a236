import importlib
from pathlib import Path

import pytest

from briefly.config import Settings
from briefly.errors import ModelNotConfiguredError

bootstrap_module = importlib.import_module("briefly.app.bootstrap")


@pytest.fixture(autouse=True)
def _fake_llm(monkeypatch: pytest.MonkeyPatch) -> list[Settings]:
    built: list[Settings] = []

    def _build_llm(settings: Settings) -> object:
        settings.require_model()
        built.append(settings)
        return object()

    monkeypatch.setattr(bootstrap_module, "build_llm", _build_llm)
    return built


def _tool_names(runtime: object) -> list[str]:
    return [descriptor.name for descriptor in runtime.orchestrator.registry.descriptors()]


def test_build_runtime_requires_model(tmp_path: Path) -> None:
    with pytest.raises(ModelNotConfiguredError):
        bootstrap_module.build_runtime(Settings(home=tmp_path))


def test_build_runtime_without_credentials_keeps_core_tools(tmp_path: Path) -> None:
    runtime = bootstrap_module.build_runtime(Settings(model="ollama:llama3", home=tmp_path))

    assert _tool_names(runtime) == ["clock.now", "web.fetch"]
    assert runtime.memory is None


def test_build_runtime_with_credentials_enables_image_and_memory(tmp_path: Path) -> None:
    settings = Settings(model="openai:gpt-4o-mini", api_key="sk-test", home=tmp_path)

    runtime = bootstrap_module.build_runtime(settings)

    assert _tool_names(runtime) == ["clock.now", "image.generate", "memory.save", "web.fetch"]
    assert runtime.memory is not None and runtime.memory.available


def test_build_runtime_memory_can_be_disabled(tmp_path: Path) -> None:
    settings = Settings(model="openai:gpt-4o-mini", api_key="sk-test", memory_enabled=False, home=tmp_path)

    runtime = bootstrap_module.build_runtime(settings)

    assert "memory.save" not in _tool_names(runtime)
    assert runtime.memory is None
