import sys
import types

import pytest

from src.config import Settings
from src.engine.core.exceptions import ConfigurationError, PipelineNotFoundError
from src.engine.orchestration.pipeline import Pipeline
from src.engine.orchestration.registry import PipelineRegistry


def test_get_and_duplicates(tmp_path):
    s = Settings(output_dir=tmp_path)
    a = Pipeline("a", settings=s)
    registry = PipelineRegistry([a])

    assert registry.get("a") is a
    assert len(registry) == 1

    with pytest.raises(PipelineNotFoundError):
        registry.get("b")

    with pytest.raises(ConfigurationError):
        registry.add(Pipeline("a", settings=s))


def test_from_module(monkeypatch, tmp_path):
    s = Settings(output_dir=tmp_path)
    mod = types.ModuleType("fake_pipelines")
    mod.build_pipelines = lambda: [Pipeline("x", settings=s), Pipeline("y", settings=s)]
    monkeypatch.setitem(sys.modules, "fake_pipelines", mod)

    registry = PipelineRegistry.from_module("fake_pipelines")

    assert [p.name for p in registry] == ["x", "y"]


def test_from_module_without_factory(monkeypatch):
    monkeypatch.setitem(sys.modules, "empty_pipelines", types.ModuleType("empty_pipelines"))
    with pytest.raises(ConfigurationError):
        PipelineRegistry.from_module("empty_pipelines")


def test_demo_module_builds_chained_pipelines():
    registry = PipelineRegistry.from_module("src.pipelines.demo")

    users_json = registry.get("users-json")
    assert users_json.successor.pipeline is registry.get("users-xml")
    assert users_json.execution_stream is not None
