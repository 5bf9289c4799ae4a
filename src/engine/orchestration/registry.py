from __future__ import annotations

import importlib
import logging
from typing import Iterable, Iterator

from src.engine.core.exceptions import ConfigurationError, PipelineNotFoundError
from src.engine.orchestration.pipeline import Pipeline

logger = logging.getLogger("etl_engine")


class PipelineRegistry:
    """Pipelines by name. Names are unique inside one registry."""

    def __init__(self, pipelines: Iterable[Pipeline] = ()) -> None:
        self._items: dict[str, Pipeline] = {}
        for p in pipelines:
            self.add(p)

    def add(self, pipeline: Pipeline) -> Pipeline:
        if not isinstance(pipeline, Pipeline):
            raise ConfigurationError(f"expected Pipeline, got {type(pipeline).__name__}")
        if pipeline.name in self._items:
            raise ConfigurationError(f"pipeline name {pipeline.name!r} is already registered")
        self._items[pipeline.name] = pipeline
        return pipeline

    def get(self, name: str) -> Pipeline:
        try:
            return self._items[name]
        except KeyError:
            raise PipelineNotFoundError(f"Pipeline {name!r} not found") from None

    def __iter__(self) -> Iterator[Pipeline]:
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    @classmethod
    def from_module(cls, dotted_path: str) -> PipelineRegistry:
        """Импортирует модуль и вызывает его build_pipelines()."""
        module = importlib.import_module(dotted_path)
        build = getattr(module, "build_pipelines", None)
        if not callable(build):
            raise ConfigurationError(f"{dotted_path} must define build_pipelines()")

        registry = cls(build())
        logger.info("Loaded %d pipeline(s) from %s", len(registry), dotted_path)
        return registry
