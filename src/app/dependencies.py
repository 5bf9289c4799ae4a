from __future__ import annotations

from fastapi import Request

from src.engine.orchestration.registry import PipelineRegistry


def get_registry(request: Request) -> PipelineRegistry:
    """Реестр пайплайнов, загруженный в lifespan приложения."""
    return request.app.state.registry
