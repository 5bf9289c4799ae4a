from __future__ import annotations

from fastapi import HTTPException, status

from src.engine.core.exceptions import PipelineNotFoundError
from src.engine.orchestration.pipeline import Pipeline
from src.engine.orchestration.registry import PipelineRegistry


def get_pipeline_or_404(registry: PipelineRegistry, name: str) -> Pipeline:
    """Get a pipeline or raise HTTP 404."""
    try:
        return registry.get(name)
    except PipelineNotFoundError:
        raise http_404("Pipeline not found")


def http_404(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    )


def http_409(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=detail,
    )
