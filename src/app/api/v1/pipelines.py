from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query

from src.app.api.helpers.pipelines import get_pipeline_or_404, http_409
from src.app.dependencies import get_registry
from src.app.schemas.pipelines import PipelineOut, PipelineRunOut, RunResultOut
from src.engine.core.exceptions import StateError
from src.engine.orchestration.registry import PipelineRegistry

router = APIRouter(prefix="/api/v1/pipelines", tags=["pipelines"])


@router.get("/", response_model=List[PipelineOut])
async def list_pipelines_endpoint(
    registry: PipelineRegistry = Depends(get_registry),
) -> List[PipelineOut]:
    return [PipelineOut.from_pipeline(p) for p in registry]


@router.get("/{name}", response_model=PipelineOut)
async def get_pipeline_endpoint(
    name: str,
    registry: PipelineRegistry = Depends(get_registry),
) -> PipelineOut:
    return PipelineOut.from_pipeline(get_pipeline_or_404(registry, name))


@router.post("/{name}/run", response_model=PipelineRunOut)
async def run_pipeline_endpoint(
    name: str,
    start_immediately: bool = Query(True),
    registry: PipelineRegistry = Depends(get_registry),
) -> PipelineRunOut:
    """Запуск пайплайна: сразу, по расписанию или и то и другое."""
    pipeline = get_pipeline_or_404(registry, name)
    try:
        result = await pipeline.run(start_immediately)
    except StateError as exc:
        raise http_409(str(exc))

    return PipelineRunOut(
        pipeline=PipelineOut.from_pipeline(pipeline),
        result=RunResultOut.from_result(result) if result else None,
    )


@router.delete("/{name}/schedules", response_model=PipelineOut)
async def cancel_schedules_endpoint(
    name: str,
    registry: PipelineRegistry = Depends(get_registry),
) -> PipelineOut:
    pipeline = get_pipeline_or_404(registry, name)
    pipeline.cancel_schedules()
    return PipelineOut.from_pipeline(pipeline)
