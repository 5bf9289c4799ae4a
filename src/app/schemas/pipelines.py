from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from src.engine.orchestration.context import RunResult
from src.engine.orchestration.pipeline import Pipeline


class RunResultOut(BaseModel):
    """Итог одного запуска пайплайна."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    run_id: str
    status: str
    started_at: datetime
    finished_at: datetime
    rows_read: int
    rows_written: int
    batches_written: int
    error_message: str | None = None

    @classmethod
    def from_result(cls, result: RunResult) -> RunResultOut:
        return cls(
            run_id=result.run_id,
            status=result.status.value,
            started_at=result.started_at,
            finished_at=result.finished_at,
            rows_read=result.rows_read,
            rows_written=result.rows_written,
            batches_written=result.batches_written,
            error_message=str(result.error) if result.error else None,
        )


class PipelineOut(BaseModel):
    """Представление пайплайна в ответе API."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    status: str
    source: str | None = None
    sink: str | None = None
    transforms: int = 0
    schedules: list[str] = []
    successor: str | None = None
    last_run: RunResultOut | None = None

    @classmethod
    def from_pipeline(cls, p: Pipeline) -> PipelineOut:
        source = sink = None
        if p.source is not None:
            source = f"{p.source.descriptor.kind.value}:{p.source.descriptor.format}"
        if p.sink is not None:
            sink = f"{p.sink.descriptor.kind.value}:{p.sink.descriptor.format}"

        return cls(
            id=p.id,
            name=p.name,
            status=p.status.value,
            source=source,
            sink=sink,
            transforms=len(p.transforms),
            schedules=list(p.schedules),
            successor=p.successor.pipeline.name if p.successor else None,
            last_run=RunResultOut.from_result(p.last_result) if p.last_result else None,
        )


class PipelineRunOut(BaseModel):
    pipeline: PipelineOut
    result: RunResultOut | None = None
