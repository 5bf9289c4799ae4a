from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from src.engine.core.enums import RunStatus
from src.engine.core.exceptions import ExecutionError
from src.engine.services.logctx import ctx_prefix
from src.engine.services.time_utils import utcnow


@dataclass(slots=True)
class RunContext:
    """Состояние одного запуска. Создаётся на входе в run, счётчик всегда начинается с 0."""

    pipeline_id: str
    pipeline_name: str
    run_id: str = field(default_factory=lambda: str(uuid4()))
    started_at: datetime = field(default_factory=utcnow)

    write_counter: int = 0
    batches_written: int = 0
    rows_read: int = 0
    rows_written: int = 0

    @property
    def prefix(self) -> str:
        return ctx_prefix(pid=self.pipeline_id, pname=self.pipeline_name, rid=self.run_id)

    def batch_prefix(self, batch_no: int) -> str:
        return ctx_prefix(pid=self.pipeline_id, pname=self.pipeline_name, rid=self.run_id, batch=batch_no)

    def finish(self, status: RunStatus, *, error: ExecutionError | None = None) -> RunResult:
        return RunResult(
            run_id=self.run_id,
            pipeline_id=self.pipeline_id,
            status=status,
            started_at=self.started_at,
            finished_at=utcnow(),
            rows_read=self.rows_read,
            rows_written=self.rows_written,
            batches_written=self.batches_written,
            error=error,
        )


@dataclass(frozen=True, slots=True)
class RunResult:
    run_id: str
    pipeline_id: str
    status: RunStatus
    started_at: datetime
    finished_at: datetime
    rows_read: int
    rows_written: int
    batches_written: int
    error: ExecutionError | None = None

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.SUCCESS

    def raise_for_status(self) -> None:
        if self.error is not None:
            raise self.error
