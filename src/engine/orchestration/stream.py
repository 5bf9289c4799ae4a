from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from src.engine.core.enums import RunStatus
from src.engine.core.exceptions import ExecutionError
from src.engine.orchestration.context import RunContext, RunResult
from src.engine.ports.reader import Reader
from src.engine.ports.transform import TransformFn
from src.engine.ports.writer import DatabaseWriter, FileWriter
from src.engine.services.batching import batched
from src.engine.services.descriptors import Descriptor

logger = logging.getLogger("etl_engine")

Record = Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class SourceSpec:
    reader: Reader
    descriptor: Descriptor
    location: str
    sub_resource: str | None = None


@dataclass(frozen=True, slots=True)
class SinkSpec:
    """target = directory (file sink) or connection string; name = file name or collection/table."""

    writer: FileWriter | DatabaseWriter
    descriptor: Descriptor
    target: str
    name: str


async def apply_transforms(fns: Sequence[TransformFn], batch: Sequence[Record]) -> list[Record]:
    rows: list[Record] = list(batch)
    for fn in fns:
        out: list[Record] = []
        for r in rows:
            res = fn(r)
            if inspect.isawaitable(res):
                res = await res
            out.append(res)
        rows = out
    return rows


@dataclass(frozen=True, slots=True)
class ExecutionStream:
    """Скомпонованный поток source -> batch -> transforms -> sink. Не хранит состояние запуска."""

    source: SourceSpec
    transforms: tuple[TransformFn, ...]
    sink: SinkSpec

    async def _write(self, ctx: RunContext, rows: list[Record]) -> int:
        writer = self.sink.writer
        if self.sink.descriptor.is_file:
            written = await writer.write(rows, self.sink.target, self.sink.name, ctx.write_counter)
            ctx.write_counter += 1
        else:
            written = await writer.write(rows, self.sink.target, self.sink.name)
        return int(written or 0)

    async def execute(self, ctx: RunContext) -> RunResult:
        ctx.write_counter = 0
        writer = self.sink.writer

        logger.info(
            "%s start source=%s:%s sink=%s:%s transforms=%d",
            ctx.prefix,
            self.source.descriptor.format,
            self.source.location,
            self.sink.descriptor.format,
            self.sink.name,
            len(self.transforms),
        )

        try:
            try:
                records = self.source.reader.read(self.source.location, self.source.sub_resource)
                async for batch in batched(records):
                    batch_no = ctx.batches_written + 1
                    ctx.rows_read += len(batch)

                    rows = await apply_transforms(self.transforms, batch)
                    written = await self._write(ctx, rows)

                    ctx.batches_written += 1
                    ctx.rows_written += written
                    logger.info(
                        "%s size=%d written=%d total_written=%d",
                        ctx.batch_prefix(batch_no),
                        len(batch),
                        written,
                        ctx.rows_written,
                    )
            finally:
                await writer.close()

        except Exception as exc:
            failed_batch = ctx.batches_written + 1
            err = ExecutionError(
                f"Run {ctx.run_id} failed at batch {failed_batch}: {exc!r}",
                batch_no=failed_batch,
            )
            err.__cause__ = exc
            logger.error("%s FAILED batch=%d: %r", ctx.prefix, failed_batch, exc)
            return ctx.finish(RunStatus.FAILED, error=err)

        logger.info(
            "%s done batches=%d total_read=%d total_written=%d",
            ctx.prefix,
            ctx.batches_written,
            ctx.rows_read,
            ctx.rows_written,
        )
        return ctx.finish(RunStatus.SUCCESS)
