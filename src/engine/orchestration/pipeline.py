from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn, Sequence
from uuid import uuid4

from src.config import Settings, get_settings
from src.engine.core.enums import PipelineStatus
from src.engine.core.exceptions import ConfigurationError, StateError
from src.engine.orchestration.context import RunContext, RunResult
from src.engine.orchestration.dispatcher import CompletionDispatcher
from src.engine.orchestration.stream import ExecutionStream, SinkSpec, SourceSpec
from src.engine.ports.reader import Reader
from src.engine.ports.scheduler import SchedulerAdapter
from src.engine.ports.transform import TransformFn
from src.engine.services.cron import validate_cron
from src.engine.services.descriptors import (
    Descriptor,
    connection_protocol,
    ensure_matches,
    file_extension,
)
from src.engine.services.logctx import ctx_prefix
from src.engine.services.notifications import EmailSpec, TextSpec

logger = logging.getLogger("etl_engine")


@dataclass(frozen=True, slots=True)
class Notifications:
    email: EmailSpec | None = None
    text: TextSpec | None = None


@dataclass(frozen=True, slots=True)
class Successor:
    pipeline: Pipeline
    start_now: bool = True


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


class Pipeline:
    """One logical ETL job: source, transform chain, sink, schedules and successor.

    Configuration methods validate eagerly and return the pipeline, so calls can be
    chained::

        await (
            Pipeline("users")
            .set_source(CsvReader(), "users.csv")
            .add_transforms(combine_names)
            .set_sink(JsonWriter(), "users.json", "out/")
            .compose()
            .run()
        )

    Any ConfigurationError resets the pipeline to EMPTY before it is raised.
    Runs of one pipeline never overlap: a manual run or a scheduled firing waits
    for the previous run to finish.
    """

    def __init__(
        self,
        name: str | None = None,
        *,
        scheduler: SchedulerAdapter | None = None,
        dispatcher: CompletionDispatcher | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.id = str(uuid4())
        self.name = name or f"pipeline-{self.id[:8]}"

        self._scheduler = scheduler
        self._dispatcher = dispatcher
        self._settings = settings
        self._lock = asyncio.Lock()
        self._running = False

        self._clear()

    def _clear(self) -> None:
        self.source: SourceSpec | None = None
        self.transforms: list[TransformFn] = []
        self.sink: SinkSpec | None = None
        self.execution_stream: ExecutionStream | None = None
        self.schedules: list[str] = []
        self.notifications = Notifications()
        self.successor: Successor | None = None
        self.handles: list[Any] = []
        self.last_result: RunResult | None = None

    def __repr__(self) -> str:
        return f"Pipeline(id={self.id!r}, name={self.name!r}, status={self.status.value})"

    @property
    def _ctx(self) -> str:
        return ctx_prefix(pid=self.id, pname=self.name)

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    @property
    def scheduler(self) -> SchedulerAdapter:
        if self._scheduler is None:
            from src.engine.orchestration.scheduler import get_scheduler

            self._scheduler = get_scheduler()
        return self._scheduler

    @property
    def dispatcher(self) -> CompletionDispatcher:
        if self._dispatcher is None:
            self._dispatcher = CompletionDispatcher(settings=self._settings)
        return self._dispatcher

    @property
    def status(self) -> PipelineStatus:
        if self._running:
            return PipelineStatus.RUNNING
        if self.execution_stream is None:
            if self.source is not None and self.sink is not None:
                return PipelineStatus.CONFIGURED
            return PipelineStatus.EMPTY
        if self.handles:
            return PipelineStatus.IDLE
        if self.last_result is None:
            return PipelineStatus.COMPOSED
        return PipelineStatus.TERMINATED

    # ------------------------------------------------------------------
    # configuration
    # ------------------------------------------------------------------

    def _fail(self, message: str) -> NoReturn:
        self.reset()
        logger.warning("%s configuration rejected, state reset: %s", self._ctx, message)
        raise ConfigurationError(message)

    def _ensure_not_composed(self, op: str) -> None:
        if self.execution_stream is not None:
            raise StateError(f"{op}() is not allowed after compose(); call reset() first")

    @staticmethod
    def _descriptor_of(driver: Any) -> Descriptor | None:
        descriptor = getattr(driver, "descriptor", None)
        return descriptor if isinstance(descriptor, Descriptor) else None

    def set_source(self, reader: Reader, location: str, sub_resource: str | None = None) -> Pipeline:
        self._ensure_not_composed("set_source")
        if self.source is not None:
            raise StateError("source is already set; call reset() to configure a new one")

        descriptor = self._descriptor_of(reader)
        if descriptor is None or not callable(getattr(reader, "read", None)):
            self._fail(f"source reader {reader!r} must declare a Descriptor and a read() method")

        try:
            ensure_matches(descriptor, location, what="source")
        except ConfigurationError as exc:
            self._fail(str(exc))

        if sub_resource is not None and not _non_empty_str(sub_resource):
            self._fail(f"source sub-resource must be a non-empty string, got {sub_resource!r}")
        if descriptor.is_database and sub_resource is None:
            self._fail(
                f"extracting from {descriptor.format} requires a table/collection name"
            )

        self.source = SourceSpec(
            reader=reader,
            descriptor=descriptor,
            location=location.strip(),
            sub_resource=sub_resource.strip() if sub_resource else None,
        )
        logger.info(
            "%s source set %s:%s location=%s sub_resource=%s",
            self._ctx,
            descriptor.kind.value,
            descriptor.format,
            self.source.location,
            self.source.sub_resource,
        )
        return self

    def add_transforms(self, *fns: TransformFn) -> Pipeline:
        self._ensure_not_composed("add_transforms")

        for i, fn in enumerate(fns):
            if not callable(fn):
                self._fail(f"transform #{i} must be callable, got {type(fn).__name__}")

        self.transforms.extend(fns)
        logger.info("%s transforms added=%d total=%d", self._ctx, len(fns), len(self.transforms))
        return self

    def set_sink(
        self,
        writer: Any,
        name: str | None = None,
        path_or_connection: str | None = None,
    ) -> Pipeline:
        self._ensure_not_composed("set_sink")

        descriptor = self._descriptor_of(writer)
        if descriptor is None or not callable(getattr(writer, "write", None)):
            self._fail(f"sink writer {writer!r} must declare a Descriptor and a write() method")

        if descriptor.is_database:
            self.sink = self._database_sink(writer, descriptor, name, path_or_connection)
        else:
            self.sink = self._file_sink(writer, descriptor, name, path_or_connection)

        logger.info(
            "%s sink set %s:%s target=%s name=%s",
            self._ctx,
            descriptor.kind.value,
            descriptor.format,
            self.sink.target if descriptor.is_file else connection_protocol(self.sink.target),
            self.sink.name,
        )
        return self

    def _database_sink(
        self,
        writer: Any,
        descriptor: Descriptor,
        collection: str | None,
        connection: str | None,
    ) -> SinkSpec:
        if not _non_empty_str(connection) or not _non_empty_str(collection):
            self._fail(
                "database sinks must provide a connection string AND a collection/table name"
            )
        try:
            ensure_matches(descriptor, connection, what="sink")
        except ConfigurationError as exc:
            self._fail(str(exc))

        return SinkSpec(
            writer=writer,
            descriptor=descriptor,
            target=connection.strip(),
            name=collection.strip(),
        )

    def _file_sink(
        self,
        writer: Any,
        descriptor: Descriptor,
        name: str | None,
        path: str | None,
    ) -> SinkSpec:
        default_name = self.settings.output_name

        if path is None or path == "":
            path = str(self.settings.output_dir)
        elif not isinstance(path, str):
            self._fail(f"file sink path must be a string, got {type(path).__name__}")
        elif connection_protocol(path) is not None:
            self._fail(f"file sink path {path!r} looks like a connection string")

        if name is None or name == default_name:
            file_name = f"{default_name}.{descriptor.format}"
        elif not _non_empty_str(name):
            self._fail(f"file sink name must be a non-empty string, got {name!r}")
        elif file_extension(name) != descriptor.format:
            self._fail(
                f"loading to {descriptor.format} requires an output file of type "
                f"'.{descriptor.format}', got {name!r}"
            )
        else:
            file_name = name.strip()

        return SinkSpec(writer=writer, descriptor=descriptor, target=str(Path(path)), name=file_name)

    def simple(
        self,
        extract: str,
        extract_collection: str | None,
        transforms: Sequence[TransformFn],
        load: str,
        load_name: str | None = None,
    ) -> Pipeline:
        """Configure source, transforms and sink in one call, picking drivers by descriptor.

        `load` is a directory (file sink named `load_name`), a full output file path,
        or a connection string (sink collection/table `load_name`).
        """
        from src.engine.adapters.registry import reader_for, writer_for
        from src.engine.services.descriptors import resolve

        if not _non_empty_str(extract):
            self._fail("first parameter of simple() must be a non-empty string")
        if not isinstance(transforms, (list, tuple)):
            self._fail("transforms of simple() must be a list of functions")
        if not _non_empty_str(load):
            self._fail("load target of simple() must be a non-empty string")

        try:
            reader = reader_for(resolve(extract))
        except ConfigurationError as exc:
            self._fail(str(exc))

        self.set_source(reader, extract, extract_collection)
        self.add_transforms(*transforms)

        if connection_protocol(load) is not None:
            writer = writer_for(resolve(load))
            return self.set_sink(writer, load_name or self.settings.output_name, load)

        if load_name and file_extension(load_name):
            path, file_name = load, load_name
        elif file_extension(load):
            path, file_name = str(Path(load).parent), Path(load).name
        else:
            self._fail(
                "invalid load file name / collection name given. "
                "Please make sure to add the extension to the new file name."
            )

        try:
            writer = writer_for(resolve(file_name))
        except ConfigurationError as exc:
            self._fail(str(exc))
        return self.set_sink(writer, file_name, path)

    def add_schedule(self, *cron_exprs: str) -> Pipeline:
        """Append cron expressions; the first invalid one stops the call, earlier ones are kept.

        An expression already in the list is skipped, so each cron gets one handle.
        """
        for expr in cron_exprs:
            normalized = validate_cron(expr)
            if normalized in self.schedules:
                logger.info("%s schedule already present, skipped cron=%r", self._ctx, normalized)
                continue
            self.schedules.append(normalized)
            logger.info("%s schedule added cron=%r", self._ctx, normalized)

            # already scheduled via run(): register right away
            if self.handles:
                self.handles.append(self.scheduler.schedule(normalized, self._fire))
        return self

    def set_notifications(self, email: EmailSpec | None = None, text: TextSpec | None = None) -> Pipeline:
        self.notifications = Notifications(email=email, text=text)
        return self

    def chain(self, next_pipeline: Pipeline, start_now: bool = True) -> Pipeline:
        if not isinstance(start_now, bool):
            raise TypeError(f"start_now must be bool, got {type(start_now).__name__}")
        if not isinstance(next_pipeline, Pipeline):
            self._fail(f"successor must be a Pipeline, got {type(next_pipeline).__name__}")
        if next_pipeline is self:
            self._fail("a pipeline cannot be chained to itself")

        self.successor = Successor(pipeline=next_pipeline, start_now=start_now)
        logger.info(
            "%s chained successor id=%s name=%s start_now=%s",
            self._ctx,
            next_pipeline.id,
            next_pipeline.name,
            start_now,
        )
        return self

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def compose(self) -> Pipeline:
        if self.execution_stream is not None:
            raise StateError(
                "Failed to compose: a composed ETL process already exists; call reset() first"
            )
        if self.source is None or self.sink is None:
            raise StateError("Failed to compose: source and sink must be set first")

        self.execution_stream = ExecutionStream(
            source=self.source,
            transforms=tuple(self.transforms),
            sink=self.sink,
        )
        logger.info("%s composed transforms=%d", self._ctx, len(self.transforms))
        return self

    async def run(self, start_immediately: bool = True) -> RunResult | None:
        """Execute now, register cron firings, or both.

        Returns the RunResult of the immediate execution, or None when only
        schedules were registered.
        """
        if not isinstance(start_immediately, bool):
            raise TypeError(
                f"start_immediately must be bool, got {type(start_immediately).__name__}"
            )
        if self.execution_stream is None:
            raise StateError(
                "Failed to start: add source, transforms and sink, then call compose()"
            )

        if not self.schedules:
            return await self._execute()

        if not self.handles:
            for expr in self.schedules:
                self.handles.append(self.scheduler.schedule(expr, self._fire))
            logger.info("%s registered schedules=%d", self._ctx, len(self.handles))

        if start_immediately:
            return await self._execute()
        return None

    async def _fire(self) -> None:
        try:
            await self._execute()
        except Exception:
            logger.exception("%s scheduled firing crashed", self._ctx)

    async def _execute(self) -> RunResult | None:
        async with self._lock:
            stream = self.execution_stream
            if stream is None:
                logger.warning("%s skipped: pipeline was reset", self._ctx)
                return None

            ctx = RunContext(pipeline_id=self.id, pipeline_name=self.name)
            self._running = True
            try:
                result = await stream.execute(ctx)
            finally:
                self._running = False
            self.last_result = result

        if result.ok:
            await self.dispatcher.on_complete(self, self.notifications, self.successor)
        return result

    def cancel_schedules(self) -> Pipeline:
        if self.handles:
            for handle in self.handles:
                self.scheduler.cancel(handle)
            logger.info("%s cancelled schedules=%d", self._ctx, len(self.handles))
        self.handles = []
        return self

    def reset(self) -> Pipeline:
        self.cancel_schedules()
        self._clear()
        logger.info("%s reset", self._ctx)
        return self
