import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from conftest import ListReader, RecordingFileWriter, make_records
from src.engine.adapters.writers import CsvWriter, JsonWriter
from src.engine.core.enums import PipelineStatus, RunStatus
from src.engine.core.exceptions import ExecutionError
from src.engine.orchestration.pipeline import Pipeline


def rename(r):
    return {"id": r["id"], "name": r["first_name"]}


def build(settings, scheduler, records, writer, *, dispatcher=None, name="p"):
    return (
        Pipeline(name, scheduler=scheduler, dispatcher=dispatcher, settings=settings)
        .set_source(ListReader(records), "users.csv")
        .add_transforms(rename)
        .set_sink(writer, "out.json")
        .compose()
    )


@pytest.mark.asyncio
async def test_2500_records_are_written_in_three_batches(settings, scheduler):
    writer = RecordingFileWriter()
    p = build(settings, scheduler, make_records(2500), writer)

    result = await p.run()

    assert result.ok
    assert [c[0] for c in writer.calls] == [1000, 1000, 500]
    assert writer.counters == [0, 1, 2]
    assert writer.rows == [{"id": i, "name": f"n{i}"} for i in range(2500)]
    assert result.rows_read == 2500
    assert result.rows_written == 2500
    assert result.batches_written == 3
    assert writer.closed == 1
    assert p.status is PipelineStatus.TERMINATED
    assert p.last_result is result


@pytest.mark.asyncio
async def test_write_counter_restarts_on_every_run(settings, scheduler):
    writer = RecordingFileWriter()
    p = build(settings, scheduler, make_records(1500), writer)

    await p.run()
    await p.run()

    assert writer.counters == [0, 1, 0, 1]


@pytest.mark.asyncio
async def test_csv_sink_holds_transformed_records_in_order(settings, scheduler, tmp_path):
    p = (
        Pipeline("csv", scheduler=scheduler, settings=settings)
        .set_source(ListReader(make_records(2500)), "users.csv")
        .add_transforms(rename)
        .set_sink(CsvWriter(), "users.csv", str(tmp_path))
        .compose()
    )

    await p.run()
    await p.run()  # truncates, does not append across runs

    lines = (tmp_path / "users.csv").read_text(encoding="utf-8").splitlines()
    assert lines[0] == "id,name"
    assert lines[1:] == [f"{i},n{i}" for i in range(2500)]


@pytest.mark.asyncio
async def test_async_transforms_are_awaited(settings, scheduler):
    async def shout(r):
        await asyncio.sleep(0)
        return {**r, "name": r["name"].upper()}

    writer = RecordingFileWriter()
    p = (
        Pipeline(scheduler=scheduler, settings=settings)
        .set_source(ListReader(make_records(3)), "users.csv")
        .add_transforms(rename, shout)
        .set_sink(writer, "out.json")
        .compose()
    )

    await p.run()

    assert [r["name"] for r in writer.rows] == ["N0", "N1", "N2"]


@pytest.mark.asyncio
async def test_empty_source_writes_nothing(settings, scheduler):
    writer = RecordingFileWriter()
    p = build(settings, scheduler, [], writer)

    result = await p.run()

    assert result.ok
    assert writer.calls == []
    assert result.batches_written == 0


@pytest.mark.asyncio
async def test_failed_run_skips_dispatcher(settings, scheduler):
    def boom(r):
        if r["id"] == 1500:
            raise ValueError("bad record")
        return r

    writer = RecordingFileWriter()
    dispatcher = AsyncMock()
    p = (
        Pipeline(scheduler=scheduler, dispatcher=dispatcher, settings=settings)
        .set_source(ListReader(make_records(2500)), "users.csv")
        .add_transforms(boom)
        .set_sink(writer, "out.json")
        .compose()
    )

    result = await p.run()

    assert result.status is RunStatus.FAILED
    assert isinstance(result.error, ExecutionError)
    assert isinstance(result.error.__cause__, ValueError)
    assert result.error.batch_no == 2
    assert result.batches_written == 1
    assert writer.closed == 1
    dispatcher.on_complete.assert_not_awaited()

    with pytest.raises(ExecutionError):
        result.raise_for_status()


@pytest.mark.asyncio
async def test_successful_run_calls_dispatcher(settings, scheduler):
    dispatcher = AsyncMock()
    p = build(settings, scheduler, make_records(10), RecordingFileWriter(), dispatcher=dispatcher)

    await p.run()

    dispatcher.on_complete.assert_awaited_once_with(p, p.notifications, None)


@pytest.mark.asyncio
async def test_overlapping_runs_never_interleave(settings, scheduler):
    writer = RecordingFileWriter(delay=0.01)
    p = build(settings, scheduler, make_records(2500), writer)

    first, second = await asyncio.gather(p.run(), p.run())

    assert first.ok and second.ok
    assert writer.max_active == 1
    assert writer.counters == [0, 1, 2, 0, 1, 2]


@pytest.mark.asyncio
async def test_schedules_register_handles_and_fire(settings, scheduler):
    writer = RecordingFileWriter()
    p = build(settings, scheduler, make_records(1200), writer).add_schedule("*/5 * * * *", "0 0 * * *")

    result = await p.run(start_immediately=False)

    assert result is None
    assert writer.calls == []
    assert [j.cron for j in scheduler.jobs] == ["*/5 * * * *", "0 0 * * *"]
    assert p.status is PipelineStatus.IDLE

    await scheduler.fire(0)
    await scheduler.fire(1)

    assert writer.counters == [0, 1, 0, 1]
    assert p.status is PipelineStatus.IDLE


@pytest.mark.asyncio
async def test_run_with_schedules_and_immediate_start(settings, scheduler):
    writer = RecordingFileWriter()
    p = build(settings, scheduler, make_records(5), writer).add_schedule("* * * * *")

    result = await p.run(True)

    assert result.ok
    assert len(scheduler.jobs) == 1
    assert writer.counters == [0]


@pytest.mark.asyncio
async def test_second_run_does_not_duplicate_handles(settings, scheduler):
    p = build(settings, scheduler, make_records(5), RecordingFileWriter()).add_schedule("* * * * *")

    await p.run(False)
    await p.run(False)

    assert len(scheduler.jobs) == 1
    assert len(p.handles) == 1


@pytest.mark.asyncio
async def test_schedule_added_after_run_is_registered(settings, scheduler):
    p = build(settings, scheduler, make_records(5), RecordingFileWriter()).add_schedule("* * * * *")
    await p.run(False)

    p.add_schedule("0 * * * *")

    assert [j.cron for j in scheduler.jobs] == ["* * * * *", "0 * * * *"]
    assert len(p.handles) == 2


@pytest.mark.asyncio
async def test_cancel_and_reset_release_handles(settings, scheduler):
    p = build(settings, scheduler, make_records(5), RecordingFileWriter()).add_schedule("* * * * *")
    await p.run(False)
    handle = p.handles[0]

    p.cancel_schedules()
    assert scheduler.cancelled == [handle]
    assert p.handles == []
    assert p.schedules == ["* * * * *"]

    await p.run(False)
    p.reset()
    assert scheduler.cancelled == [handle, scheduler.jobs[1]]
    assert p.status is PipelineStatus.EMPTY


@pytest.mark.asyncio
async def test_firing_after_reset_is_skipped(settings, scheduler):
    writer = RecordingFileWriter()
    p = build(settings, scheduler, make_records(5), writer).add_schedule("* * * * *")
    await p.run(False)
    callback = scheduler.jobs[0].callback

    p.reset()
    await callback()

    assert writer.calls == []


@pytest.mark.asyncio
async def test_chain_runs_successor_once(settings, scheduler):
    writer_b = RecordingFileWriter()
    b = build(settings, scheduler, make_records(3), writer_b, name="b")
    a = build(settings, scheduler, make_records(3), RecordingFileWriter(), name="a").chain(b, True)

    b_run = AsyncMock(wraps=b.run)
    b.run = b_run

    await a.run()

    b_run.assert_awaited_once_with(True)
    assert writer_b.counters == [0]


@pytest.mark.asyncio
async def test_failed_predecessor_does_not_start_successor(settings, scheduler):
    def boom(r):
        raise RuntimeError("nope")

    writer_b = RecordingFileWriter()
    b = build(settings, scheduler, make_records(3), writer_b, name="b")
    a = (
        Pipeline("a", scheduler=scheduler, settings=settings)
        .set_source(ListReader(make_records(3)), "users.csv")
        .add_transforms(boom)
        .set_sink(RecordingFileWriter(), "out.json")
        .chain(b)
        .compose()
    )

    result = await a.run()

    assert not result.ok
    assert writer_b.calls == []


@pytest.mark.asyncio
async def test_json_file_sink_end_to_end(settings, scheduler, tmp_path):
    p = (
        Pipeline(scheduler=scheduler, settings=settings)
        .set_source(ListReader(make_records(2100)), "users.csv")
        .add_transforms(rename)
        .set_sink(JsonWriter(), "users.json", str(tmp_path))
        .compose()
    )

    await p.run()

    data = json.loads((tmp_path / "users.json").read_text(encoding="utf-8"))
    assert data == [{"id": i, "name": f"n{i}"} for i in range(2100)]


@pytest.mark.asyncio
async def test_batch_log_lines_carry_batch_number(settings, scheduler, caplog):
    p = build(settings, scheduler, make_records(1500), RecordingFileWriter(), name="logged")

    with caplog.at_level("INFO", logger="etl_engine"):
        result = await p.run()

    batch_lines = [r.getMessage() for r in caplog.records if " size=" in r.getMessage()]
    assert len(batch_lines) == 2
    assert f"run={result.run_id}" in batch_lines[0]
    assert "batch=1" in batch_lines[0]
    assert "batch=2" in batch_lines[1]


@pytest.mark.asyncio
async def test_csv_sink_fails_run_when_later_batch_adds_a_column(settings, scheduler, tmp_path):
    def widen(r):
        return {**r, "late": "x"} if r["id"] >= 1000 else r

    p = (
        Pipeline("widen", scheduler=scheduler, settings=settings)
        .set_source(ListReader(make_records(1500)), "users.csv")
        .add_transforms(rename, widen)
        .set_sink(CsvWriter(), "users.csv", str(tmp_path))
        .compose()
    )

    result = await p.run()

    assert result.status is RunStatus.FAILED
    assert isinstance(result.error, ExecutionError)
    assert isinstance(result.error.__cause__, ValueError)
    assert result.error.batch_no == 2
    assert result.batches_written == 1

    lines = (tmp_path / "users.csv").read_text(encoding="utf-8").splitlines()
    assert lines[0] == "id,name"
    assert len(lines) == 1001
