import asyncio

import pytest

from src.config import Settings
from src.engine.orchestration.scheduler import APSchedulerAdapter


async def _noop():
    return None


@pytest.mark.asyncio
async def test_schedule_starts_scheduler_and_cancel_removes_job():
    adapter = APSchedulerAdapter(settings=Settings(scheduler_max_instances=2))
    try:
        job = adapter.schedule("*/5 * * * *", _noop)
        assert adapter.running
        assert job.max_instances == 2
        assert job.coalesce is True

        adapter.cancel(job)
        # second cancel is a no-op
        adapter.cancel(job)
    finally:
        adapter.shutdown()
        # AsyncIOScheduler finishes its shutdown on the next loop iteration
        await asyncio.sleep(0)

    assert not adapter.running


@pytest.mark.asyncio
async def test_schedule_after_shutdown_starts_a_fresh_scheduler():
    adapter = APSchedulerAdapter(settings=Settings())
    try:
        adapter.schedule("*/5 * * * *", _noop)
        adapter.shutdown()
        assert not adapter.running

        job = adapter.schedule("0 * * * *", _noop)

        assert adapter.running
        # a job added to a started scheduler is bound to its job store
        assert not job.pending
    finally:
        adapter.shutdown()
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_shutdown_without_schedules_is_a_noop():
    adapter = APSchedulerAdapter(settings=Settings())

    adapter.shutdown()

    assert not adapter.running
