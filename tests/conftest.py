import asyncio
from types import SimpleNamespace

import pytest

from src.config import Settings
from src.engine.services.descriptors import Descriptor


class ListReader:
    """Отдаёт заранее заданные записи; location игнорируется."""

    descriptor = Descriptor.file("csv")

    def __init__(self, records):
        self.records = list(records)
        self.reads = 0

    async def read(self, location, sub_resource=None):
        self.reads += 1
        for r in self.records:
            yield r


class RecordingFileWriter:
    descriptor = Descriptor.file("json")

    def __init__(self, delay: float = 0.0):
        self.calls = []
        self.rows = []
        self.closed = 0
        self.delay = delay
        self.active = 0
        self.max_active = 0

    async def write(self, batch, path, file_name, write_counter):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            self.calls.append((len(batch), write_counter, path, file_name))
            self.rows.extend(batch)
            return len(batch)
        finally:
            self.active -= 1

    async def close(self):
        self.closed += 1

    @property
    def counters(self):
        return [c[1] for c in self.calls]


class FakeScheduler:
    def __init__(self):
        self.jobs = []
        self.cancelled = []

    def schedule(self, cron_expr, callback):
        handle = SimpleNamespace(id=f"job-{len(self.jobs) + 1}", cron=cron_expr, callback=callback)
        self.jobs.append(handle)
        return handle

    def cancel(self, handle):
        self.cancelled.append(handle)

    async def fire(self, index: int = 0):
        await self.jobs[index].callback()


def make_records(n: int):
    return [{"id": i, "first_name": f"n{i}"} for i in range(n)]


@pytest.fixture
def settings(tmp_path):
    return Settings(output_dir=tmp_path)


@pytest.fixture
def scheduler():
    return FakeScheduler()
