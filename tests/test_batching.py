import math

import pytest

from src.engine.services.batching import batched


async def _collect(records, size=1000):
    return [b async for b in batched(records, size)]


@pytest.mark.asyncio
@pytest.mark.parametrize("n", [0, 1, 999, 1000, 1001, 2500])
async def test_batch_sizes(n):
    batches = await _collect(list(range(n)))

    assert len(batches) == math.ceil(n / 1000)
    assert all(len(b) == 1000 for b in batches[:-1])
    if batches:
        assert 1 <= len(batches[-1]) <= 1000
    assert [x for b in batches for x in b] == list(range(n))


@pytest.mark.asyncio
async def test_async_source_is_batched_in_order():
    async def gen():
        for i in range(7):
            yield i

    batches = await _collect(gen(), size=3)
    assert batches == [[0, 1, 2], [3, 4, 5], [6]]


@pytest.mark.asyncio
async def test_size_must_be_positive():
    with pytest.raises(ValueError):
        await _collect([1, 2], size=0)
