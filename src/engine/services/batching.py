from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator, Iterable
from typing import Any, Mapping

from src.engine.core.constants import BATCH_SIZE

Record = Mapping[str, Any]
RecordBatch = list[Record]


async def _aiter(records: AsyncIterable[Record] | Iterable[Record]) -> AsyncIterator[Record]:
    if hasattr(records, "__aiter__"):
        async for r in records:  # type: ignore[union-attr]
            yield r
    else:
        for r in records:  # type: ignore[union-attr]
            yield r


async def batched(
    records: AsyncIterable[Record] | Iterable[Record],
    size: int = BATCH_SIZE,
) -> AsyncIterator[RecordBatch]:
    """Group records into contiguous batches of `size`; the last one holds the remainder."""
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")

    batch: RecordBatch = []
    async for record in _aiter(records):
        batch.append(record)
        if len(batch) == size:
            yield batch
            batch = []

    if batch:
        yield batch
