from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from src.engine.services.descriptors import Descriptor

Record = Mapping[str, Any]


class FileWriter(Protocol):
    """Writer пишет батч в файл: write_counter == 0 -> create/truncate, > 0 -> append."""

    descriptor: Descriptor

    async def write(
        self,
        batch: Sequence[Record],
        path: str,
        file_name: str,
        write_counter: int,
    ) -> int:
        ...

    async def close(self) -> None:
        ...


class DatabaseWriter(Protocol):
    """Writer делает bulk insert батча и возвращает число записанных строк."""

    descriptor: Descriptor

    async def write(
        self,
        batch: Sequence[Record],
        connection_string: str,
        collection: str,
    ) -> int:
        ...

    async def close(self) -> None:
        ...
