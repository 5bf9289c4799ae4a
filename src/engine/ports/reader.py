from __future__ import annotations

from typing import Any, AsyncIterator, Mapping, Protocol

from src.engine.services.descriptors import Descriptor

Record = Mapping[str, Any]


class Reader(Protocol):
    """Reader отдаёт записи источника лениво; исчерпание = конец, ошибка = исключение."""

    descriptor: Descriptor

    def read(self, location: str, sub_resource: str | None = None) -> AsyncIterator[Record]:
        ...
