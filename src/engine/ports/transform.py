from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, TypeAlias, Union

Record = Mapping[str, Any]

# record -> record, sync or async
TransformFn: TypeAlias = Callable[[Record], Union[Record, Awaitable[Record]]]
