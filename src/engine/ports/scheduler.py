from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol

JobCallback = Callable[[], Awaitable[Any]]


class SchedulerAdapter(Protocol):
    def schedule(self, cron_expr: str, callback: JobCallback) -> Any:
        """Register callback for every cron match and return a cancellable handle."""
        ...

    def cancel(self, handle: Any) -> None:
        ...
