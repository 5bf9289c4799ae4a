from __future__ import annotations

from typing import Protocol

from src.engine.services.notifications import EmailSpec, TextSpec


class EmailSender(Protocol):
    async def send_email(self, spec: EmailSpec) -> None:
        ...


class TextSender(Protocol):
    async def send_text(self, spec: TextSpec) -> None:
        ...
