from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class EmailSpec:
    to: str
    subject: str
    text: str = ""
    html: str | None = None
    sender: str | None = None  # None -> Settings.smtp_sender


@dataclass(frozen=True, slots=True)
class TextSpec:
    to: str
    body: str
