from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.config import Settings, get_settings
from src.engine.ports.notifier import EmailSender, TextSender
from src.engine.services.logctx import ctx_prefix

if TYPE_CHECKING:
    from src.engine.orchestration.pipeline import Notifications, Pipeline, Successor

logger = logging.getLogger("etl_engine")


class CompletionDispatcher:
    """Действия после успешного запуска: email -> sms -> successor. Ошибки только логируются."""

    def __init__(
        self,
        *,
        email_sender: EmailSender | None = None,
        text_sender: TextSender | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._email_sender = email_sender
        self._text_sender = text_sender
        self._settings = settings

    def _email(self) -> EmailSender:
        if self._email_sender is None:
            from src.engine.adapters.notifiers import SmtpEmailSender

            self._email_sender = SmtpEmailSender(self._settings or get_settings())
        return self._email_sender

    def _text(self) -> TextSender:
        if self._text_sender is None:
            from src.engine.adapters.notifiers import HttpSmsSender

            self._text_sender = HttpSmsSender(self._settings or get_settings())
        return self._text_sender

    async def on_complete(
        self,
        pipeline: Pipeline,
        notifications: Notifications,
        successor: Successor | None,
    ) -> None:
        ctx_str = ctx_prefix(pid=pipeline.id, pname=pipeline.name)

        if notifications.email is not None:
            try:
                await self._email().send_email(notifications.email)
                logger.info("%s email sent to=%s", ctx_str, notifications.email.to)
            except Exception:
                logger.exception("%s email delivery failed to=%s", ctx_str, notifications.email.to)

        if notifications.text is not None:
            try:
                await self._text().send_text(notifications.text)
                logger.info("%s text sent to=%s", ctx_str, notifications.text.to)
            except Exception:
                logger.exception("%s text delivery failed to=%s", ctx_str, notifications.text.to)

        if successor is not None:
            nxt = successor.pipeline
            logger.info(
                "%s starting successor id=%s name=%s start_now=%s",
                ctx_str,
                nxt.id,
                nxt.name,
                successor.start_now,
            )
            try:
                await nxt.run(successor.start_now)
            except Exception:
                logger.exception("%s successor id=%s name=%s failed to start", ctx_str, nxt.id, nxt.name)
