from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage

import httpx

from src.config import Settings
from src.engine.services.notifications import EmailSpec, TextSpec

logger = logging.getLogger("etl_engine")


class SmtpEmailSender:
    """smtplib в отдельном потоке, чтобы не блокировать event loop."""

    def __init__(self, settings: Settings) -> None:
        self._s = settings

    def build_message(self, spec: EmailSpec) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = spec.sender or self._s.smtp_sender
        msg["To"] = spec.to
        msg["Subject"] = spec.subject
        msg.set_content(spec.text or "")
        if spec.html:
            msg.add_alternative(spec.html, subtype="html")
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self._s.smtp_host, self._s.smtp_port, timeout=30) as smtp:
            if self._s.smtp_use_tls:
                smtp.starttls()
            if self._s.smtp_user:
                smtp.login(self._s.smtp_user, self._s.smtp_password or "")
            smtp.send_message(msg)

    async def send_email(self, spec: EmailSpec) -> None:
        msg = self.build_message(spec)
        await asyncio.to_thread(self._send_sync, msg)
        logger.debug("SMTP %s:%s accepted message to=%s", self._s.smtp_host, self._s.smtp_port, spec.to)


class HttpSmsSender:
    """Twilio-compatible SMS: POST {api}/Accounts/{sid}/Messages.json."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._s = settings
        self._client = client

    async def send_text(self, spec: TextSpec) -> None:
        if not self._s.sms_account_sid or not self._s.sms_from_number:
            raise RuntimeError("SMS is not configured: set SMS_ACCOUNT_SID and SMS_FROM_NUMBER")

        url = f"{self._s.sms_api_url.rstrip('/')}/Accounts/{self._s.sms_account_sid}/Messages.json"
        data = {"To": spec.to, "From": self._s.sms_from_number, "Body": spec.body}
        auth = (self._s.sms_account_sid, self._s.sms_auth_token or "")

        if self._client is not None:
            resp = await self._client.post(url, data=data, auth=auth)
        else:
            async with httpx.AsyncClient(timeout=10.0) as client:
                resp = await client.post(url, data=data, auth=auth)
        resp.raise_for_status()
