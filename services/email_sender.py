# services/email_sender.py — SMTP transport for notification emails
import asyncio
import logging
import smtplib
import ssl
from email.headerregistry import Address
from email.message import EmailMessage

from settings import Settings, get_settings

logger = logging.getLogger(__name__)


class EmailSender:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    @property
    def enabled(self) -> bool:
        return bool(self.settings.smtp_host)

    def format_email(self, recipient_email: str, recipient_name: str, html: str, subject: str) -> EmailMessage:
        sender = self.settings.smtp_username or f"no-reply@{self.settings.smtp_host}"
        message = EmailMessage()
        message["From"] = str(Address(self.settings.sender_name, addr_spec=sender))
        message["To"] = str(Address(recipient_name, addr_spec=recipient_email))
        message["Subject"] = subject
        message.set_content(html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        s = self.settings
        if s.smtp_use_tls:
            client = smtplib.SMTP_SSL(s.smtp_host, s.smtp_port, context=ssl.create_default_context(), timeout=15)
        else:
            client = smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=15)
        with client:
            if s.smtp_username and s.smtp_password:
                client.login(s.smtp_username, s.smtp_password)
            client.send_message(message)

    async def send(self, recipient_email: str, recipient_name: str, html: str, subject: str) -> None:
        if not self.enabled:
            logger.info("SMTP not configured, skipping email %r to %s", subject, recipient_email)
            return
        message = self.format_email(recipient_email, recipient_name, html, subject)
        # smtplib blocks; keep it off the event loop
        await asyncio.to_thread(self._deliver, message)
        logger.info("Sent email %r to %s", subject, recipient_email)
