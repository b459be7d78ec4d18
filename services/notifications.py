"""
Donation notifications.

The lifecycle service emits one typed event per notifying transition;
``EmailNotifier`` turns each event into HTML emails rendered from
``templates/email`` and hands them to the SMTP sender.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from fastapi.templating import Jinja2Templates

from models import Book, User
from services.email_sender import EmailSender
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

BOOK_REQUESTED_TEMPLATE = "email/book_requested.html"
BOOK_DONATED_TEMPLATE = "email/book_donated.html"
BOOK_REQUESTED_SUBJECT = "A book was requested - Sharebook"
BOOK_DONATED_SUBJECT = "Congratulations, you were selected!"


@dataclass(frozen=True)
class BookRequested:
    book: Book
    requester: User
    reason: str
    administrators: List[User] = field(default_factory=list)


@dataclass(frozen=True)
class BookDonated:
    book: Book
    grantee: User
    note: str | None = None


class Notifier:
    """Receives lifecycle events. The base class drops them."""

    async def notify_book_requested(self, event: BookRequested) -> None:
        pass

    async def notify_book_donated(self, event: BookDonated) -> None:
        pass


class EmailNotifier(Notifier):
    def __init__(self, sender: EmailSender | None = None, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.sender = sender or EmailSender(self.settings)
        self.templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

    def render(self, template_name: str, **context) -> str:
        template = self.templates.get_template(template_name)
        return template.render(server_url=self.settings.server_url, **context)

    async def notify_book_requested(self, event: BookRequested) -> None:
        for admin in event.administrators:
            html = self.render(
                BOOK_REQUESTED_TEMPLATE,
                book=event.book,
                requesting_user=event.requester,
                reason=event.reason,
                administrator=admin,
            )
            await self.sender.send(admin.email, admin.name, html, BOOK_REQUESTED_SUBJECT)

    async def notify_book_donated(self, event: BookDonated) -> None:
        html = self.render(
            BOOK_DONATED_TEMPLATE,
            book=event.book,
            user=event.grantee,
            note=event.note,
        )
        await self.sender.send(event.grantee.email, event.grantee.name, html, BOOK_DONATED_SUBJECT)
