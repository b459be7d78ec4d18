"""
Donation lifecycle.

``DonationService`` is the only place that decides whether a donation
transition is legal:

    request_book     Available      -> WaitingAction   (admins notified)
    approve_book     WaitingAction  -> Approved        (choose date recorded)
    donate_book      Approved       -> Donated         (grantee notified,
                                                        siblings Rejected)
    reject_request   WaitingAction/Approved -> Rejected
    cancel_request   WaitingAction  -> Canceled        (requester only)
    delete_book      book removed unless a request is Approved/Donated

Every operation runs in a single transaction on the injected session and
checks all preconditions before mutating anything. Notifications are sent
only after the commit succeeds; notifier failures are logged and never undo
the transition.

Permission checks (``ApproveBook`` / ``DonateBook``) happen in the HTTP layer
before these methods are called.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crud import book as book_crud
from crud import book_user as request_crud
from crud import user as user_crud
from models import Book, BookUser, DonationStatus
from services.errors import Conflict, InvalidState, NotFound
from services.notifications import BookDonated, BookRequested, Notifier

logger = logging.getLogger(__name__)

E = TypeVar("E")


class DonationService:
    def __init__(self, db: AsyncSession, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier or Notifier()

    @asynccontextmanager
    async def _transaction(self):
        try:
            yield
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def _dispatch(self, handler: Callable[[E], Awaitable[None]], event: E) -> None:
        try:
            await handler(event)
        except Exception:
            logger.exception("Failed to deliver %s notification", type(event).__name__)

    async def _get_book(self, book_id: int) -> Book:
        book = await book_crud.get_book(self.db, book_id)
        if book is None:
            raise NotFound(f"Book {book_id} not found")
        return book

    async def request_book(self, book_id: int, requester_id: int, reason: str) -> BookUser:
        async with self._transaction():
            book = await self._get_book(book_id)
            requester = await user_crud.get_user(self.db, requester_id)
            if requester is None:
                raise NotFound(f"User {requester_id} not found")
            if not book.available:
                raise InvalidState("This book was already donated")
            if await request_crud.find_active_request(self.db, book.id, requester.id):
                raise Conflict("You already requested this book")

            request = BookUser(
                book_id=book.id,
                user_id=requester.id,
                status=DonationStatus.WaitingAction,
                reason=reason,
            )
            try:
                await request_crud.save_request(self.db, request)
            except IntegrityError as exc:
                # a concurrent request from the same user won the unique index
                raise Conflict("You already requested this book") from exc
            # re-read under a row lock: a donation may have committed since the first read
            await self.db.refresh(book, ["available"], with_for_update=True)
            if not book.available:
                raise InvalidState("This book was already donated")
            administrators = await user_crud.get_administrators(self.db)

        logger.info("User %s requested book %s", requester.id, book.id)
        await self._dispatch(
            self.notifier.notify_book_requested,
            BookRequested(book=book, requester=requester, reason=reason, administrators=administrators),
        )
        return request

    async def approve_book(self, book_id: int, choose_date: Optional[date] = None) -> Book:
        """
        Approve a book and record the date the grantee will be chosen.

        Pending requests on the book move to Approved. A book without
        requests can be approved too; re-approving with the same date
        changes nothing, and approving without a date keeps the recorded one.
        """
        async with self._transaction():
            book = await self._get_book(book_id)
            if not book.available:
                raise InvalidState("This book was already donated")

            book.approved = True
            if choose_date is not None:
                book.choose_date = choose_date
            for request in await request_crud.list_active_requests(self.db, book.id):
                if request.status == DonationStatus.WaitingAction:
                    request.update_status(DonationStatus.Approved)
            await book_crud.save_book(self.db, book)

        logger.info("Book %s approved, choose date %s", book.id, book.choose_date)
        return book

    async def donate_book(self, book_id: int, grantee_id: int, note: Optional[str] = None) -> None:
        async with self._transaction():
            book = await self._get_book(book_id)
            if not book.available:
                raise InvalidState("This book was already donated")
            if not book.approved:
                raise InvalidState("The book must be approved before it is donated")

            # another administrator may have donated it since we read the row
            if not await book_crud.mark_book_donated(self.db, book.id):
                raise InvalidState("This book was already donated")

            # read after the update holds the book's write lock, so every
            # committed request is in the list
            requests = await request_crud.list_active_requests(self.db, book.id)
            granted = next((r for r in requests if r.user_id == grantee_id), None)
            if granted is None:
                raise NotFound(f"User {grantee_id} has no active request for book {book.id}")

            granted.update_status(DonationStatus.Donated, note)
            for other in requests:
                if other is not granted:
                    other.update_status(DonationStatus.Rejected)
            await self.db.flush()
            await self.db.refresh(book, ["available", "donated_at"])

        logger.info(
            "Book %s donated to user %s, %d other request(s) rejected",
            book.id, grantee_id, len(requests) - 1,
        )
        await self._dispatch(
            self.notifier.notify_book_donated,
            BookDonated(book=book, grantee=granted.user, note=note),
        )

    async def reject_request(self, book_id: int, requester_id: int, note: Optional[str] = None) -> BookUser:
        async with self._transaction():
            book = await self._get_book(book_id)
            request = await request_crud.find_active_request(self.db, book.id, requester_id)
            if request is None:
                raise NotFound(f"User {requester_id} has no active request for book {book.id}")
            request.update_status(DonationStatus.Rejected, note)

        logger.info("Request of user %s for book %s rejected", requester_id, book_id)
        return request

    async def cancel_request(self, book_id: int, caller_id: int) -> BookUser:
        """Withdraw the caller's own pending request."""
        async with self._transaction():
            request = await request_crud.find_active_request(self.db, book_id, caller_id)
            if request is None:
                raise NotFound(f"You have no active request for book {book_id}")
            if request.status != DonationStatus.WaitingAction:
                raise InvalidState("Only requests waiting for action can be canceled")
            request.update_status(DonationStatus.Canceled)

        logger.info("User %s canceled the request for book %s", caller_id, book_id)
        return request

    async def delete_book(self, book_id: int) -> None:
        async with self._transaction():
            book = await self._get_book(book_id)
            if await request_crud.has_request_in(
                self.db, book.id, (DonationStatus.Approved, DonationStatus.Donated)
            ):
                raise InvalidState("Books with approved or donated requests cannot be deleted")

            for request in await request_crud.list_active_requests(self.db, book.id):
                request.update_status(DonationStatus.Canceled, "Book removed")
            await book_crud.soft_delete_book(self.db, book)

        logger.info("Book %s deleted", book_id)

    async def list_my_requests(self, user_id: int, page: int = 1, items: int = 15) -> Tuple[List[BookUser], int]:
        return await request_crud.get_requests_by_user(self.db, user_id, page, items)
