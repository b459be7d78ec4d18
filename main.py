# main.py — ShareBook HTTP API
import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import schemas
from crud.book import (
    create_book, full_search, get_book, get_book_by_slug, get_books, get_books_by_author,
    get_books_by_title, get_user_donations, random_books, top_new_books, update_book,
)
from crud.book_user import get_grantee_candidates, user_requested_book
from crud.user import create_user, find_user_by_email
from database import get_db, init_db
from dependencies import get_current_user, get_donation_service, require_permission
from logging_config import configure_logging
from models import FreightOption, User
from services.donation import DonationService
from services.errors import Conflict, DonationError, Forbidden, InvalidState, NotFound, Unauthorized
from services.permissions import Permission
from settings import get_settings

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    Conflict: status.HTTP_409_CONFLICT,
    InvalidState: status.HTTP_400_BAD_REQUEST,
    Forbidden: status.HTTP_403_FORBIDDEN,
    Unauthorized: status.HTTP_401_UNAUTHORIZED,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await init_db()
    logger.info("%s started", app.title)
    yield


settings = get_settings()
app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

can_approve = require_permission(Permission.ApproveBook)
can_donate = require_permission(Permission.DonateBook)


@app.exception_handler(DonationError)
async def donation_error_handler(request: Request, exc: DonationError):
    code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.info("%s %s -> %d: %s", request.method, request.url.path, code, exc.message)
    body = schemas.Result(success=False, messages=[exc.message])
    return JSONResponse(body.model_dump(), status_code=code)


def _book_page(books, total: int, page: int, items: int) -> schemas.PagedList[schemas.Book]:
    return schemas.PagedList[schemas.Book](
        page=page,
        items_per_page=items,
        total_items=total,
        items=[schemas.Book.model_validate(b) for b in books],
    )


# ─────────────────────── USERS ───────────────────────
@app.post("/api/user/register", response_model=schemas.User, status_code=201)
async def register_user(user_data: schemas.UserCreate, db: AsyncSession = Depends(get_db)):
    if await find_user_by_email(db, user_data.email):
        raise Conflict("This email is already registered")
    try:
        user = await create_user(db, user_data)
    except IntegrityError as exc:
        # a concurrent registration took the email after the lookup
        await db.rollback()
        raise Conflict("This email is already registered") from exc
    logger.info("Registered user %s", user.id)
    return user


@app.get("/api/user/me", response_model=schemas.User)
async def who_am_i(user: User = Depends(get_current_user)):
    return user


# ─────────────────────── BOOKS ───────────────────────
@app.get("/api/book/ping")
async def ping():
    return "Pong!"


@app.get("/api/book", response_model=schemas.PagedList[schemas.Book])
async def list_books(db: AsyncSession = Depends(get_db), _: User = Depends(can_donate)):
    books, total = await get_books(db, 1, 15)
    return _book_page(books, total, 1, 15)


@app.get("/api/book/freight-options", response_model=List[str])
async def freight_options():
    return [option.value for option in FreightOption]


@app.get("/api/book/top15-new-books", response_model=List[schemas.Book])
async def top15_new_books(db: AsyncSession = Depends(get_db)):
    return await top_new_books(db)


@app.get("/api/book/random15-books", response_model=List[schemas.Book])
async def random15_books(db: AsyncSession = Depends(get_db)):
    return await random_books(db)


@app.get("/api/book/my-donations", response_model=List[schemas.Book])
async def my_donations(db: AsyncSession = Depends(get_db), user: User = Depends(get_current_user)):
    return await get_user_donations(db, user.id)


@app.get("/api/book/my-requests/{page}/{items}", response_model=schemas.PagedList[schemas.MyBookRequest])
async def my_requests(
    page: int,
    items: int,
    user: User = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service),
):
    requests, total = await service.list_my_requests(user.id, page, items)
    return schemas.PagedList[schemas.MyBookRequest](
        page=page,
        items_per_page=items,
        total_items=total,
        items=[
            schemas.MyBookRequest(
                request_id=r.id,
                book_id=r.book_id,
                title=r.book.title,
                author=r.book.author,
                status=r.status,
                reason=r.reason,
                requested_at=r.created_at,
            )
            for r in requests
        ],
    )


@app.get("/api/book/slug/{slug}", response_model=schemas.Book)
async def book_by_slug(slug: str, db: AsyncSession = Depends(get_db)):
    book = await get_book_by_slug(db, slug)
    if not book:
        raise NotFound("Book not found")
    return book


@app.get("/api/book/title/{title}/{page}/{items}", response_model=schemas.PagedList[schemas.Book])
async def books_by_title(
    title: str, page: int, items: int,
    db: AsyncSession = Depends(get_db), _: User = Depends(get_current_user),
):
    books, total = await get_books_by_title(db, title, page, items)
    return _book_page(books, total, page, items)


@app.get("/api/book/author/{author}/{page}/{items}", response_model=schemas.PagedList[schemas.Book])
async def books_by_author(
    author: str, page: int, items: int,
    db: AsyncSession = Depends(get_db), _: User = Depends(get_current_user),
):
    books, total = await get_books_by_author(db, author, page, items)
    return _book_page(books, total, page, items)


@app.get("/api/book/full-search/{criteria}/{page}/{items}", response_model=schemas.PagedList[schemas.Book])
async def books_full_search(
    criteria: str, page: int, items: int,
    db: AsyncSession = Depends(get_db), _: User = Depends(get_current_user),
):
    books, total = await full_search(db, criteria, page, items)
    return _book_page(books, total, page, items)


@app.get("/api/book/full-search-admin/{criteria}", response_model=schemas.PagedList[schemas.Book])
async def books_full_search_admin(
    criteria: str, page: int = 1, items: int = 15,
    db: AsyncSession = Depends(get_db), _: User = Depends(can_donate),
):
    books, total = await full_search(db, criteria, page, items, is_admin=True)
    return _book_page(books, total, page, items)


@app.get("/api/book/grantee-users/{book_id}", response_model=List[schemas.User])
async def grantee_users(book_id: int, db: AsyncSession = Depends(get_db), _: User = Depends(can_donate)):
    if not await get_book(db, book_id):
        raise NotFound(f"Book {book_id} not found")
    return await get_grantee_candidates(db, book_id)


@app.get("/api/book/requested/{book_id}", response_model=schemas.Result)
async def requested(book_id: int, db: AsyncSession = Depends(get_db), user: User = Depends(get_current_user)):
    return schemas.Result(value={"book_requested": await user_requested_book(db, book_id, user.id)})


@app.post("/api/book", response_model=schemas.Book, status_code=201)
async def create_book_route(
    book_data: schemas.BookCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    book = await create_book(db, book_data, donor_id=user.id)
    logger.info("User %s listed book %s", user.id, book.id)
    return book


@app.post("/api/book/request", response_model=schemas.Result)
async def request_book(
    body: schemas.RequestBook,
    user: User = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service),
):
    request = await service.request_book(body.book_id, user.id, body.reason)
    return schemas.Result(
        success_message="Book requested successfully!",
        value=schemas.DonationRequest.model_validate(request).model_dump(mode="json"),
    )


@app.post("/api/book/approve/{book_id}", response_model=schemas.Book)
async def approve_book(
    book_id: int,
    body: schemas.ApproveBook | None = None,
    _: User = Depends(can_approve),
    service: DonationService = Depends(get_donation_service),
):
    return await service.approve_book(book_id, body.choose_date if body else None)


@app.put("/api/book/donate/{book_id}", response_model=schemas.Result)
async def donate_book(
    book_id: int,
    body: schemas.DonateBook,
    _: User = Depends(can_donate),
    service: DonationService = Depends(get_donation_service),
):
    await service.donate_book(book_id, body.user_id, body.note)
    return schemas.Result(success_message="Book donated successfully!")


@app.post("/api/book/reject/{book_id}", response_model=schemas.Result)
async def reject_request(
    book_id: int,
    body: schemas.RejectRequest,
    _: User = Depends(can_approve),
    service: DonationService = Depends(get_donation_service),
):
    request = await service.reject_request(book_id, body.user_id, body.note)
    return schemas.Result(
        success_message="Request rejected.",
        value=schemas.DonationRequest.model_validate(request).model_dump(mode="json"),
    )


@app.post("/api/book/cancel/{book_id}", response_model=schemas.Result)
async def cancel_request(
    book_id: int,
    user: User = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service),
):
    request = await service.cancel_request(book_id, user.id)
    return schemas.Result(
        success_message="Request canceled.",
        value=schemas.DonationRequest.model_validate(request).model_dump(mode="json"),
    )


@app.get("/api/book/{book_id}", response_model=schemas.Book)
async def book_by_id(book_id: int, db: AsyncSession = Depends(get_db)):
    book = await get_book(db, book_id)
    if not book:
        raise NotFound("Book not found")
    return book


@app.put("/api/book/{book_id}", response_model=schemas.Book)
async def update_book_route(
    book_id: int,
    book_data: schemas.BookUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(can_approve),
):
    book = await get_book(db, book_id)
    if not book:
        raise NotFound("Book not found")
    return await update_book(db, book, book_data)


@app.delete("/api/book/{book_id}", response_model=schemas.Result)
async def delete_book_route(
    book_id: int,
    _: User = Depends(can_donate),
    service: DonationService = Depends(get_donation_service),
):
    await service.delete_book(book_id)
    return schemas.Result(success_message="Book deleted.")


@app.get("/api/book/{page}/{items}", response_model=schemas.PagedList[schemas.Book])
async def list_books_paged(
    page: int, items: int,
    db: AsyncSession = Depends(get_db), _: User = Depends(can_donate),
):
    books, total = await get_books(db, page, items)
    return _book_page(books, total, page, items)
