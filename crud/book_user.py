# crud/book_user.py — donation requests; callers own the transaction
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models import ACTIVE_STATUSES, BookUser, User


async def find_active_request(db: AsyncSession, book_id: int, user_id: int) -> Optional[BookUser]:
    result = await db.execute(
        select(BookUser).where(
            BookUser.book_id == book_id,
            BookUser.user_id == user_id,
            BookUser.status.in_(ACTIVE_STATUSES),
        )
    )
    return result.scalars().first()


async def list_active_requests(db: AsyncSession, book_id: int) -> List[BookUser]:
    result = await db.execute(
        select(BookUser)
        .where(BookUser.book_id == book_id, BookUser.status.in_(ACTIVE_STATUSES))
        .order_by(BookUser.created_at, BookUser.id)
    )
    return list(result.scalars().all())


async def has_request_in(db: AsyncSession, book_id: int, statuses) -> bool:
    count = await db.scalar(
        select(func.count(BookUser.id)).where(
            BookUser.book_id == book_id, BookUser.status.in_(statuses)
        )
    )
    return bool(count)


async def save_request(db: AsyncSession, request: BookUser) -> BookUser:
    db.add(request)
    await db.flush()
    return request


async def get_requests_by_user(
    db: AsyncSession, user_id: int, page: int = 1, items: int = 15
) -> Tuple[List[BookUser], int]:
    page = max(page, 1)
    items = max(items, 1)
    total = await db.scalar(select(func.count(BookUser.id)).where(BookUser.user_id == user_id))
    result = await db.execute(
        select(BookUser)
        .where(BookUser.user_id == user_id)
        .order_by(BookUser.created_at.desc(), BookUser.id.desc())
        .offset((page - 1) * items)
        .limit(items)
    )
    return list(result.scalars().all()), total or 0


async def get_grantee_candidates(db: AsyncSession, book_id: int) -> List[User]:
    return [request.user for request in await list_active_requests(db, book_id)]


async def user_requested_book(db: AsyncSession, book_id: int, user_id: int) -> bool:
    return await find_active_request(db, book_id, user_id) is not None
