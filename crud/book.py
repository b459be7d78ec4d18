# crud/book.py — book storage; callers own the transaction
import re
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models import Book, utcnow
from schemas import BookCreate, BookUpdate

TOP_BOOKS = 15


def _live():
    return select(Book).where(Book.deleted_at.is_(None))


def _listed(stmt):
    """Restrict to books visible in the public catalogue."""
    return stmt.where(Book.approved.is_(True), Book.available.is_(True))


async def _paged(db: AsyncSession, stmt, page: int, items: int) -> Tuple[List[Book], int]:
    page = max(page, 1)
    items = max(items, 1)
    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    result = await db.execute(stmt.offset((page - 1) * items).limit(items))
    return list(result.scalars().unique().all()), total or 0


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "book"


async def make_unique_slug(db: AsyncSession, title: str) -> str:
    base = slugify(title)
    result = await db.execute(select(Book.slug).where(Book.slug.like(f"{base}%")))
    taken = set(result.scalars().all())
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


async def get_book(db: AsyncSession, book_id: int) -> Optional[Book]:
    result = await db.execute(_live().where(Book.id == book_id))
    return result.scalar_one_or_none()


async def get_book_by_slug(db: AsyncSession, slug: str) -> Optional[Book]:
    result = await db.execute(_live().where(Book.slug == slug))
    return result.scalar_one_or_none()


async def get_books(db: AsyncSession, page: int = 1, items: int = 15) -> Tuple[List[Book], int]:
    return await _paged(db, _live().order_by(Book.title), page, items)


async def get_books_by_title(db: AsyncSession, title: str, page: int, items: int) -> Tuple[List[Book], int]:
    stmt = _listed(_live()).where(Book.title.ilike(f"%{title}%")).order_by(Book.title)
    return await _paged(db, stmt, page, items)


async def get_books_by_author(db: AsyncSession, author: str, page: int, items: int) -> Tuple[List[Book], int]:
    stmt = _listed(_live()).where(Book.author.ilike(f"%{author}%")).order_by(Book.title)
    return await _paged(db, stmt, page, items)


async def full_search(
    db: AsyncSession, criteria: str, page: int, items: int, is_admin: bool = False
) -> Tuple[List[Book], int]:
    stmt = _live().where(or_(
        Book.title.ilike(f"%{criteria}%"),
        Book.author.ilike(f"%{criteria}%"),
        Book.category.ilike(f"%{criteria}%"),
    ))
    if not is_admin:
        stmt = _listed(stmt)
    return await _paged(db, stmt.order_by(Book.created_at.desc(), Book.id.desc()), page, items)


async def top_new_books(db: AsyncSession) -> List[Book]:
    stmt = _listed(_live()).order_by(Book.created_at.desc(), Book.id.desc()).limit(TOP_BOOKS)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def random_books(db: AsyncSession) -> List[Book]:
    stmt = _listed(_live()).order_by(func.random()).limit(TOP_BOOKS)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_user_donations(db: AsyncSession, user_id: int) -> List[Book]:
    stmt = _live().where(Book.user_id == user_id).order_by(Book.created_at.desc(), Book.id.desc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def create_book(db: AsyncSession, book_data: BookCreate, donor_id: int) -> Book:
    new_book = Book(**book_data.model_dump())
    new_book.slug = await make_unique_slug(db, book_data.title)
    new_book.user_id = donor_id
    new_book.available = True
    new_book.approved = False
    db.add(new_book)
    await db.commit()
    await db.refresh(new_book)
    return new_book


async def update_book(db: AsyncSession, book: Book, book_data: BookUpdate) -> Book:
    for field, value in book_data.model_dump(exclude_unset=True).items():
        setattr(book, field, value)
    await db.commit()
    await db.refresh(book)
    return book


async def save_book(db: AsyncSession, book: Book) -> Book:
    db.add(book)
    await db.flush()
    return book


async def mark_book_donated(db: AsyncSession, book_id: int) -> bool:
    """
    Flip an approved, available book to unavailable.

    Compare-and-swap on the status columns: returns False when another
    transaction already donated the book (or it is no longer approved).
    """
    result = await db.execute(
        update(Book)
        .where(
            Book.id == book_id,
            Book.deleted_at.is_(None),
            Book.available.is_(True),
            Book.approved.is_(True),
        )
        .values(available=False, donated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def soft_delete_book(db: AsyncSession, book: Book) -> None:
    book.deleted_at = utcnow()
    await db.flush()
