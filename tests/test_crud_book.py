# tests/test_crud_book.py
from datetime import datetime, timedelta, timezone

import pytest

from crud.book import (
    full_search, get_user_donations, make_unique_slug, mark_book_donated, slugify, soft_delete_book,
)
from tests.conftest import add_book


@pytest.mark.parametrize("title, slug", [
    ("Dom Casmurro", "dom-casmurro"),
    ("  O Cortiço: 2ª edição! ", "o-corti-o-2-edi-o"),
    ("???", "book"),
])
def test_slugify(title, slug):
    assert slugify(title) == slug


@pytest.mark.asyncio
async def test_unique_slug_skips_taken_suffixes(db, donor):
    await add_book(db, donor, "Iracema", slug="iracema")
    await add_book(db, donor, "Iracema", slug="iracema-2")

    assert await make_unique_slug(db, "Iracema") == "iracema-3"
    assert await make_unique_slug(db, "Senhora") == "senhora"


@pytest.mark.asyncio
async def test_mark_book_donated_only_wins_once(db, donor):
    book = await add_book(db, donor, approved=True)

    assert await mark_book_donated(db, book.id) is True
    assert await mark_book_donated(db, book.id) is False


@pytest.mark.asyncio
async def test_mark_book_donated_requires_approval(db, book):
    assert await mark_book_donated(db, book.id) is False


@pytest.mark.asyncio
async def test_full_search_matches_category(db, donor):
    await add_book(db, donor, "Quincas Borba", approved=True, category="Realism")
    await add_book(db, donor, "Hidden", approved=False, category="Realism")

    public, public_total = await full_search(db, "realism", 1, 10)
    admin, admin_total = await full_search(db, "realism", 1, 10, is_admin=True)

    assert [b.title for b in public] == ["Quincas Borba"]
    assert (public_total, admin_total) == (1, 2)


@pytest.mark.asyncio
async def test_user_donations(db, donor, book):
    books = await get_user_donations(db, donor.id)
    assert [b.id for b in books] == [book.id]


@pytest.mark.asyncio
async def test_donation_and_deletion_stamps_are_naive_utc(db, donor):
    book = await add_book(db, donor, approved=True)
    before = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(seconds=1)

    await mark_book_donated(db, book.id)
    await soft_delete_book(db, book)
    await db.commit()
    await db.refresh(book)

    after = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(seconds=1)
    for stamp in (book.donated_at, book.deleted_at):
        assert stamp.tzinfo is None
        assert before <= stamp <= after
