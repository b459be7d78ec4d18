from datetime import date, datetime
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from models import DonationStatus, FreightOption, Profile

T = TypeVar("T")


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr


class User(BaseModel):
    id: int
    name: str
    email: str
    profile: Profile

    model_config = ConfigDict(from_attributes=True)


class BookBase(BaseModel):
    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    category: Optional[str] = None
    freight_option: FreightOption = FreightOption.City


class BookCreate(BookBase):
    pass


class BookUpdate(BookBase):
    pass


class Book(BookBase):
    id: int
    slug: str
    available: bool
    approved: bool
    status: str
    choose_date: Optional[date] = None
    user_id: int
    created_at: datetime
    donated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RequestBook(BaseModel):
    book_id: int
    reason: str = Field(min_length=1)


class ApproveBook(BaseModel):
    choose_date: Optional[date] = None


class DonateBook(BaseModel):
    user_id: int
    note: Optional[str] = None


class RejectRequest(BaseModel):
    user_id: int
    note: Optional[str] = None


class DonationRequest(BaseModel):
    id: int
    book_id: int
    user_id: int
    status: DonationStatus
    reason: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MyBookRequest(BaseModel):
    request_id: int
    book_id: int
    title: str
    author: str
    status: DonationStatus
    reason: Optional[str] = None
    requested_at: datetime


class Result(BaseModel):
    success: bool = True
    success_message: Optional[str] = None
    messages: List[str] = []
    value: Optional[Any] = None


class PagedList(BaseModel, Generic[T]):
    page: int
    items_per_page: int
    total_items: int
    items: List[T]
