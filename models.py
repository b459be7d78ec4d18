# models.py
import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from database import Base


class Profile(str, enum.Enum):
    User = "User"
    Administrator = "Administrator"


class FreightOption(str, enum.Enum):
    City = "City"
    State = "State"
    Country = "Country"
    World = "World"
    WithoutFreight = "WithoutFreight"


class DonationStatus(str, enum.Enum):
    WaitingAction = "WaitingAction"
    Approved = "Approved"
    Rejected = "Rejected"
    Donated = "Donated"
    Canceled = "Canceled"


ACTIVE_STATUSES = (DonationStatus.WaitingAction, DonationStatus.Approved)
TERMINAL_STATUSES = (DonationStatus.Donated, DonationStatus.Rejected, DonationStatus.Canceled)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    email = Column(String(200), nullable=False, unique=True, index=True)
    profile = Column(Enum(Profile, native_enum=False, length=20), nullable=False, default=Profile.User)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.profile == Profile.Administrator


class Book(Base):
    __tablename__ = "books"
    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False, index=True)
    author = Column(String, nullable=False, index=True)
    category = Column(String(100), nullable=True, index=True)
    slug = Column(String, nullable=False, unique=True, index=True)
    freight_option = Column(
        Enum(FreightOption, native_enum=False, length=20),
        nullable=False,
        default=FreightOption.City,
    )
    available = Column(Boolean, nullable=False, default=True)
    approved = Column(Boolean, nullable=False, default=False)
    choose_date = Column(Date, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    donated_at = Column(DateTime, nullable=True)
    deleted_at = Column(DateTime, nullable=True)

    donor = relationship("User", lazy="joined")

    @property
    def status(self) -> str:
        if not self.available:
            return "Donated"
        return "Approved" if self.approved else "WaitingApproval"


class BookUser(Base):
    """A user's request for a book; rows are kept forever as the donation history."""

    __tablename__ = "book_users"
    # one active request per (book, requester)
    __table_args__ = (
        Index(
            "ux_book_users_active",
            "book_id",
            "user_id",
            unique=True,
            sqlite_where=text("status IN ('WaitingAction', 'Approved')"),
            postgresql_where=text("status IN ('WaitingAction', 'Approved')"),
        ),
    )
    id = Column(Integer, primary_key=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(
        Enum(DonationStatus, native_enum=False, length=20),
        nullable=False,
        default=DonationStatus.WaitingAction,
    )
    reason = Column(String, nullable=True)
    note = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    book = relationship("Book", lazy="joined")
    user = relationship("User", lazy="joined")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def update_status(self, status: DonationStatus, note: str | None = None) -> None:
        if self.status in TERMINAL_STATUSES:
            raise ValueError(f"Request {self.id} is already {self.status.value}")
        self.status = status
        if note is not None:
            self.note = note
