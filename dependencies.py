# dependencies.py — FastAPI dependencies shared by the routes
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from crud.user import get_user
from database import get_db
from models import User
from services.donation import DonationService
from services.errors import Forbidden, Unauthorized
from services.notifications import EmailNotifier, Notifier
from services.permissions import Permission, has_permission

_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        _notifier = EmailNotifier()
    return _notifier


def get_donation_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> DonationService:
    return DonationService(db, notifier)


async def get_current_user(
    x_user_id: Optional[int] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the caller from the ``X-User-Id`` header."""
    user = await get_user(db, x_user_id) if x_user_id is not None else None
    if user is None:
        raise Unauthorized("Authentication required")
    return user


def require_permission(permission: Permission):
    async def checker(user: User = Depends(get_current_user)) -> User:
        if not has_permission(user, permission):
            raise Forbidden(f"Missing permission {permission.value}")
        return user

    return checker
