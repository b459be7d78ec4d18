# crud/user.py
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Profile, User
from schemas import UserCreate


async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    return await db.get(User, user_id)


async def find_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


async def get_administrators(db: AsyncSession) -> List[User]:
    result = await db.execute(
        select(User).where(User.profile == Profile.Administrator).order_by(User.id)
    )
    return list(result.scalars().all())


async def create_user(db: AsyncSession, user_data: UserCreate, profile: Profile = Profile.User) -> User:
    user = User(name=user_data.name, email=user_data.email, profile=profile)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user
