# services/permissions.py — profile based authorization
import enum
from typing import Dict, FrozenSet, Optional

from models import Profile, User


class Permission(str, enum.Enum):
    ApproveBook = "ApproveBook"
    DonateBook = "DonateBook"


PROFILE_PERMISSIONS: Dict[Profile, FrozenSet[Permission]] = {
    Profile.Administrator: frozenset(Permission),
    Profile.User: frozenset(),
}


def has_permission(user: Optional[User], permission: Permission) -> bool:
    """Return True if the user is known and their profile grants permission."""
    if user is None:
        return False
    return permission in PROFILE_PERMISSIONS.get(Profile(user.profile), frozenset())
