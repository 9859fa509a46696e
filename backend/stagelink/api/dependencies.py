from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.profile import Profile
from ..models.user import User
from ..crud import crud_profile
from ..utils import error_response
from .auth import get_current_user

__all__ = [
    "get_db",
    "get_current_user",
    "get_current_active_user",
    "get_current_active_profile",
]


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return current_user


def get_current_active_profile(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> Profile:
    """Resolve the profile the user is acting as for this request."""
    profile = crud_profile.get_active_profile(db, current_user)
    if profile is None:
        raise error_response(
            "No active profile",
            {"profile": "no_active_profile"},
            status.HTTP_400_BAD_REQUEST,
        )
    return profile
