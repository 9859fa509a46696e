from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models
from ..utils.auth import get_password_hash, normalize_email


def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return (
        db.query(models.User)
        .filter(func.lower(models.User.email) == normalize_email(email))
        .first()
    )


def create_user(
    db: Session,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
) -> models.User:
    """Add a user to the session without committing."""
    db_user = models.User(
        email=normalize_email(email),
        password=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
    )
    db.add(db_user)
    db.flush()
    return db_user
