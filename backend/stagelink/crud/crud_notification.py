from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models


def create_notification(
    db: Session,
    user_id: int,
    type: models.NotificationType,
    title: str,
    message: str,
    link: str,
    profile_id: Optional[int] = None,
    data: Optional[dict] = None,
) -> models.Notification:
    db_obj = models.Notification(
        user_id=user_id,
        profile_id=profile_id,
        type=type,
        title=title,
        message=message,
        link=link,
        data=data,
    )
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def _scoped(db: Session, user_id: int, profile_id: Optional[int]):
    query = db.query(models.Notification).filter(models.Notification.user_id == user_id)
    if profile_id is not None:
        query = query.filter(
            or_(
                models.Notification.profile_id.is_(None),
                models.Notification.profile_id == profile_id,
            )
        )
    return query


def get_notifications_for_user(
    db: Session,
    user_id: int,
    profile_id: Optional[int] = None,
    skip: int = 0,
    limit: int | None = None,
) -> List[models.Notification]:
    """Return notifications newest first, scoped to ``profile_id`` when given."""
    query = _scoped(db, user_id, profile_id).order_by(
        models.Notification.timestamp.desc(), models.Notification.id.desc()
    )
    if skip:
        query = query.offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def count_unread(db: Session, user_id: int, profile_id: Optional[int] = None) -> int:
    return _scoped(db, user_id, profile_id).filter(models.Notification.is_read.is_(False)).count()


def get_notification(db: Session, notification_id: int) -> models.Notification | None:
    return (
        db.query(models.Notification)
        .filter(models.Notification.id == notification_id)
        .first()
    )


def mark_as_read(
    db: Session, db_notification: models.Notification
) -> models.Notification:
    db_notification.is_read = True
    db.commit()
    db.refresh(db_notification)
    return db_notification


def mark_all_read(db: Session, user_id: int, profile_id: Optional[int] = None) -> int:
    updated = (
        _scoped(db, user_id, profile_id)
        .filter(models.Notification.is_read.is_(False))
        .update({"is_read": True}, synchronize_session=False)
    )
    db.commit()
    return updated


def delete_by_link(
    db: Session,
    user_ids: List[int],
    ntype: models.NotificationType,
    link: str,
) -> int:
    if not user_ids:
        return 0
    deleted = (
        db.query(models.Notification)
        .filter(
            models.Notification.user_id.in_(user_ids),
            models.Notification.type == ntype,
            models.Notification.link == link,
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
