from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from .. import models, schemas, crud
from .dependencies import get_db, get_current_user
from ..utils import error_response

router = APIRouter(tags=["notifications"])

logger = logging.getLogger(__name__)


def _active_profile_id(db: Session, user: models.User) -> Optional[int]:
    profile = crud.crud_profile.get_active_profile(db, user)
    return profile.id if profile else None


@router.get("/notifications", response_model=List[schemas.NotificationResponse])
def read_my_notifications(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Notifications for the active profile plus account-wide ones, newest first."""
    return crud.crud_notification.get_notifications_for_user(
        db,
        current_user.id,
        profile_id=_active_profile_id(db, current_user),
        skip=skip,
        limit=limit,
    )


@router.get("/notifications/unread-count", response_model=schemas.UnreadCount)
def read_unread_count(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    count = crud.crud_notification.count_unread(
        db, current_user.id, profile_id=_active_profile_id(db, current_user)
    )
    return {"count": count}


@router.put("/notifications/read-all")
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Mark all notifications as read for the active profile."""
    updated = crud.crud_notification.mark_all_read(
        db, current_user.id, profile_id=_active_profile_id(db, current_user)
    )
    return {"updated": updated}


@router.put(
    "/notifications/{notification_id}/read",
    response_model=schemas.NotificationResponse,
)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Mark a notification as read."""
    db_notif = crud.crud_notification.get_notification(db, notification_id)
    if not db_notif or db_notif.user_id != current_user.id:
        raise error_response(
            "Notification not found",
            {"notification_id": "not_found"},
            status.HTTP_404_NOT_FOUND,
        )
    return crud.crud_notification.mark_as_read(db, db_notif)
