from pydantic import BaseModel
from datetime import datetime
from typing import Any, Dict, Optional

from ..models.notification import NotificationType


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    profile_id: Optional[int] = None
    type: NotificationType
    title: str
    message: str
    link: str
    data: Optional[Dict[str, Any]] = None
    is_read: bool
    timestamp: datetime

    model_config = {"from_attributes": True}


class UnreadCount(BaseModel):
    count: int
