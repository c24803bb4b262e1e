"""In-app notification payloads."""

from datetime import datetime
from typing import List, Optional

from autoshop.schemas.common import CamelModel


class NotificationResponse(CamelModel):
    id: int
    message: str
    type: str
    is_read: bool
    related_appointment_id: Optional[int] = None
    related_project_id: Optional[int] = None
    created_at: datetime


class NotificationListResponse(CamelModel):
    notifications: List[NotificationResponse]
    total: int
    unread: int


class NotificationsMarkedRead(CamelModel):
    updated: int
    unread: int
