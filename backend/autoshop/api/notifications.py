"""The caller's own notification inbox."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from autoshop.database import get_db
from autoshop.models.notification import Notification
from autoshop.models.user import User
from autoshop.schemas.notification import (
    NotificationListResponse,
    NotificationResponse,
    NotificationsMarkedRead,
)
from autoshop.utils.security import get_current_user

router = APIRouter()


async def _unread_count(db: AsyncSession, user_id: int) -> int:
    query = select(func.count(Notification.id)).where(
        Notification.user_id == user_id,
        Notification.is_read.is_(False),
    )
    return (await db.execute(query)).scalar_one()


@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    is_read: Optional[bool] = None,
    project_id: Optional[int] = None,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationListResponse:
    """Newest first; optionally only one project's notifications."""
    conditions = [Notification.user_id == current_user.id]
    if is_read is not None:
        conditions.append(Notification.is_read == is_read)
    if project_id is not None:
        conditions.append(Notification.related_project_id == project_id)

    total = (await db.execute(select(func.count(Notification.id)).where(*conditions))).scalar_one()
    rows = (
        await db.execute(
            select(Notification)
            .where(*conditions)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
    ).scalars()
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(row) for row in rows],
        total=total,
        unread=await _unread_count(db, current_user.id),
    )


@router.post("/{notification_id}/read", response_model=NotificationsMarkedRead)
async def mark_notification_read(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationsMarkedRead:
    notification = await db.get(Notification, notification_id)
    # Other users' notifications look the same as missing ones
    if notification is None or notification.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")

    updated = 0 if notification.is_read else 1
    notification.is_read = True
    await db.flush()
    return NotificationsMarkedRead(updated=updated, unread=await _unread_count(db, current_user.id))


@router.post("/read-all", response_model=NotificationsMarkedRead)
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationsMarkedRead:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == current_user.id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    return NotificationsMarkedRead(updated=result.rowcount, unread=0)
