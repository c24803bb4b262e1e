import json
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from autoshop.models.audit_log import AuditAction, AuditLog
from autoshop.models.notification import Notification, NotificationType
from autoshop.utils.logging import get_logger

logger = get_logger("services.notifications")


class NotificationService:
    """Writes inbox notifications and audit rows in the caller's unit of work."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_notification(
        self,
        user_id: int,
        message: str,
        notification_type: NotificationType,
        related_appointment_id: Optional[int] = None,
        related_project_id: Optional[int] = None,
    ) -> Notification:
        created = await self.notify_many(
            [user_id],
            message,
            notification_type,
            related_appointment_id=related_appointment_id,
            related_project_id=related_project_id,
        )
        return created[0]

    async def notify_many(
        self,
        user_ids: Iterable[Optional[int]],
        message: str,
        notification_type: NotificationType,
        related_appointment_id: Optional[int] = None,
        related_project_id: Optional[int] = None,
    ) -> List[Notification]:
        """One notification per distinct recipient; ``None`` ids are skipped."""
        recipients = [user_id for user_id in dict.fromkeys(user_ids) if user_id is not None]
        rows = [
            Notification(
                user_id=user_id,
                message=message,
                type=notification_type.value,
                is_read=False,
                related_appointment_id=related_appointment_id,
                related_project_id=related_project_id,
            )
            for user_id in recipients
        ]
        if rows:
            self.db.add_all(rows)
            await self.db.flush()
            logger.info(
                "notifications_queued",
                type=notification_type.value,
                recipients=recipients,
                appointment_id=related_appointment_id,
                project_id=related_project_id,
            )
        return rows

    async def audit(
        self,
        user_id: int,
        action: AuditAction,
        entity_type: str,
        entity_id: int,
        payload: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        entry = AuditLog(
            user_id=user_id,
            action=action.value,
            entity_type=entity_type,
            entity_id=entity_id,
            payload=json.dumps(payload, default=str, sort_keys=True) if payload else None,
        )
        self.db.add(entry)
        await self.db.flush()
        logger.debug("audit_recorded", action=action.value, entity_type=entity_type, entity_id=entity_id)
        return entry
