from __future__ import annotations

import logging
import uuid
from typing import Any, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from models import Notification

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    async def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
        type: str = "loan_update",
    ) -> None:
        ...


class DatabaseNotificationDispatcher:
    """
    Writes the in-app notification feed entry for a user.
    Best effort: any failure is logged and swallowed so the caller's committed work stands.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
        type: str = "loan_update",
    ) -> None:
        try:
            self.session.add(
                Notification(
                    id=f"ntf-{uuid.uuid4().hex[:12]}",
                    user_id=user_id,
                    type=type,
                    title=title,
                    message=message,
                    data=data or {},
                    read=False,
                )
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            logger.exception("Failed to record notification for user %s", user_id)
