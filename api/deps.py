"""
Request-scoped collaborators shared by the routers.
Authentication happens upstream: the gateway verifies the member's session and forwards
their uid in X-User-Id. Routes that need a caller pass it on; the services decide.
"""
from typing import NoReturn, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.email import EmailSender, ResendEmailSender
from services.errors import GuarantorError
from services.notifications import DatabaseNotificationDispatcher, NotificationDispatcher

ERROR_STATUS = {
    "unauthenticated": 401,
    "permission-denied": 403,
    "invalid-argument": 400,
    "not-found": 404,
    "failed-precondition": 409,
    "email-not-configured": 503,
    "internal": 500,
}


async def get_current_uid(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


def get_email_sender() -> EmailSender:
    return ResendEmailSender()


def get_notifier(db: AsyncSession = Depends(get_db)) -> NotificationDispatcher:
    return DatabaseNotificationDispatcher(db)


def raise_http(error: GuarantorError) -> NoReturn:
    raise HTTPException(
        status_code=ERROR_STATUS.get(error.code, 500),
        detail={"code": error.code, "message": error.message},
    ) from error
