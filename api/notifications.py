from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_uid
from database import get_db
from models import Notification
from schemas.application import NotificationResponse
from utils.dates import as_utc

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _notification_to_response(n: Notification) -> dict:
    return NotificationResponse(
        id=n.id,
        type=n.type,
        title=n.title,
        message=n.message,
        data=n.data or {},
        read=bool(n.read),
        created_at=as_utc(n.created_at),
    ).model_dump(by_alias=True, mode="json")


@router.get("")
async def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    uid: Optional[str] = Depends(get_current_uid),
):
    if not uid:
        raise HTTPException(status_code=401, detail="User must be authenticated")
    stmt = select(Notification).where(Notification.user_id == uid)
    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))
    result = await db.execute(stmt.order_by(Notification.created_at.desc()).limit(limit))
    return [_notification_to_response(n) for n in result.scalars().all()]


@router.post("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    uid: Optional[str] = Depends(get_current_uid),
):
    if not uid:
        raise HTTPException(status_code=401, detail="User must be authenticated")
    result = await db.execute(select(Notification).where(Notification.id == notification_id))
    n = result.scalar_one_or_none()
    # Someone else's notification is reported as missing.
    if not n or n.user_id != uid:
        raise HTTPException(status_code=404, detail="Notification not found")
    n.read = True
    await db.flush()
    return _notification_to_response(n)
