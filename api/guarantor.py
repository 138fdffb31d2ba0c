from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_uid, get_email_sender, get_notifier, raise_http
from database import get_db
from schemas.guarantor import GuarantorRejection, GuarantorRequestCreate
from services import guarantor as protocol
from services.email import EmailSender
from services.errors import GuarantorError
from services.notifications import NotificationDispatcher

router = APIRouter(prefix="/api/guarantor", tags=["guarantor"])


@router.post("/requests", response_model=dict)
async def issue_guarantor_request(
    body: GuarantorRequestCreate,
    db: AsyncSession = Depends(get_db),
    uid: Optional[str] = Depends(get_current_uid),
    email_sender: EmailSender = Depends(get_email_sender),
) -> dict[str, Any]:
    """Applicant asks a guarantor to back their loan; emails the approval link."""
    try:
        result = await protocol.issue_guarantor_approval(
            db,
            uid,
            body.application_id,
            body.guarantor_email,
            email_sender,
            borrower_name=body.borrower_name,
            amount=body.amount,
            purpose=body.purpose,
        )
    except GuarantorError as e:
        raise_http(e)
    return result.model_dump(by_alias=True, mode="json")


@router.post("/requests/{application_id}/resend", response_model=dict)
async def resend_guarantor_request(
    application_id: str,
    db: AsyncSession = Depends(get_db),
    uid: Optional[str] = Depends(get_current_uid),
    email_sender: EmailSender = Depends(get_email_sender),
) -> dict[str, Any]:
    try:
        result = await protocol.resend_approval(db, uid, application_id, email_sender)
    except GuarantorError as e:
        raise_http(e)
    return result.model_dump(by_alias=True, mode="json")


@router.get("/approvals/{token}", response_model=dict)
async def get_guarantor_approval(token: str, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    """Public: the guarantor has no account, the token is the credential."""
    try:
        result = await protocol.get_approval_by_token(db, token)
    except GuarantorError as e:
        raise_http(e)
    return result.model_dump(by_alias=True, mode="json")


@router.post("/approvals/{token}/approve", response_model=dict)
async def approve_guarantor_request(
    token: str,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> dict[str, Any]:
    try:
        result = await protocol.approve_by_token(db, token, notifier)
    except GuarantorError as e:
        raise_http(e)
    return result.model_dump(by_alias=True, mode="json")


@router.post("/approvals/{token}/reject", response_model=dict)
async def reject_guarantor_request(
    token: str,
    body: Optional[GuarantorRejection] = Body(None),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> dict[str, Any]:
    try:
        result = await protocol.reject_by_token(db, token, notifier, reason=body.reason if body else None)
    except GuarantorError as e:
        raise_http(e)
    return result.model_dump(by_alias=True, mode="json")
