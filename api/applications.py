from __future__ import annotations

import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_uid, get_email_sender, raise_http
from database import get_db
from models import LoanApplication
from schemas.application import ApplicationCreate, ApplicationResponse
from services import guarantor as protocol
from services.email import EmailSender
from services.errors import GuarantorError
from utils.dates import isoformat, utcnow

router = APIRouter(prefix="/api/applications", tags=["applications"])

MSG_APPLICATION_NOT_FOUND = "Application not found"


def _app_to_response(app: LoanApplication) -> dict[str, Any]:
    return ApplicationResponse.from_orm_app(app).model_dump(by_alias=True, mode="json")


def _require_uid(uid: Optional[str]) -> str:
    if not uid:
        raise HTTPException(status_code=401, detail="User must be authenticated")
    return uid


async def _get_owned(db: AsyncSession, application_id: str, uid: str) -> LoanApplication:
    result = await db.execute(select(LoanApplication).where(LoanApplication.id == application_id))
    app = result.scalar_one_or_none()
    if not app:
        raise HTTPException(status_code=404, detail=MSG_APPLICATION_NOT_FOUND)
    if app.user_id != uid:
        raise HTTPException(status_code=403, detail="You do not own this loan application")
    return app


@router.get("")
async def list_applications(
    db: AsyncSession = Depends(get_db),
    uid: Optional[str] = Depends(get_current_uid),
):
    uid = _require_uid(uid)
    result = await db.execute(
        select(LoanApplication)
        .where(LoanApplication.user_id == uid)
        .order_by(LoanApplication.created_at.desc())
    )
    return [_app_to_response(a) for a in result.scalars().all()]


@router.get("/{application_id}")
async def get_application(
    application_id: str,
    db: AsyncSession = Depends(get_db),
    uid: Optional[str] = Depends(get_current_uid),
):
    app = await _get_owned(db, application_id, _require_uid(uid))
    return _app_to_response(app)


@router.post("", status_code=201)
async def create_application(
    body: ApplicationCreate,
    db: AsyncSession = Depends(get_db),
    uid: Optional[str] = Depends(get_current_uid),
):
    uid = _require_uid(uid)
    now = utcnow()
    app = LoanApplication(
        id=f"loan-{uuid.uuid4().hex[:12]}",
        user_id=uid,
        user_name=body.user_name,
        amount=body.amount,
        purpose=body.purpose,
        loan_type=body.loan_type,
        duration=body.duration,
        status="draft",
        guarantor_email=body.guarantor_email,
        guarantor_status="none",
        can_disburse=False,
        created_at=now,
        updated_at=now,
    )
    db.add(app)
    await db.flush()
    return _app_to_response(app)


@router.post("/{application_id}/submit")
async def submit_application(
    application_id: str,
    db: AsyncSession = Depends(get_db),
    uid: Optional[str] = Depends(get_current_uid),
    email_sender: EmailSender = Depends(get_email_sender),
):
    """
    Submit a draft for review. When a guarantor email is on file the guarantor request
    goes out first; if that email fails the application stays a draft.
    """
    uid = _require_uid(uid)
    app = await _get_owned(db, application_id, uid)
    if app.status != "draft":
        raise HTTPException(status_code=409, detail="Application has already been submitted")

    guarantor_request = None
    if app.guarantor_email:
        try:
            issued = await protocol.issue_guarantor_approval(
                db,
                uid,
                application_id,
                app.guarantor_email,
                email_sender,
                borrower_name=app.user_name,
                amount=app.amount,
                purpose=app.purpose,
            )
        except GuarantorError as e:
            raise_http(e)
        guarantor_request = {"guarantorStatus": "pending", "expiresAt": isoformat(issued.expires_at)}
        await db.refresh(app)

    app.status = "pending"
    app.submitted_at = utcnow()
    app.updated_at = utcnow()
    await db.flush()
    out = _app_to_response(app)
    out["guarantorRequest"] = guarantor_request
    return out
