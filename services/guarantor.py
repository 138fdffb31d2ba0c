"""
Guarantor approval protocol.

An applicant asks a guarantor (who has no account) to back a loan. Issuance emails a link
carrying a random token; the guarantor looks the request up by token and approves or
rejects it exactly once. The decision is a single transaction that re-checks the status,
writes the outcome and clears the token, guarded by a compare-and-swap UPDATE so that of
two concurrent decisions on the same token only one can match the row.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import LoanApplication
from schemas.guarantor import (
    MAX_REJECTION_REASON_LENGTH,
    ApprovalDetails,
    ApprovalStatusSummary,
    IssueResult,
    OperationResult,
)
from services.email import (
    EmailSender,
    format_naira,
    guarantor_reminder_email,
    guarantor_request_email,
)
from services.errors import (
    FailedPrecondition,
    GuarantorError,
    Internal,
    InvalidArgument,
    NotFound,
    PermissionDenied,
    Unauthenticated,
)
from services.notifications import NotificationDispatcher
from services.tokens import generate_approval_token, token_digest
from utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"
TERMINAL_STATUSES = (APPROVED, REJECTED)

MSG_ALREADY_PROCESSED = "Request already processed"
MSG_LINK_EXPIRED = "This approval link has expired"
MSG_INVALID_LINK = "Invalid or expired approval link"
DEFAULT_REJECTION_REASON = "No reason provided"

_TERMINAL_SUMMARY = {
    APPROVED: "You have already approved this request",
    REJECTED: "This request has already been declined",
}


def approval_link(token: str) -> str:
    return f"{settings.approval_link_base}/{token}"


def _require_caller(caller_uid: Optional[str]) -> str:
    if not caller_uid:
        raise Unauthenticated("User must be authenticated")
    return caller_uid


def _require_text(value: Optional[str], message: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidArgument(message)
    return str(value).strip()


def _is_expired(app: LoanApplication, now: datetime) -> bool:
    expiry = as_utc(app.guarantor_token_expiry)
    return expiry is not None and expiry <= now


async def _load_owned_application(session: AsyncSession, application_id: str, caller_uid: str) -> LoanApplication:
    result = await session.execute(select(LoanApplication).where(LoanApplication.id == application_id))
    app = result.scalar_one_or_none()
    if not app:
        raise NotFound("Loan application not found")
    if app.user_id != caller_uid:
        raise PermissionDenied("You do not own this loan application")
    return app


def _refuse_if_decided(app: LoanApplication) -> None:
    if app.guarantor_status == APPROVED:
        raise FailedPrecondition("Guarantor has already approved")
    if app.guarantor_status == REJECTED:
        raise FailedPrecondition("Guarantor has already declined")


async def _send(email_sender: EmailSender, message) -> None:
    try:
        await email_sender.send(message)
    except GuarantorError:
        raise
    except Exception as e:
        logger.exception("Email delivery failed")
        raise Internal(f"Failed to send email: {e}") from e


async def _store_token(session: AsyncSession, application_id: str, allowed_statuses: tuple[str, ...], values: dict) -> None:
    """Write the new token only if no decision landed since the application was read."""
    try:
        result = await session.execute(
            update(LoanApplication)
            .where(
                LoanApplication.id == application_id,
                LoanApplication.guarantor_status.in_(allowed_statuses),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await session.rollback()
            raise FailedPrecondition("Guarantor has already responded")
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Failed to store guarantor token for %s", application_id)
        raise Internal("Failed to save guarantor request") from e


async def issue_guarantor_approval(
    session: AsyncSession,
    caller_uid: Optional[str],
    application_id: Optional[str],
    guarantor_email: Optional[str],
    email_sender: EmailSender,
    borrower_name: Optional[str] = None,
    amount: Optional[float] = None,
    purpose: Optional[str] = None,
) -> IssueResult:
    """
    Issue a fresh approval token for the caller's application and email the link.
    The email goes out before the token is stored: if delivery fails nothing is persisted
    and the caller gets the error.
    """
    uid = _require_caller(caller_uid)
    application_id = _require_text(application_id, "Missing required fields")
    guarantor_email = _require_text(guarantor_email, "Missing required fields")

    app = await _load_owned_application(session, application_id, uid)
    _refuse_if_decided(app)
    name = borrower_name or app.user_name or "A member"
    loan_amount = amount if amount is not None else app.amount
    loan_purpose = purpose if purpose is not None else app.purpose
    # Release the read transaction before the network call.
    await session.commit()

    token, expires_at = generate_approval_token()
    await _send(
        email_sender,
        guarantor_request_email(
            to=guarantor_email,
            borrower_name=name,
            amount=loan_amount,
            purpose=loan_purpose,
            approval_link=approval_link(token),
            expires_at=expires_at,
        ),
    )

    await _store_token(
        session,
        application_id,
        ("none", PENDING),
        {
            "guarantor_email": guarantor_email,
            "guarantor_approval_token": token,
            "guarantor_token_expiry": expires_at,
            "guarantor_status": PENDING,
        },
    )
    logger.info("Guarantor request sent for loan %s", application_id)
    return IssueResult(token=token, expires_at=expires_at)


async def resend_approval(
    session: AsyncSession,
    caller_uid: Optional[str],
    application_id: Optional[str],
    email_sender: EmailSender,
) -> OperationResult:
    """Replace a pending request's token (the old link stops resolving) and email a reminder."""
    uid = _require_caller(caller_uid)
    application_id = _require_text(application_id, "Loan application ID is required")

    app = await _load_owned_application(session, application_id, uid)
    _refuse_if_decided(app)
    if app.guarantor_status != PENDING:
        raise FailedPrecondition("No guarantor request has been sent for this application")
    if not app.guarantor_email:
        raise FailedPrecondition("No guarantor email on file for this application")
    guarantor_email = app.guarantor_email
    name = app.user_name or "A member"
    await session.commit()

    token, expires_at = generate_approval_token()
    await _send(
        email_sender,
        guarantor_reminder_email(
            to=guarantor_email,
            borrower_name=name,
            approval_link=approval_link(token),
            expires_at=expires_at,
        ),
    )

    await _store_token(
        session,
        application_id,
        (PENDING,),
        {
            "guarantor_approval_token": token,
            "guarantor_token_expiry": expires_at,
        },
    )
    logger.info("Guarantor reminder sent for loan %s", application_id)
    return OperationResult(message="Reminder email sent successfully")


async def _find_by_live_token(session: AsyncSession, token: str, lock: bool = False) -> Optional[LoanApplication]:
    stmt = select(LoanApplication).where(LoanApplication.guarantor_approval_token == token).limit(1)
    if lock:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _find_by_decided_token(session: AsyncSession, token: str) -> Optional[LoanApplication]:
    result = await session.execute(
        select(LoanApplication)
        .where(LoanApplication.guarantor_decided_token_hash == token_digest(token))
        .limit(1)
    )
    return result.scalar_one_or_none()


def _summary(status: str) -> ApprovalStatusSummary:
    return ApprovalStatusSummary(status=status, message=_TERMINAL_SUMMARY[status])


async def get_approval_by_token(session: AsyncSession, token: Optional[str]) -> ApprovalDetails | ApprovalStatusSummary:
    """
    Public lookup for the guarantor's decision page.
    A token that was never issued or was superseded by a resend is NotFound; a token that
    already recorded a decision returns the terminal status so the page can be reloaded.
    """
    token = _require_text(token, "Token is required")

    app = await _find_by_live_token(session, token)
    if app is None:
        decided = await _find_by_decided_token(session, token)
        if decided is not None and decided.guarantor_status in TERMINAL_STATUSES:
            return _summary(decided.guarantor_status)
        raise NotFound(MSG_INVALID_LINK)

    if app.guarantor_status in TERMINAL_STATUSES:
        return _summary(app.guarantor_status)
    if app.guarantor_status != PENDING:
        raise NotFound(MSG_INVALID_LINK)
    if _is_expired(app, utcnow()):
        raise FailedPrecondition(MSG_LINK_EXPIRED)

    return ApprovalDetails(
        applicant_name=app.user_name or "Unknown",
        loan_amount=app.amount,
        loan_purpose=app.purpose,
        loan_type=app.loan_type,
        duration=app.duration,
        expires_at=as_utc(app.guarantor_token_expiry),
    )


async def _raise_lost_decision(session: AsyncSession, application_id: str, token: str) -> None:
    """
    The row changed between our read and our write. A still-pending row means the token
    was replaced by a resend, not decided, so the old link is simply invalid.
    """
    result = await session.execute(
        select(LoanApplication.guarantor_status, LoanApplication.guarantor_approval_token)
        .where(LoanApplication.id == application_id)
    )
    row = result.one_or_none()
    if row is not None and row.guarantor_status == PENDING and row.guarantor_approval_token != token:
        raise NotFound("Invalid approval link")
    raise FailedPrecondition(MSG_ALREADY_PROCESSED)


async def _record_decision(
    session: AsyncSession,
    token: str,
    outcome: Literal["approved", "rejected"],
    reason: Optional[str] = None,
) -> tuple[str, str, float]:
    """
    Run the read-validate-write transaction. Returns (application id, owner uid, amount).
    Any failure rolls back with nothing written.
    """
    try:
        app = await _find_by_live_token(session, token, lock=True)
        if app is None:
            if await _find_by_decided_token(session, token) is not None:
                raise FailedPrecondition(MSG_ALREADY_PROCESSED)
            raise NotFound("Invalid approval link")
        if app.guarantor_status != PENDING:
            raise FailedPrecondition(MSG_ALREADY_PROCESSED)
        now = utcnow()
        if _is_expired(app, now):
            raise FailedPrecondition(MSG_LINK_EXPIRED)

        values = {
            "guarantor_status": outcome,
            "guarantor_approval_token": None,
            "guarantor_decided_token_hash": token_digest(token),
        }
        if outcome == APPROVED:
            values.update(guarantor_approved_at=now, can_disburse=True)
        else:
            values.update(
                guarantor_rejected_at=now,
                guarantor_rejection_reason=reason,
                can_disburse=False,
                status=REJECTED,
            )

        result = await session.execute(
            update(LoanApplication)
            .where(
                LoanApplication.id == app.id,
                LoanApplication.guarantor_approval_token == token,
                LoanApplication.guarantor_status == PENDING,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await _raise_lost_decision(session, app.id, token)
        decided = (app.id, app.user_id, app.amount)
        await session.commit()
        return decided
    except GuarantorError:
        await session.rollback()
        raise


async def _notify(notifier: NotificationDispatcher, user_id: str, title: str, message: str, data: dict) -> None:
    try:
        await notifier.notify(user_id=user_id, title=title, message=message, data=data, type="loan_update")
    except Exception:
        logger.exception("Guarantor outcome notification failed for user %s", user_id)


async def approve_by_token(
    session: AsyncSession,
    token: Optional[str],
    notifier: NotificationDispatcher,
) -> OperationResult:
    token = _require_text(token, "Token is required")
    loan_id, user_id, amount = await _record_decision(session, token, APPROVED)
    logger.info("Guarantor approved loan %s", loan_id)

    await _notify(
        notifier,
        user_id,
        "Guarantor Approved",
        f"Your guarantor has approved your loan application for {format_naira(amount)}",
        {"loanId": loan_id, "status": "guarantor_approved"},
    )
    return OperationResult(message="You have successfully approved the guarantor request")


async def reject_by_token(
    session: AsyncSession,
    token: Optional[str],
    notifier: NotificationDispatcher,
    reason: Optional[str] = None,
) -> OperationResult:
    token = _require_text(token, "Token is required")
    reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
    if len(reason) > MAX_REJECTION_REASON_LENGTH:
        raise InvalidArgument(f"Reason must be at most {MAX_REJECTION_REASON_LENGTH} characters")

    loan_id, user_id, _ = await _record_decision(session, token, REJECTED, reason)
    logger.info("Guarantor rejected loan %s", loan_id)

    await _notify(
        notifier,
        user_id,
        "Guarantor Declined",
        f"Your guarantor has declined your loan application. Reason: {reason}",
        {"loanId": loan_id, "status": "guarantor_rejected", "reason": reason},
    )
    return OperationResult(message="You have declined the guarantor request")
