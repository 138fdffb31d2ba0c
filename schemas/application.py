from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import EmailStr, Field

from schemas.guarantor import CamelModel
from utils.dates import as_utc


class ApplicationCreate(CamelModel):
    amount: float = Field(..., gt=0)
    purpose: Optional[str] = None
    loan_type: Optional[str] = None
    duration: Optional[int] = Field(None, gt=0, description="Repayment period in months")
    user_name: Optional[str] = None
    guarantor_email: Optional[EmailStr] = None


class ApplicationResponse(CamelModel):
    id: str
    user_id: str
    user_name: Optional[str] = None
    amount: float
    purpose: Optional[str] = None
    loan_type: Optional[str] = None
    duration: Optional[int] = None
    status: Literal["draft", "pending", "approved", "rejected", "disbursed"]
    guarantor_email: Optional[str] = None
    guarantor_status: Literal["none", "pending", "approved", "rejected"]
    guarantor_token_expiry: Optional[datetime] = None
    guarantor_approved_at: Optional[datetime] = None
    guarantor_rejected_at: Optional[datetime] = None
    guarantor_rejection_reason: Optional[str] = None
    can_disburse: bool = False
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_orm_app(cls, obj: Any) -> "ApplicationResponse":
        """Owner-facing view; the live approval token is never echoed here."""
        return cls(
            id=obj.id,
            user_id=obj.user_id,
            user_name=obj.user_name,
            amount=obj.amount,
            purpose=obj.purpose,
            loan_type=obj.loan_type,
            duration=obj.duration,
            status=obj.status,
            guarantor_email=obj.guarantor_email,
            guarantor_status=obj.guarantor_status or "none",
            guarantor_token_expiry=as_utc(obj.guarantor_token_expiry),
            guarantor_approved_at=as_utc(obj.guarantor_approved_at),
            guarantor_rejected_at=as_utc(obj.guarantor_rejected_at),
            guarantor_rejection_reason=obj.guarantor_rejection_reason,
            can_disburse=bool(obj.can_disburse),
            submitted_at=as_utc(obj.submitted_at),
            created_at=as_utc(obj.created_at),
            updated_at=as_utc(obj.updated_at),
        )


class NotificationResponse(CamelModel):
    id: str
    type: str
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    read: bool = False
    created_at: Optional[datetime] = None
