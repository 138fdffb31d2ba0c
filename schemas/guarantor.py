from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

MAX_REJECTION_REASON_LENGTH = 1000


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GuarantorRequestCreate(CamelModel):
    application_id: str = Field(..., min_length=1)
    guarantor_email: EmailStr
    borrower_name: Optional[str] = None
    amount: Optional[float] = Field(None, gt=0)
    purpose: Optional[str] = None


class GuarantorRejection(CamelModel):
    reason: Optional[str] = None


class IssueResult(CamelModel):
    success: bool = True
    token: str
    expires_at: datetime


class ApprovalDetails(CamelModel):
    """What a guarantor sees before deciding. Deliberately excludes the token and applicant ids."""

    applicant_name: str
    loan_amount: float
    loan_purpose: Optional[str] = None
    loan_type: Optional[str] = None
    duration: Optional[int] = None
    status: Literal["pending"] = "pending"
    expires_at: Optional[datetime] = None


class ApprovalStatusSummary(CamelModel):
    status: Literal["approved", "rejected"]
    message: str


class OperationResult(CamelModel):
    success: bool = True
    message: str
