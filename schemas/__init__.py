from schemas.application import (
    ApplicationCreate,
    ApplicationResponse,
    NotificationResponse,
)
from schemas.guarantor import (
    ApprovalDetails,
    ApprovalStatusSummary,
    GuarantorRejection,
    GuarantorRequestCreate,
    IssueResult,
    OperationResult,
)

__all__ = [
    "ApplicationCreate",
    "ApplicationResponse",
    "NotificationResponse",
    "ApprovalDetails",
    "ApprovalStatusSummary",
    "GuarantorRejection",
    "GuarantorRequestCreate",
    "IssueResult",
    "OperationResult",
]
