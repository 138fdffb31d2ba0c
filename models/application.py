from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text, func

from database import Base


class LoanApplication(Base):
    __tablename__ = "loan_applications"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    user_name = Column(String(256), nullable=True)
    amount = Column(Float, nullable=False)
    purpose = Column(Text, nullable=True)
    loan_type = Column(String(64), nullable=True)
    duration = Column(Integer, nullable=True)
    status = Column(String(32), nullable=False, default="draft", index=True)

    # Guarantor approval protocol
    guarantor_email = Column(String(320), nullable=True)
    guarantor_approval_token = Column(String(128), unique=True, nullable=True, index=True)
    guarantor_token_expiry = Column(DateTime(timezone=True), nullable=True)
    guarantor_status = Column(String(16), nullable=False, default="none", index=True)
    guarantor_approved_at = Column(DateTime(timezone=True), nullable=True)
    guarantor_rejected_at = Column(DateTime(timezone=True), nullable=True)
    guarantor_rejection_reason = Column(Text, nullable=True)
    # sha256 of the token that recorded the decision; the raw token is cleared on consumption
    guarantor_decided_token_hash = Column(String(64), nullable=True, index=True)
    can_disburse = Column(Boolean, nullable=False, default=False)

    submitted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
