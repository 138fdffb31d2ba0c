"""
Outbound email for guarantor requests.
ResendEmailSender posts to a transactional email HTTP API; the protocol only depends on
the EmailSender interface so tests and other providers can stand in for it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Optional, Protocol

import requests
from fastapi.concurrency import run_in_threadpool

from config import settings
from services.errors import EmailNotConfigured, Internal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str


class EmailSender(Protocol):
    async def send(self, message: EmailMessage) -> None:
        ...


class ResendEmailSender:
    def __init__(
        self,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.sender = sender or settings.email_from
        self.api_url = api_url or settings.email_api_url
        self.timeout = timeout or settings.email_timeout_seconds

    async def send(self, message: EmailMessage) -> None:
        if not self.api_key:
            raise EmailNotConfigured("Email service not configured")
        await run_in_threadpool(self._post, message)

    def _post(self, message: EmailMessage) -> None:
        payload = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            r = requests.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Email transport error: %s", e)
            raise Internal("Failed to send email") from e
        if r.status_code >= 300:
            logger.error("Email API returned %s: %s", r.status_code, r.text[:500])
            raise Internal(f"Failed to send email (status {r.status_code})")


def format_naira(amount: float) -> str:
    if float(amount).is_integer():
        return f"₦{int(amount):,}"
    return f"₦{amount:,.2f}"


_BUTTON_STYLE = (
    "display: inline-block; background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); "
    "color: white; padding: 15px 30px; text-decoration: none; border-radius: 8px; font-weight: bold;"
)


def guarantor_request_email(
    to: str,
    borrower_name: str,
    amount: float,
    purpose: str,
    approval_link: str,
    expires_at: datetime,
) -> EmailMessage:
    name = escape(borrower_name)
    html = f"""<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0;">
        <h1>Guarantor Request</h1>
        <p>AWSLMCSL Cooperative Society</p>
    </div>
    <div style="background: #f9fafb; padding: 30px; border-radius: 0 0 10px 10px;">
        <p>Dear Member,</p>
        <p><strong>{name}</strong> has requested you to be a guarantor for their loan application.</p>
        <div style="background: white; padding: 20px; border-radius: 8px; margin: 20px 0; border-left: 4px solid #667eea;">
            <h3 style="margin-top: 0; color: #667eea;">Loan Details</h3>
            <p><strong>Applicant:</strong> {name}</p>
            <p><strong>Loan Amount:</strong> {format_naira(amount)}</p>
            <p><strong>Purpose:</strong> {escape(purpose or "")}</p>
        </div>
        <div style="background: #fef3c7; border-left: 4px solid #f59e0b; padding: 15px; border-radius: 8px; margin: 20px 0;">
            <p style="margin: 0;"><strong>Important:</strong> As a guarantor, you agree to take financial responsibility if the borrower defaults on this loan.</p>
        </div>
        <p style="text-align: center;">
            <a href="{escape(approval_link, quote=True)}" style="{_BUTTON_STYLE}">Review &amp; Respond to Request</a>
        </p>
        <p style="font-size: 14px; color: #6b7280;">
            This link will expire on {expires_at:%d %b %Y}.
            If you did not expect this email, please ignore it.
        </p>
    </div>
    <div style="text-align: center; padding: 20px; color: #6b7280; font-size: 14px;">
        <p>AWSLMCSL Cooperative Society<br>This is an automated message, please do not reply.</p>
    </div>
</body>
</html>
"""
    return EmailMessage(to=to, subject="Guarantor Request for Loan Application", html=html)


def guarantor_reminder_email(
    to: str,
    borrower_name: str,
    approval_link: str,
    expires_at: datetime,
) -> EmailMessage:
    html = f"""<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0;">
        <h1>Guarantor Request Reminder</h1>
    </div>
    <div style="background: #f9fafb; padding: 30px; border-radius: 0 0 10px 10px;">
        <p>This is a reminder that <strong>{escape(borrower_name)}</strong> has requested you to be a guarantor for their loan application.</p>
        <p style="text-align: center; margin: 30px 0;">
            <a href="{escape(approval_link, quote=True)}" style="{_BUTTON_STYLE}">Review Request</a>
        </p>
        <p style="font-size: 14px; color: #6b7280;">This link expires on {expires_at:%d %b %Y}</p>
    </div>
</body>
</html>
"""
    return EmailMessage(to=to, subject="Reminder: Guarantor Request for Loan Application", html=html)
