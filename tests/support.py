"""
Shared fixtures for the async tests: a throwaway file-backed SQLite database per test
(so concurrent sessions really use separate connections) and in-memory collaborators.
"""
import os
import tempfile
import unittest
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy import select, update

from database import build_engine, build_sessionmaker, init_db
from models import LoanApplication, Notification
from services.email import EmailMessage
from services.errors import Internal


class FakeEmailSender:
    def __init__(self):
        self.sent: list[EmailMessage] = []
        self.error: Optional[Exception] = None
        # Awaited before each delivery; lets a test commit a competing write mid-request.
        self.before_send: Optional[Callable[[EmailMessage], Awaitable[None]]] = None

    async def send(self, message: EmailMessage) -> None:
        if self.before_send is not None:
            await self.before_send(message)
        if self.error is not None:
            raise self.error
        self.sent.append(message)

    def fail_with(self, error: Exception = None) -> None:
        self.error = error or Internal("Failed to send email")


class FakeNotifier:
    def __init__(self):
        self.calls: list[dict[str, Any]] = []
        self.error: Optional[Exception] = None

    async def notify(self, user_id, title, message, data=None, type="loan_update") -> None:
        if self.error is not None:
            raise self.error
        self.calls.append({"user_id": user_id, "title": title, "message": message, "data": data, "type": type})


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.engine = build_engine(f"sqlite+aiosqlite:///{os.path.join(self._tmp.name, 'test.db')}")
        await init_db(self.engine)
        self.sessions = build_sessionmaker(self.engine)
        self.email = FakeEmailSender()
        self.notifier = FakeNotifier()

    async def asyncTearDown(self):
        await self.engine.dispose()
        self._tmp.cleanup()

    async def create_application(self, user_id: str = "A", **fields) -> str:
        values = {
            "id": f"loan-{uuid.uuid4().hex[:12]}",
            "user_id": user_id,
            "user_name": "Jane",
            "amount": 30000,
            "purpose": "school fees",
            "loan_type": "regular",
            "duration": 12,
            "status": "pending",
            "guarantor_status": "none",
            "can_disburse": False,
        }
        values.update(fields)
        async with self.sessions() as session:
            session.add(LoanApplication(**values))
            await session.commit()
        return values["id"]

    async def fetch(self, application_id: str) -> LoanApplication:
        async with self.sessions() as session:
            result = await session.execute(select(LoanApplication).where(LoanApplication.id == application_id))
            return result.scalar_one()

    async def set_fields(self, application_id: str, **values) -> None:
        async with self.sessions() as session:
            await session.execute(update(LoanApplication).where(LoanApplication.id == application_id).values(**values))
            await session.commit()

    async def expire_token(self, application_id: str, at: datetime) -> None:
        await self.set_fields(application_id, guarantor_token_expiry=at)

    async def notifications_for(self, user_id: str) -> list[Notification]:
        async with self.sessions() as session:
            result = await session.execute(select(Notification).where(Notification.user_id == user_id))
            return list(result.scalars().all())
