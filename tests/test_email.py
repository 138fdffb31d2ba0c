import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import requests

from services.email import (
    EmailMessage,
    ResendEmailSender,
    format_naira,
    guarantor_reminder_email,
    guarantor_request_email,
)
from services.errors import EmailNotConfigured, Internal

EXPIRES = datetime(2026, 3, 8, tzinfo=timezone.utc)


class TestTemplates(unittest.TestCase):
    def test_request_email_contains_loan_details_and_link(self):
        message = guarantor_request_email(
            to="g@x.com",
            borrower_name="Jane",
            amount=30000,
            purpose="school fees",
            approval_link="http://localhost:3000/guarantor-approval/abc",
            expires_at=EXPIRES,
        )
        self.assertEqual(message.to, "g@x.com")
        self.assertEqual(message.subject, "Guarantor Request for Loan Application")
        self.assertIn("Jane", message.html)
        self.assertIn("₦30,000", message.html)
        self.assertIn('href="http://localhost:3000/guarantor-approval/abc"', message.html)
        self.assertIn("08 Mar 2026", message.html)

    def test_values_are_html_escaped(self):
        message = guarantor_request_email(
            to="g@x.com",
            borrower_name="<script>alert(1)</script>",
            amount=100,
            purpose="a & b",
            approval_link="http://x/y",
            expires_at=EXPIRES,
        )
        self.assertNotIn("<script>", message.html)
        self.assertIn("&lt;script&gt;", message.html)
        self.assertIn("a &amp; b", message.html)

    def test_reminder_email(self):
        message = guarantor_reminder_email("g@x.com", "Jane", "http://x/guarantor-approval/t", EXPIRES)
        self.assertTrue(message.subject.startswith("Reminder:"))
        self.assertIn("http://x/guarantor-approval/t", message.html)

    def test_format_naira(self):
        self.assertEqual(format_naira(30000), "₦30,000")
        self.assertEqual(format_naira(1250.5), "₦1,250.50")


class TestResendEmailSender(unittest.IsolatedAsyncioTestCase):
    message = EmailMessage(to="g@x.com", subject="Hello", html="<p>hi</p>")

    async def test_missing_key_raises_without_calling_api(self):
        sender = ResendEmailSender(api_key="")
        with patch("services.email.requests.post") as post:
            with self.assertRaises(EmailNotConfigured):
                await sender.send(self.message)
        post.assert_not_called()

    async def test_posts_message_with_bearer_key(self):
        sender = ResendEmailSender(api_key="re_test", sender="Coop <noreply@coop.test>", api_url="https://mail.test/emails")
        with patch("services.email.requests.post", return_value=MagicMock(status_code=200)) as post:
            await sender.send(self.message)

        post.assert_called_once()
        args, kwargs = post.call_args
        self.assertEqual(args[0], "https://mail.test/emails")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer re_test")
        self.assertEqual(kwargs["json"]["to"], ["g@x.com"])
        self.assertEqual(kwargs["json"]["from"], "Coop <noreply@coop.test>")
        self.assertEqual(kwargs["json"]["subject"], "Hello")

    async def test_error_status_raises_internal(self):
        sender = ResendEmailSender(api_key="re_test")
        response = MagicMock(status_code=422, text="invalid recipient")
        with patch("services.email.requests.post", return_value=response):
            with self.assertRaises(Internal):
                await sender.send(self.message)

    async def test_transport_error_raises_internal(self):
        sender = ResendEmailSender(api_key="re_test")
        with patch("services.email.requests.post", side_effect=requests.ConnectionError("down")):
            with self.assertRaises(Internal):
                await sender.send(self.message)


if __name__ == "__main__":
    unittest.main()
