import os
import unittest
from datetime import date
from unittest.mock import patch

import requests

from clublotto.errors import MailDeliveryError
from clublotto.mail import templates
from clublotto.mail.api import RESEND_EMAILS_URL, ResendClient


class DummyResponse:
    def __init__(self, json_data=None, content: bytes = b"{}", status_error=None):
        self._json = json_data
        self.content = content
        self.status_error = status_error

    def json(self):
        return self._json

    def raise_for_status(self):
        if self.status_error is not None:
            raise self.status_error


class DummySession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


class TestResendClient(unittest.TestCase):
    @patch("clublotto.mail.api.load_dotenv")
    def test_requires_key_and_sender(self, _):
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValueError):
                ResendClient(sender="a@example.com")
            with self.assertRaises(ValueError):
                ResendClient("re_key")
        with patch.dict(os.environ, {"LOTTERY_MAIL_FROM": "Lotto <l@example.com>"}, clear=True):
            self.assertEqual(ResendClient("re_key").sender, "Lotto <l@example.com>")

    def test_send_email(self):
        session = DummySession(DummyResponse({"id": "email_1"}))
        client = ResendClient("re_key", sender="Lotto <l@example.com>", session=session)

        message_id = client.send_email("winner@example.com", "Hello", "<p>Hi</p>")

        self.assertEqual(message_id, "email_1")
        [call] = session.calls
        self.assertEqual(call["url"], RESEND_EMAILS_URL)
        self.assertEqual(
            call["json"],
            {
                "from": "Lotto <l@example.com>",
                "to": ["winner@example.com"],
                "subject": "Hello",
                "html": "<p>Hi</p>",
            },
        )
        self.assertEqual(call["headers"]["Authorization"], "Bearer re_key")

    def test_send_failures_raise(self):
        for response in (
            requests.ConnectionError("refused"),
            DummyResponse(status_error=requests.HTTPError("422 Client Error")),
        ):
            with self.subTest(response=response):
                client = ResendClient("k", sender="s@example.com", session=DummySession(response))
                with self.assertRaises(MailDeliveryError):
                    client.send_email("x@example.com", "s", "b")

    def test_empty_recipient_list(self):
        client = ResendClient("k", sender="s@example.com", session=DummySession(DummyResponse()))
        with self.assertRaises(ValueError):
            client.send_email([], "s", "b")


class TestTemplates(unittest.TestCase):
    def test_jackpot_email(self):
        subject, html = templates.jackpot_winner_email(
            name="Sam <script>",
            lottery_name="Club Lottery",
            draw_date=date(2025, 6, 30),
            winning_numbers=(3, 7, 15, 22),
            numbers=(22, 15, 7, 3),
            prize_amount=500.0,
            claim_email="prizes@example.com",
        )
        self.assertEqual(subject, "JACKPOT WINNER! You've won £500")
        self.assertIn("Sam &lt;script&gt;", html)
        self.assertIn("3, 7, 15, 22", html)
        self.assertIn("prizes@example.com", html)

    def test_lucky_dip_email(self):
        subject, html = templates.lucky_dip_winner_email(
            name="Alex",
            lottery_name="Club Lottery",
            draw_date=date(2025, 6, 30),
            winning_numbers=(3, 7, 15, 22),
            numbers=(1, 2, 3, 4),
            prize_amount=12.5,
        )
        self.assertEqual(subject, "Lucky Dip Winner! You've won £12.50")
        self.assertNotIn("Reply to", html)

    def test_summary_email(self):
        subject, html = templates.draw_summary_email(
            lottery_name="Club Lottery",
            draw_date=date(2025, 6, 30),
            winning_numbers=(3, 7, 15, 22),
            jackpot_amount=1000,
            jackpot_count=1,
            lucky_dip_count=2,
            winner_lines=[("a@example.com", "Jackpot", 1000.0)],
            is_test_draw=True,
        )
        self.assertEqual(subject, "[TEST] Club Lottery draw results - 2025-06-30 - 3 winners")
        self.assertIn("£1,000", html)
        self.assertIn("a@example.com - Jackpot", html)

    def test_reminder_email(self):
        subject, html = templates.monthly_reminder_email(
            name="Jo",
            lottery_name="Club Lottery",
            draw_date=date(2025, 7, 31),
            lines=[(1, (1, 2, 3, 4)), (2, (5, 6, 7, 8))],
            jackpot_amount=250,
            payment_amount=10,
        )
        self.assertEqual(subject, "Monthly Lottery Entry Confirmed")
        self.assertIn("Line 2: 5, 6, 7, 8", html)
        self.assertIn("2025-07-31", html)
        self.assertIn("£10", html)


if __name__ == "__main__":
    unittest.main()
