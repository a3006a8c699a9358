"""Client for the Resend transactional e-mail API."""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional, Sequence, Union

import requests
from dotenv import load_dotenv

from ..errors import MailDeliveryError

logger = logging.getLogger(__name__)

RESEND_EMAILS_URL = "https://api.resend.com/emails"


class ResendClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        sender: Optional[str] = None,
        session: Optional[requests.Session] = None,
        url: str = RESEND_EMAILS_URL,
        timeout: float = 45,
    ):
        load_dotenv()
        key = api_key or os.getenv("RESEND_API_KEY")
        if not key:
            raise ValueError("Environment variable 'RESEND_API_KEY' is not set")
        from_address = sender or os.getenv("LOTTERY_MAIL_FROM")
        if not from_address:
            raise ValueError("A sender address (LOTTERY_MAIL_FROM) is required")

        self.api_key = key
        self.sender = from_address
        self.url = url
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def auth_headers(self) -> Mapping[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def send_email(
        self,
        to: Union[str, Sequence[str]],
        subject: str,
        html: str,
    ) -> Optional[str]:
        """Send one e-mail and return the provider's message id."""

        recipients = [to] if isinstance(to, str) else list(to)
        if not recipients:
            raise ValueError("at least one recipient is required")

        try:
            r = self.session.post(
                self.url,
                json={
                    "from": self.sender,
                    "to": recipients,
                    "subject": subject,
                    "html": html,
                },
                headers=self.auth_headers,
                timeout=self.timeout,
            )
            r.raise_for_status()
            body = r.json() if r.content else {}
        except (requests.RequestException, ValueError) as exc:
            raise MailDeliveryError(f"Failed to send '{subject}': {exc}") from exc

        message_id = body.get("id") if isinstance(body, dict) else None
        logger.debug(f"E-mail '{subject}' accepted by Resend (id={message_id})")
        return message_id


__all__ = ["RESEND_EMAILS_URL", "ResendClient"]
