"""Minimal Stripe REST client for subscription and checkout lookups."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional
from urllib.parse import quote

import requests
from dotenv import load_dotenv

from ..errors import PaymentProviderError

logger = logging.getLogger(__name__)

STRIPE_API_BASE = "https://api.stripe.com/v1"

# Statuses under which Stripe is still collecting payment for the plan.
RENEWABLE_STATUSES = frozenset({"active", "trialing"})


@dataclass(frozen=True)
class SubscriptionState:
    """The parts of a Stripe subscription the renewal rule looks at."""

    id: str
    status: str
    current_period_end: Optional[datetime]
    cancel_at_period_end: bool = False

    def is_current(self, now: Optional[datetime] = None) -> bool:
        """Active (or trialing) with a billing period that has not lapsed."""
        if self.status not in RENEWABLE_STATUSES:
            return False
        if self.current_period_end is None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.current_period_end > now


def _timestamp(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _current_period_end(payload: Mapping[str, Any]) -> Optional[datetime]:
    # Newer API versions moved the billing period onto the subscription items.
    if payload.get("current_period_end") is not None:
        return _timestamp(payload["current_period_end"])
    items = payload.get("items") or {}
    if not isinstance(items, dict):
        raise TypeError(f"subscription items must be an object, got {type(items).__name__}")
    items = items.get("data") or []
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise TypeError("subscription items.data must be a list of objects")
    ends = [
        _timestamp(item.get("current_period_end"))
        for item in items
        if item.get("current_period_end") is not None
    ]
    return max(ends) if ends else None


class StripeClient:
    def __init__(
        self,
        secret_key: Optional[str] = None,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = STRIPE_API_BASE,
        timeout: float = 45,
    ):
        load_dotenv()
        key = secret_key or os.getenv("STRIPE_SECRET_KEY")
        if not key:
            raise ValueError("Environment variable 'STRIPE_SECRET_KEY' is not set")

        self.secret_key = key
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def auth_headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json", "Authorization": f"Bearer {self.secret_key}"}

    def _get(self, path: str, params: Optional[dict] = None) -> dict:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            r = self.session.request(
                method="GET",
                url=url,
                headers=self.auth_headers,
                params=params,
                timeout=self.timeout,
            )
            r.raise_for_status()
            body = r.json()
        except (requests.RequestException, ValueError) as exc:
            raise PaymentProviderError(f"Stripe request to {path} failed: {exc}") from exc
        if not isinstance(body, dict):
            raise PaymentProviderError(f"Unexpected Stripe response for {path}: {body!r}")
        return body

    def retrieve_subscription(self, subscription_id: str) -> SubscriptionState:
        if not subscription_id:
            raise ValueError("subscription_id is required")
        body = self._get(f"subscriptions/{quote(subscription_id, safe='')}")
        status = body.get("status")
        if not status:
            raise PaymentProviderError(
                f"Stripe subscription {subscription_id} has no status"
            )
        try:
            period_end = _current_period_end(body)
        except (TypeError, ValueError, AttributeError, OverflowError, OSError) as exc:
            raise PaymentProviderError(
                f"Stripe subscription {subscription_id} has a malformed billing period"
            ) from exc
        return SubscriptionState(
            id=body.get("id") or subscription_id,
            status=status,
            current_period_end=period_end,
            cancel_at_period_end=bool(body.get("cancel_at_period_end")),
        )

    def retrieve_checkout_session(self, session_id: str) -> dict:
        if not session_id:
            raise ValueError("session_id is required")
        return self._get(f"checkout/sessions/{quote(session_id, safe='')}")


__all__ = [
    "RENEWABLE_STATUSES",
    "STRIPE_API_BASE",
    "StripeClient",
    "SubscriptionState",
]
