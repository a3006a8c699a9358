"""Error types raised by the lottery workflows and service clients."""

from __future__ import annotations

from typing import Any, Optional


class LotteryError(Exception):
    """Base error carrying a machine code and an HTTP-style status."""

    code = "lottery_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_json(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class InvalidDrawRequest(LotteryError, ValueError):
    """Required draw inputs are missing or malformed."""

    code = "invalid_request"
    status_code = 400


class DuplicateDrawError(LotteryError):
    """A live draw already exists for the requested date."""

    code = "duplicate_draw"
    status_code = 409


class RandomnessServiceError(LotteryError, RuntimeError):
    """The verifiable randomness source failed or answered nonsense."""

    code = "randomness_unavailable"
    status_code = 502


class DrawPersistenceError(LotteryError):
    """The draw row could not be written."""

    code = "draw_not_stored"
    status_code = 500


class PaymentProviderError(LotteryError):
    """Stripe could not be reached or returned an unusable payload."""

    code = "payment_provider_error"
    status_code = 502


class PaymentNotCompletedError(LotteryError):
    """A checkout session has not been paid."""

    code = "payment_not_completed"
    status_code = 402


class MailDeliveryError(LotteryError):
    """The e-mail provider rejected or failed a send."""

    code = "mail_delivery_error"
    status_code = 502


__all__ = [
    "LotteryError",
    "InvalidDrawRequest",
    "DuplicateDrawError",
    "RandomnessServiceError",
    "DrawPersistenceError",
    "PaymentProviderError",
    "PaymentNotCompletedError",
    "MailDeliveryError",
]
