"""Environment-based configuration for the lottery."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable '{name}' must be a number") from exc


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable '{name}' must be an integer") from exc


@dataclass(frozen=True)
class LotteryConfig:
    """Settings shared by the draw engine, the notifier and the API clients.

    Attributes
    ----------
    lottery_name : str
        Name sent to RANDOM.ORG as audit context and used in e-mails.
    lucky_dip_amount : float
        Fixed prize paid to every lucky-dip winner, in pounds.
    lucky_dip_winners : int
        Maximum number of lucky-dip winners per draw.
    line_price : float
        Monthly price of one line, in pounds.
    default_jackpot : float
        Jackpot used by a live draw when no ``current_jackpot`` setting exists.
    email_send_interval : float
        Seconds to pause between consecutive winner e-mails.
    http_timeout : float
        Timeout applied to every outbound HTTP request.
    """

    random_org_api_key: Optional[str] = None
    stripe_secret_key: Optional[str] = None
    resend_api_key: Optional[str] = None
    mail_from: str = "Club Lottery <noreply@example.com>"
    admin_email: Optional[str] = None
    lottery_name: str = "Club Lottery"
    numbers_per_line: int = 4
    highest_number: int = 32
    lucky_dip_amount: float = 50.0
    lucky_dip_winners: int = 5
    line_price: float = 5.0
    default_jackpot: float = 100.0
    email_send_interval: float = 0.6
    http_timeout: float = 45.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "LotteryConfig":
        """Build a config from ``env`` (``os.environ`` after loading ``.env``)."""

        if env is None:
            load_dotenv()
            env = os.environ

        defaults = cls()
        return cls(
            random_org_api_key=env.get("RANDOM_ORG_API_KEY") or None,
            stripe_secret_key=env.get("STRIPE_SECRET_KEY") or None,
            resend_api_key=env.get("RESEND_API_KEY") or None,
            mail_from=env.get("LOTTERY_MAIL_FROM") or defaults.mail_from,
            admin_email=env.get("LOTTERY_ADMIN_EMAIL") or None,
            lottery_name=env.get("LOTTERY_NAME") or defaults.lottery_name,
            lucky_dip_amount=_float_env(
                env, "LOTTERY_LUCKY_DIP_AMOUNT", defaults.lucky_dip_amount
            ),
            lucky_dip_winners=_int_env(
                env, "LOTTERY_LUCKY_DIP_WINNERS", defaults.lucky_dip_winners
            ),
            line_price=_float_env(env, "LOTTERY_LINE_PRICE", defaults.line_price),
            default_jackpot=_float_env(
                env, "LOTTERY_DEFAULT_JACKPOT", defaults.default_jackpot
            ),
            email_send_interval=_float_env(
                env, "LOTTERY_EMAIL_INTERVAL", defaults.email_send_interval
            ),
            http_timeout=_float_env(env, "LOTTERY_HTTP_TIMEOUT", defaults.http_timeout),
            log_level=env.get("LOG_LEVEL") or defaults.log_level,
        )


__all__ = ["LotteryConfig"]
