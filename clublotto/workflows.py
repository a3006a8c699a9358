"""Entry points that tie the draw engine, the models and the service clients together."""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from sqlalchemy.orm import Session, sessionmaker

from .config import LotteryConfig
from .draw.dates import current_draw_date, parse_draw_date
from .draw.engine import DrawSettlementEngine, RenewalReport, SettlementSummary
from .draw.numbers import normalize_numbers
from .errors import PaymentNotCompletedError
from .models import LotteryDraw, LotteryEntry, LotterySubscription, User
from .models.settings import get_current_jackpot, get_next_draw_date
from .models.subscription import ACTIVE, CANCELED

if TYPE_CHECKING:
    from .notifications import WinnerNotifier
    from .payments.api import StripeClient
    from .randomness.api import RandomOrgClient

logger = logging.getLogger(__name__)

ONE_TIME = "one_time"
SUBSCRIPTION = "subscription"


def build_engine(
    session_factory: sessionmaker,
    *,
    config: Optional[LotteryConfig] = None,
    randomness: Optional["RandomOrgClient"] = None,
    payments: Optional["StripeClient"] = None,
    notifier: Optional["WinnerNotifier"] = None,
    rng: Optional[random.Random] = None,
    clock: Optional[Callable[[], datetime]] = None,
    need_randomness: bool = True,
) -> DrawSettlementEngine:
    """Create a :class:`DrawSettlementEngine`, building missing clients from config.

    Stripe and Resend clients are only built when their key is configured;
    without them renewals are skipped and e-mail is disabled, which is logged.
    """

    config = config or LotteryConfig.from_env()

    if randomness is None and need_randomness:
        from .randomness.api import RandomOrgClient

        randomness = RandomOrgClient(config.random_org_api_key, timeout=config.http_timeout)

    if payments is None:
        if config.stripe_secret_key:
            from .payments.api import StripeClient

            payments = StripeClient(config.stripe_secret_key, timeout=config.http_timeout)
        else:
            logger.warning("STRIPE_SECRET_KEY not set; subscription renewals will be skipped")

    if notifier is None:
        if config.resend_api_key:
            from .mail.api import ResendClient
            from .notifications import WinnerNotifier

            mailer = ResendClient(
                config.resend_api_key, sender=config.mail_from, timeout=config.http_timeout
            )
            notifier = WinnerNotifier(session_factory, mailer, config)
        else:
            logger.warning("RESEND_API_KEY not set; lottery e-mails are disabled")

    return DrawSettlementEngine(
        session_factory,
        randomness=randomness,
        payments=payments,
        notifier=notifier,
        config=config,
        rng=rng,
        clock=clock,
    )


def conduct_draw(
    session_factory: sessionmaker,
    draw_date: Union[date, str],
    jackpot_amount: Union[float, int, str],
    *,
    is_test_draw: bool = False,
    **engine_options: Any,
) -> SettlementSummary:
    """Run the full settlement for ``draw_date``.

    ``engine_options`` are forwarded to :func:`build_engine` (clients, config,
    rng, clock). See :meth:`DrawSettlementEngine.settle` for the failure model.
    """

    engine = build_engine(session_factory, **engine_options)
    return engine.settle(draw_date, jackpot_amount, is_test_draw=is_test_draw)


def trigger_live_draw(
    session_factory: sessionmaker,
    *,
    today: Optional[date] = None,
    **engine_options: Any,
) -> SettlementSummary:
    """Conduct the live draw using the stored jackpot and next draw date.

    Falls back to ``config.default_jackpot`` and ``today`` when the settings
    have never been written.
    """

    config = engine_options.get("config") or LotteryConfig.from_env()
    engine_options["config"] = config

    with session_factory() as session:
        draw_date = get_next_draw_date(session) or today or date.today()
        jackpot = get_current_jackpot(session, config.default_jackpot)

    logger.info(f"Triggering live draw for {draw_date} with jackpot {jackpot:g}")
    return conduct_draw(
        session_factory, draw_date, jackpot, is_test_draw=False, **engine_options
    )


def process_draw_completion(
    session_factory: sessionmaker,
    draw_date: Union[date, str],
    **engine_options: Any,
) -> RenewalReport:
    """Renew subscription entries of an already settled ``draw_date``.

    This is the manual re-trigger for step 8 of a settlement; running it twice
    does not duplicate entries.
    """

    engine = build_engine(session_factory, need_randomness=False, **engine_options)
    return engine.renew_subscriptions(draw_date)


@dataclass
class PurchaseOutcome:
    checkout_session_id: str
    entry_type: str
    draw_date: Optional[date]
    entries_created: int = 0
    already_processed: bool = False

    def to_json(self) -> dict[str, Any]:
        return {
            "checkout_session_id": self.checkout_session_id,
            "entry_type": self.entry_type,
            "draw_date": self.draw_date.isoformat() if self.draw_date else None,
            "entries_created": self.entries_created,
            "already_processed": self.already_processed,
        }


def _parse_lines(raw: Any) -> list[list[int]]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise ValueError("lottery_lines metadata is not valid JSON") from exc
    if not isinstance(raw, list) or not raw:
        raise ValueError("No lottery lines found in session metadata")
    lines = []
    for line in raw:
        normalize_numbers(line)
        lines.append(list(line))
    return lines


def _stripe_id(value: Any) -> Optional[str]:
    # Expanded Stripe objects arrive as dicts, unexpanded ones as ids.
    if isinstance(value, dict):
        return value.get("id")
    return value or None


def record_purchase(
    session: Session,
    user: User,
    checkout_session_id: str,
    *,
    client: Optional["StripeClient"] = None,
    draw_date: Optional[Union[date, str]] = None,
    today: Optional[date] = None,
) -> PurchaseOutcome:
    """Create entries for a paid checkout session.

    The workflow performs these steps:

    1. Retrieve the checkout session from Stripe and require it to be paid.
    2. Return early if entries for this session already exist, so a retried
       webhook or a reloaded success page cannot duplicate lines.
    3. Validate every line from the ``lottery_lines`` metadata.
    4. Create one entry per line for the target draw date: ``draw_date`` when
       given, else the stored next draw date, else the current month's draw.
    5. For subscription purchases, create or refresh the user's
       :class:`LotterySubscription` mirror.

    Raises
    ------
    PaymentNotCompletedError
        If the checkout session is not paid.
    ValueError, TypeError
        If the metadata holds no lines or an invalid line.
    """

    if user.id is None:
        raise ValueError("User must be persisted before recording a purchase")
    if not checkout_session_id:
        raise ValueError("Missing checkout session id")

    if client is None:
        from .payments.api import StripeClient

        client = StripeClient()

    checkout = client.retrieve_checkout_session(checkout_session_id)
    if checkout.get("payment_status") != "paid":
        raise PaymentNotCompletedError(
            "Payment not completed or session not found",
            details={"checkout_session_id": checkout_session_id},
        )

    metadata = checkout.get("metadata") or {}
    entry_type = metadata.get("entry_type") or ONE_TIME

    existing = LotteryEntry.for_payment(session, user.id, checkout_session_id)
    if existing:
        logger.info(f"Checkout {checkout_session_id} already processed; skipping")
        return PurchaseOutcome(
            checkout_session_id=checkout_session_id,
            entry_type=entry_type,
            draw_date=existing[0].draw_date,
            entries_created=0,
            already_processed=True,
        )

    lines = _parse_lines(metadata.get("lottery_lines"))

    if draw_date is not None:
        target = parse_draw_date(draw_date)
    else:
        target = get_next_draw_date(session) or current_draw_date(today)

    subscription_id = None
    if entry_type == SUBSCRIPTION:
        subscription_id = _stripe_id(checkout.get("subscription"))
        if not subscription_id:
            raise ValueError("Subscription checkout did not include a subscription id")

    for index, numbers in enumerate(lines, start=1):
        session.add(
            LotteryEntry(
                user_id=user.id,
                numbers=numbers,
                line_number=index,
                draw_date=target,
                subscription_id=subscription_id,
                payment_reference=checkout_session_id,
            )
        )

    if subscription_id is not None:
        subscription = LotterySubscription.get_for_user(session, user.id)
        if subscription is None:
            subscription = LotterySubscription(user_id=user.id)
            session.add(subscription)
        subscription.lines_count = len(lines)
        subscription.stripe_customer_id = _stripe_id(checkout.get("customer"))
        subscription.stripe_subscription_id = subscription_id
        subscription.status = ACTIVE
        subscription.canceled_at = None
        subscription.next_draw_date = target

    session.flush()
    logger.info(
        f"Recorded {len(lines)} {entry_type} lines for user {user.id} in the {target} draw"
    )
    return PurchaseOutcome(
        checkout_session_id=checkout_session_id,
        entry_type=entry_type,
        draw_date=target,
        entries_created=len(lines),
    )


def cancel_subscription(
    session: Session,
    stripe_subscription_id: str,
    *,
    status: str = CANCELED,
) -> Optional[LotterySubscription]:
    """Mirror a cancellation made by the player or by Stripe.

    Entries already created stay untouched; the next settlement checks Stripe
    and deactivates them. Returns ``None`` for an unknown subscription.
    """

    subscription = LotterySubscription.get_by_stripe_id(session, stripe_subscription_id)
    if subscription is None:
        logger.warning(f"Cancellation for unknown subscription {stripe_subscription_id}")
        return None
    subscription.mark_status(status)
    session.flush()
    return subscription


def verify_draw(
    session: Session,
    draw_id: int,
    *,
    client: Optional["RandomOrgClient"] = None,
) -> bool:
    """Re-verify a stored draw's RANDOM.ORG signature.

    Returns ``False`` when the draw has no signed payload to check.
    """

    draw = session.get(LotteryDraw, draw_id)
    if draw is None:
        raise ValueError(f"Draw {draw_id} does not exist")
    if not draw.random_payload or not draw.random_signature:
        return False

    if client is None:
        from .randomness.api import RandomOrgClient

        client = RandomOrgClient()
    return client.verify_signature(draw.random_payload, draw.random_signature)


__all__ = [
    "ONE_TIME",
    "SUBSCRIPTION",
    "PurchaseOutcome",
    "build_engine",
    "cancel_subscription",
    "conduct_draw",
    "process_draw_completion",
    "record_purchase",
    "trigger_live_draw",
    "verify_draw",
]
