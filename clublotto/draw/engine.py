"""Settlement of one draw date: numbers, winners, results, notices, renewals."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .dates import next_draw_date, parse_draw_date
from .numbers import LOWEST_NUMBER, normalize_numbers
from .winners import DrawInfo, EntryLine, WinnerRecord, determine_winners
from ..config import LotteryConfig
from ..errors import (
    DrawPersistenceError,
    DuplicateDrawError,
    InvalidDrawRequest,
    RandomnessServiceError,
)
from ..models import LotteryDraw, LotteryEntry, LotteryResult, LotterySubscription
from ..models.settings import get_current_jackpot, set_next_draw_date

if TYPE_CHECKING:
    from ..notifications import NotificationReport, WinnerNotifier
    from ..payments.api import StripeClient, SubscriptionState
    from ..randomness.api import RandomOrgClient

logger = logging.getLogger(__name__)


@dataclass
class ResultOutcome:
    """Whether the result row for one winner was written."""

    winner: WinnerRecord
    result_id: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_json(self) -> dict[str, Any]:
        payload = self.winner.to_json()
        payload.update({"result_id": self.result_id, "error": self.error})
        return payload


@dataclass
class SkippedEntry:
    entry_id: int
    reason: str


@dataclass
class RenewalReport:
    """What happened to each subscription entry of a settled draw."""

    draw_date: date
    next_draw_date: date
    renewed: list[EntryLine] = field(default_factory=list)
    """New entries created for :attr:`next_draw_date`."""
    already_renewed: list[int] = field(default_factory=list)
    deactivated: list[int] = field(default_factory=list)
    skipped: list[SkippedEntry] = field(default_factory=list)
    reminder_error: Optional[str] = None
    reminders: Optional["NotificationReport"] = None
    """Tally of reminder e-mails, when any were attempted."""

    def to_json(self) -> dict[str, Any]:
        return {
            "draw_date": self.draw_date.isoformat(),
            "next_draw_date": self.next_draw_date.isoformat(),
            "renewed": [e.id for e in self.renewed],
            "already_renewed": list(self.already_renewed),
            "deactivated": list(self.deactivated),
            "skipped": [{"entry_id": s.entry_id, "reason": s.reason} for s in self.skipped],
            "reminder_error": self.reminder_error,
            "reminders": self.reminders.to_json() if self.reminders is not None else None,
        }


@dataclass
class SettlementSummary:
    """Caller-visible outcome of :meth:`DrawSettlementEngine.settle`.

    A summary is returned whenever the draw row was stored. Partial failures
    after that point are reported field by field instead of raised.
    """

    draw_id: int
    draw_date: date
    winning_numbers: tuple[int, ...]
    jackpot_amount: float
    lucky_dip_amount: float
    signature: Optional[str]
    is_test_draw: bool
    jackpot_winners: int = 0
    lucky_dip_winners: int = 0
    results: list[ResultOutcome] = field(default_factory=list)
    next_draw_date: Optional[date] = None
    next_draw_date_error: Optional[str] = None
    notification_error: Optional[str] = None
    notifications: Optional["NotificationReport"] = None
    renewal: Optional[RenewalReport] = None

    @property
    def failed_results(self) -> list[ResultOutcome]:
        return [o for o in self.results if not o.ok]

    @property
    def fully_settled(self) -> bool:
        """True when every step after the draw insert also succeeded."""
        if self.failed_results or self.notification_error or self.next_draw_date_error:
            return False
        if self.notifications is not None and self.notifications.failed:
            return False
        renewal = self.renewal
        if renewal is not None:
            if renewal.skipped or renewal.reminder_error:
                return False
            if renewal.reminders is not None and renewal.reminders.failed:
                return False
        return True

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.draw_id,
            "draw_date": self.draw_date.isoformat(),
            "winning_numbers": list(self.winning_numbers),
            "jackpot_amount": self.jackpot_amount,
            "lucky_dip_amount": self.lucky_dip_amount,
            "signature": self.signature,
            "is_test_draw": self.is_test_draw,
            "jackpot_winners": self.jackpot_winners,
            "lucky_dip_winners": self.lucky_dip_winners,
            "results": [o.to_json() for o in self.results],
            "failed_results": len(self.failed_results),
            "next_draw_date": self.next_draw_date.isoformat() if self.next_draw_date else None,
            "next_draw_date_error": self.next_draw_date_error,
            "notification_error": self.notification_error,
            "notifications": (
                self.notifications.to_json() if self.notifications is not None else None
            ),
            "renewal": self.renewal.to_json() if self.renewal is not None else None,
            "fully_settled": self.fully_settled,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DrawSettlementEngine:
    """Run the settlement of a draw date against the database and services."""

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        randomness: Optional["RandomOrgClient"] = None,
        payments: Optional["StripeClient"] = None,
        notifier: Optional["WinnerNotifier"] = None,
        config: Optional[LotteryConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Create an engine.

        Parameters
        ----------
        session_factory : sessionmaker
            Factory for the short transactions each step runs in. Every write
            commits on its own, so a crash part-way leaves earlier steps in
            place (at-least-once processing).
        randomness : Optional[RandomOrgClient], default: None
            Verifiable source of the winning numbers. Only renewals can run
            without one.
        payments : Optional[StripeClient], default: None
            Source of truth for subscription state. Without it, every
            subscription entry is skipped during renewal.
        notifier : Optional[WinnerNotifier], default: None
            Sends winner and reminder e-mails. ``None`` disables e-mail.
        config : Optional[LotteryConfig], default: None
            Prize amounts and number ranges; defaults apply when omitted.
        rng : Optional[random.Random], default: None
            Shuffle source for the lucky dip; ``random.SystemRandom`` if omitted.
        clock : Optional[Callable[[], datetime]], default: None
            Returns the current aware UTC time.
        """

        self._sessions = session_factory
        self._randomness = randomness
        self._payments = payments
        self._notifier = notifier
        self._config = config or LotteryConfig()
        self._rng = rng
        self._clock = clock or _utcnow

    # -------- settlement --------
    def settle(
        self,
        draw_date: Union[date, str, None],
        jackpot_amount: Union[float, int, str, None],
        *,
        is_test_draw: bool = False,
    ) -> SettlementSummary:
        """Draw numbers for ``draw_date`` and settle its winners.

        Notes
        -----
        Fatal errors (raised): invalid input, an existing live draw for the
        date, a randomness-service failure, or a failed draw insert. Every later
        step is attempted once; its failure is logged and recorded on the
        returned summary.

        Raises
        ------
        InvalidDrawRequest
            If the date or jackpot is missing or malformed.
        DuplicateDrawError
            If a live draw already exists for ``draw_date``.
        RandomnessServiceError
            If winning numbers could not be obtained.
        DrawPersistenceError
            If the draw row could not be stored.
        """

        draw_day, jackpot = self._validate(draw_date, jackpot_amount)
        kind = "test" if is_test_draw else "live"
        logger.info(f"Conducting {kind} draw for {draw_day}, jackpot {jackpot:g}")

        if not is_test_draw:
            self._guard_duplicate(draw_day)

        numbers, signed = self._acquire_numbers(draw_day)
        draw = self._store_draw(draw_day, numbers, jackpot, signed, is_test_draw)
        logger.info(f"Draw {draw.id} stored with winning numbers {list(numbers)}")

        summary = SettlementSummary(
            draw_id=draw.id,
            draw_date=draw_day,
            winning_numbers=draw.winning_numbers,
            jackpot_amount=draw.jackpot_amount,
            lucky_dip_amount=draw.lucky_dip_amount,
            signature=draw.signature,
            is_test_draw=is_test_draw,
        )

        if not is_test_draw:
            self._advance_schedule(summary)

        with self._sessions() as session:
            entries = [
                EntryLine.from_entry(e)
                for e in LotteryEntry.active_for_date(session, draw_day)
            ]
        logger.info(f"Found {len(entries)} active entries for {draw_day}")

        winners = determine_winners(
            entries,
            draw.winning_numbers,
            jackpot_amount=draw.jackpot_amount,
            lucky_dip_amount=draw.lucky_dip_amount,
            lucky_dip_count=self._config.lucky_dip_winners,
            rng=self._rng,
        )
        summary.jackpot_winners = sum(1 for w in winners if w.is_jackpot)
        summary.lucky_dip_winners = len(winners) - summary.jackpot_winners
        logger.info(
            f"Draw {draw.id}: {summary.jackpot_winners} jackpot winners, "
            f"{summary.lucky_dip_winners} lucky dip winners"
        )

        summary.results = [self._store_result(draw, w) for w in winners]
        if summary.failed_results:
            logger.error(
                f"Draw {draw.id}: {len(summary.failed_results)} of "
                f"{len(summary.results)} results could not be stored"
            )

        self._notify(draw, summary)

        if not is_test_draw:
            summary.renewal = self.renew_subscriptions(draw_day)

        return summary

    def _validate(
        self,
        draw_date: Union[date, str, None],
        jackpot_amount: Union[float, int, str, None],
    ) -> tuple[date, float]:
        if draw_date is None or draw_date == "":
            raise InvalidDrawRequest("Draw date and jackpot amount are required")
        if jackpot_amount is None or jackpot_amount == "":
            raise InvalidDrawRequest("Draw date and jackpot amount are required")
        try:
            draw_day = parse_draw_date(draw_date)
        except ValueError as exc:
            raise InvalidDrawRequest(str(exc)) from exc
        if isinstance(jackpot_amount, bool):
            raise InvalidDrawRequest("Jackpot amount must be a number")
        try:
            jackpot = float(jackpot_amount)
        except (TypeError, ValueError) as exc:
            raise InvalidDrawRequest("Jackpot amount must be a number") from exc
        if not math.isfinite(jackpot):
            raise InvalidDrawRequest("Jackpot amount must be a finite number")
        if not jackpot > 0:
            raise InvalidDrawRequest("Jackpot amount must be positive")
        return draw_day, jackpot

    def _guard_duplicate(self, draw_day: date) -> None:
        # Fast path only; the partial unique index is what actually holds.
        with self._sessions() as session:
            existing = LotteryDraw.get_live_draw_for_date(session, draw_day)
            if existing is not None:
                raise DuplicateDrawError(
                    f"A draw has already been conducted for {draw_day.isoformat()}",
                    details={"draw_id": existing.id},
                )

    def _acquire_numbers(self, draw_day: date):
        count = self._config.numbers_per_line
        high = self._config.highest_number
        if self._randomness is None:
            raise RandomnessServiceError("Randomness service is not configured")
        user_data = {
            "lottery": self._config.lottery_name,
            "drawDate": draw_day.isoformat(),
            "timestamp": self._clock().isoformat(),
        }
        try:
            signed = self._randomness.generate_signed_integers(
                count, LOWEST_NUMBER, high, replacement=False, user_data=user_data
            )
        except RandomnessServiceError:
            logger.error(f"Randomness service failed for {draw_day}; draw aborted")
            raise
        except Exception as exc:
            logger.error(f"Randomness service failed for {draw_day}; draw aborted")
            raise RandomnessServiceError(f"Randomness service failed: {exc}") from exc

        try:
            numbers = normalize_numbers(signed.data, count=count, low=LOWEST_NUMBER, high=high)
        except (TypeError, ValueError) as exc:
            raise RandomnessServiceError(
                f"Randomness service returned an invalid line: {exc}"
            ) from exc
        return numbers, signed

    def _store_draw(
        self,
        draw_day: date,
        numbers: tuple[int, ...],
        jackpot: float,
        signed: Any,
        is_test_draw: bool,
    ) -> DrawInfo:
        try:
            with self._sessions.begin() as session:
                draw = LotteryDraw(
                    draw_date=draw_day,
                    winning_numbers=list(numbers),
                    jackpot_amount=jackpot,
                    lucky_dip_amount=self._config.lucky_dip_amount,
                    random_signature=signed.signature,
                    random_payload=signed.random,
                    is_test_draw=is_test_draw,
                )
                session.add(draw)
                session.flush()
                info = DrawInfo.from_draw(draw)
        except IntegrityError as exc:
            if not is_test_draw:
                raise DuplicateDrawError(
                    f"A draw has already been conducted for {draw_day.isoformat()}"
                ) from exc
            raise DrawPersistenceError(f"Failed to store draw: {exc}") from exc
        except SQLAlchemyError as exc:
            logger.error(f"Error storing draw for {draw_day}: {exc}")
            raise DrawPersistenceError(f"Failed to store draw: {exc}") from exc
        return info

    def _advance_schedule(self, summary: SettlementSummary) -> None:
        upcoming = next_draw_date(summary.draw_date)
        try:
            with self._sessions.begin() as session:
                set_next_draw_date(session, upcoming)
        except SQLAlchemyError as exc:
            logger.error(f"Draw {summary.draw_id}: could not update next draw date: {exc}")
            summary.next_draw_date_error = str(exc)
            return
        summary.next_draw_date = upcoming
        logger.info(f"Next draw date set to {upcoming}")

    def _store_result(self, draw: DrawInfo, winner: WinnerRecord) -> ResultOutcome:
        try:
            with self._sessions.begin() as session:
                result = LotteryResult(
                    draw_id=draw.id,
                    entry_id=winner.entry_id,
                    user_id=winner.user_id,
                    matches=winner.matches,
                    prize_amount=winner.prize_amount,
                    is_winner=True,
                )
                session.add(result)
                session.flush()
                result_id = result.id
        except SQLAlchemyError as exc:
            logger.error(
                f"Error storing {winner.kind} result for entry {winner.entry_id}: {exc}"
            )
            return ResultOutcome(winner=winner, error=str(exc))
        return ResultOutcome(winner=winner, result_id=result_id)

    def _notify(self, draw: DrawInfo, summary: SettlementSummary) -> None:
        stored = [o.winner for o in summary.results if o.ok]
        if not stored or self._notifier is None:
            return
        try:
            summary.notifications = self._notifier.notify_winners(draw, stored)
        except Exception as exc:
            # The draw is settled once results are stored; e-mail is best effort.
            logger.exception(f"Draw {draw.id}: winner notification failed")
            summary.notification_error = str(exc)

    # -------- subscription renewal --------
    def renew_subscriptions(self, draw_date: Union[date, str]) -> RenewalReport:
        """Carry still-paying subscription entries of ``draw_date`` forward.

        Each distinct subscription is checked once against Stripe. Entries of
        a current subscription are copied to the next draw date (unless the copy
        already exists); entries of a lapsed or canceled subscription are
        deactivated. A subscription that cannot be checked is skipped and
        reported, and the rest of the batch carries on.
        """

        draw_day = parse_draw_date(draw_date)
        report = RenewalReport(draw_date=draw_day, next_draw_date=next_draw_date(draw_day))

        with self._sessions() as session:
            entries = [
                EntryLine.from_entry(e)
                for e in LotteryEntry.active_for_date(
                    session, draw_day, subscription_only=True
                )
            ]
        if not entries:
            logger.info(f"No subscription entries to renew for {draw_day}")
            return report
        logger.info(f"Found {len(entries)} subscription entries to renew")

        states, failures = self._check_subscriptions(entries)
        now = self._clock()

        for entry in entries:
            sub_id = entry.subscription_id
            if sub_id in failures:
                report.skipped.append(SkippedEntry(entry.id, failures[sub_id]))
                continue
            state = states[sub_id]
            if state.is_current(now):
                self._carry_forward(entry, report)
            else:
                self._lapse(entry, state, report)

        logger.info(
            f"Renewal for {draw_day}: {len(report.renewed)} renewed, "
            f"{len(report.deactivated)} deactivated, {len(report.skipped)} skipped"
        )
        self._remind(report)
        return report

    def _check_subscriptions(
        self, entries: list[EntryLine]
    ) -> tuple[dict[str, "SubscriptionState"], dict[str, str]]:
        states: dict[str, "SubscriptionState"] = {}
        failures: dict[str, str] = {}
        for sub_id in dict.fromkeys(e.subscription_id for e in entries):
            if self._payments is None:
                failures[sub_id] = "payment provider not configured"
                continue
            try:
                states[sub_id] = self._payments.retrieve_subscription(sub_id)
            except Exception as exc:
                logger.warning(f"Could not verify subscription {sub_id}: {exc}")
                failures[sub_id] = f"verification failed: {exc}"
        return states, failures

    def _carry_forward(self, entry: EntryLine, report: RenewalReport) -> None:
        target = report.next_draw_date
        try:
            with self._sessions.begin() as session:
                if LotteryEntry.renewal_exists(
                    session,
                    subscription_id=entry.subscription_id,
                    draw_date=target,
                    line_number=entry.line_number,
                ):
                    report.already_renewed.append(entry.id)
                    return
                renewed = LotteryEntry(
                    user_id=entry.user_id,
                    numbers=list(entry.numbers),
                    line_number=entry.line_number,
                    subscription_id=entry.subscription_id,
                    draw_date=target,
                )
                session.add(renewed)
                subscription = LotterySubscription.get_by_stripe_id(
                    session, entry.subscription_id
                )
                if subscription is not None:
                    subscription.next_draw_date = target
                session.flush()
                line = EntryLine.from_entry(renewed)
        except SQLAlchemyError as exc:
            logger.error(f"Could not renew entry {entry.id}: {exc}")
            report.skipped.append(SkippedEntry(entry.id, f"renewal insert failed: {exc}"))
            return
        report.renewed.append(line)

    def _lapse(self, entry: EntryLine, state: "SubscriptionState", report: RenewalReport) -> None:
        try:
            with self._sessions.begin() as session:
                row = session.get(LotteryEntry, entry.id)
                if row is not None:
                    row.deactivate()
                subscription = LotterySubscription.get_by_stripe_id(
                    session, entry.subscription_id
                )
                if subscription is not None:
                    subscription.mark_status(state.status)
        except SQLAlchemyError as exc:
            logger.error(f"Could not deactivate entry {entry.id}: {exc}")
            report.skipped.append(SkippedEntry(entry.id, f"deactivation failed: {exc}"))
            return
        logger.info(
            f"Subscription {entry.subscription_id} is {state.status}; entry {entry.id} deactivated"
        )
        report.deactivated.append(entry.id)

    def _remind(self, report: RenewalReport) -> None:
        if not report.renewed or self._notifier is None:
            return
        try:
            with self._sessions() as session:
                jackpot = get_current_jackpot(session, self._config.default_jackpot)
            report.reminders = self._notifier.send_monthly_reminders(
                report.renewed, jackpot_amount=jackpot
            )
        except Exception as exc:
            logger.exception("Failed to send monthly reminder e-mails")
            report.reminder_error = str(exc)


__all__ = [
    "DrawSettlementEngine",
    "RenewalReport",
    "ResultOutcome",
    "SettlementSummary",
    "SkippedEntry",
]
