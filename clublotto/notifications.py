"""Winner notifications and monthly subscription reminders."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from .config import LotteryConfig
from .draw.winners import DrawInfo, EntryLine, WinnerRecord
from .errors import LotteryError
from .mail import templates
from .models.user import User

if TYPE_CHECKING:
    from .mail.api import ResendClient

logger = logging.getLogger(__name__)


@dataclass
class NotificationReport:
    """Tally of e-mails attempted by one notifier call."""

    sent: int = 0
    failed: int = 0
    missing_email: list[int] = field(default_factory=list)
    """User ids that had no address on file."""

    def to_json(self) -> dict:
        return {
            "sent": self.sent,
            "failed": self.failed,
            "missing_email": list(self.missing_email),
        }


class WinnerNotifier:
    """Compose and send lottery e-mails through a :class:`ResendClient`.

    A failed send is logged and counted; it never propagates, so one bad
    address cannot stop the remaining winners from being told.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        mailer: "ResendClient",
        config: Optional[LotteryConfig] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._sessions = session_factory
        self._mailer = mailer
        self._config = config or LotteryConfig()
        self._sleep = sleep
        self._sends = 0

    def _lookup_users(self, user_ids: Iterable[int]) -> dict[int, tuple[str, str]]:
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        with self._sessions() as session:
            users = session.scalars(select(User).where(User.id.in_(ids))).all()
            return {u.id: (u.email, u.display_name) for u in users if u.email}

    def _send(self, report: NotificationReport, to: str, subject: str, html: str) -> None:
        # Resend allows only a couple of requests per second.
        if self._sends and self._config.email_send_interval > 0:
            self._sleep(self._config.email_send_interval)
        self._sends += 1
        try:
            self._mailer.send_email(to, subject, html)
        except LotteryError as exc:
            report.failed += 1
            logger.error(f"Failed to send '{subject}' to user mailbox: {exc}")
            return
        report.sent += 1

    def notify_winners(
        self, draw: DrawInfo, winners: Sequence[WinnerRecord]
    ) -> NotificationReport:
        """Send the admin summary and, for live draws, one e-mail per winner."""

        report = NotificationReport()
        self._sends = 0
        contacts = self._lookup_users(w.user_id for w in winners)
        jackpot_count = sum(1 for w in winners if w.is_jackpot)

        if self._config.admin_email:
            lines = [
                (
                    contacts.get(w.user_id, ("Unknown", ""))[0],
                    "Jackpot" if w.is_jackpot else "Lucky Dip",
                    w.prize_amount,
                )
                for w in winners
            ]
            subject, html = templates.draw_summary_email(
                lottery_name=self._config.lottery_name,
                draw_date=draw.draw_date,
                winning_numbers=draw.winning_numbers,
                jackpot_amount=draw.jackpot_amount,
                jackpot_count=jackpot_count,
                lucky_dip_count=len(winners) - jackpot_count,
                winner_lines=lines,
                is_test_draw=draw.is_test_draw,
            )
            self._send(report, self._config.admin_email, subject, html)

        if draw.is_test_draw:
            logger.info(f"Test draw {draw.id}: skipping player notifications")
            return report

        for winner in winners:
            contact = contacts.get(winner.user_id)
            if contact is None:
                logger.warning(f"No e-mail on file for winning user {winner.user_id}")
                report.missing_email.append(winner.user_id)
                continue
            email, name = contact
            build = (
                templates.jackpot_winner_email
                if winner.is_jackpot
                else templates.lucky_dip_winner_email
            )
            subject, html = build(
                name=name,
                lottery_name=self._config.lottery_name,
                draw_date=draw.draw_date,
                winning_numbers=draw.winning_numbers,
                numbers=winner.numbers,
                prize_amount=winner.prize_amount,
                claim_email=self._config.admin_email,
            )
            self._send(report, email, subject, html)

        logger.info(
            f"Draw {draw.id}: {report.sent} notifications sent, {report.failed} failed"
        )
        return report

    def send_monthly_reminders(
        self, entries: Sequence[EntryLine], *, jackpot_amount: float
    ) -> NotificationReport:
        """Tell each renewed subscriber which lines were entered for them."""

        report = NotificationReport()
        self._sends = 0
        by_user: "OrderedDict[int, list[EntryLine]]" = OrderedDict()
        for entry in entries:
            by_user.setdefault(entry.user_id, []).append(entry)
        contacts = self._lookup_users(by_user)

        for user_id, lines in by_user.items():
            contact = contacts.get(user_id)
            if contact is None:
                report.missing_email.append(user_id)
                continue
            email, name = contact
            ordered = sorted(lines, key=lambda e: e.line_number)
            draw_date = ordered[0].draw_date
            if draw_date is None:
                raise ValueError("renewed entries must carry their draw date")
            subject, html = templates.monthly_reminder_email(
                name=name,
                lottery_name=self._config.lottery_name,
                draw_date=draw_date,
                lines=[(e.line_number, e.numbers) for e in ordered],
                jackpot_amount=jackpot_amount,
                payment_amount=self._config.line_price * len(ordered),
            )
            self._send(report, email, subject, html)
        return report


__all__ = ["NotificationReport", "WinnerNotifier"]
