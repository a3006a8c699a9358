"""HTML bodies for winner, summary and reminder e-mails.

Every function returns ``(subject, html)``. Player-supplied text is escaped.
"""

from __future__ import annotations

from datetime import date
from html import escape
from typing import Iterable, Optional, Sequence

from ..draw.numbers import format_numbers


def _money(amount: float) -> str:
    return f"£{amount:,.2f}".replace(".00", "")


def _frame(title: str, colour: str, body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f'<div style="background: {colour}; color: white; padding: 20px; text-align: center; border-radius: 10px;">'
        f"<h1>{title}</h1></div>"
        f'<div style="padding: 20px 0;">{body}</div>'
        "</div>"
    )


def jackpot_winner_email(
    *,
    name: str,
    lottery_name: str,
    draw_date: date,
    winning_numbers: Sequence[int],
    numbers: Sequence[int],
    prize_amount: float,
    claim_email: Optional[str] = None,
) -> tuple[str, str]:
    claim = (
        f"<p>To claim your prize, e-mail <strong>{escape(claim_email)}</strong> "
        "with a photo of your ID and your bank details.</p>"
        if claim_email
        else ""
    )
    body = (
        f"<p>Congratulations {escape(name)}!</p>"
        f"<p>You matched all four numbers in the {escape(lottery_name)} and won "
        f"<strong>{_money(prize_amount)}</strong>.</p>"
        f"<p><strong>Draw date:</strong> {draw_date.isoformat()}<br>"
        f"<strong>Winning numbers:</strong> {format_numbers(winning_numbers)}<br>"
        f"<strong>Your numbers:</strong> {format_numbers(numbers)}</p>"
        f"{claim}"
    )
    subject = f"JACKPOT WINNER! You've won {_money(prize_amount)}"
    return subject, _frame("Jackpot winner!", "#dc2626", body)


def lucky_dip_winner_email(
    *,
    name: str,
    lottery_name: str,
    draw_date: date,
    winning_numbers: Sequence[int],
    numbers: Sequence[int],
    prize_amount: float,
    claim_email: Optional[str] = None,
) -> tuple[str, str]:
    claim = (
        f"<p>Reply to <strong>{escape(claim_email)}</strong> to arrange payment.</p>"
        if claim_email
        else ""
    )
    body = (
        f"<p>Good news {escape(name)}!</p>"
        f"<p>Your line was picked in the {escape(lottery_name)} lucky dip and wins "
        f"<strong>{_money(prize_amount)}</strong>.</p>"
        f"<p><strong>Draw date:</strong> {draw_date.isoformat()}<br>"
        f"<strong>Winning numbers:</strong> {format_numbers(winning_numbers)}<br>"
        f"<strong>Your numbers:</strong> {format_numbers(numbers)}</p>"
        f"{claim}"
    )
    subject = f"Lucky Dip Winner! You've won {_money(prize_amount)}"
    return subject, _frame("Lucky dip winner!", "#16a34a", body)


def draw_summary_email(
    *,
    lottery_name: str,
    draw_date: date,
    winning_numbers: Sequence[int],
    jackpot_amount: float,
    jackpot_count: int,
    lucky_dip_count: int,
    winner_lines: Iterable[tuple[str, str, float]],
    is_test_draw: bool = False,
) -> tuple[str, str]:
    """Admin summary; ``winner_lines`` holds ``(email, prize label, amount)``."""

    rows = "".join(
        f"<li>{escape(email)} - {escape(label)} - {_money(amount)}</li>"
        for email, label, amount in winner_lines
    )
    winners_html = f"<h3>Winner details</h3><ul>{rows}</ul>" if rows else "<p>No winners for this draw.</p>"
    body = (
        f"<p><strong>Date:</strong> {draw_date.isoformat()}<br>"
        f"<strong>Winning numbers:</strong> {format_numbers(winning_numbers)}<br>"
        f"<strong>Jackpot:</strong> {_money(jackpot_amount)}</p>"
        f"<ul><li>Jackpot winners: {jackpot_count}</li>"
        f"<li>Lucky dip winners: {lucky_dip_count}</li>"
        f"<li>Total winners: {jackpot_count + lucky_dip_count}</li></ul>"
        f"{winners_html}"
    )
    total = jackpot_count + lucky_dip_count
    subject = f"{lottery_name} draw results - {draw_date.isoformat()} - {total} winners"
    if is_test_draw:
        subject = f"[TEST] {subject}"
    return subject, _frame("Draw results summary", "#1e40af", body)


def monthly_reminder_email(
    *,
    name: str,
    lottery_name: str,
    draw_date: date,
    lines: Sequence[tuple[int, Sequence[int]]],
    jackpot_amount: float,
    payment_amount: float,
) -> tuple[str, str]:
    """Reminder sent when a subscription is carried into the next draw."""

    rows = "".join(
        f"<li>Line {line_number}: {format_numbers(numbers)}</li>"
        for line_number, numbers in lines
    )
    body = (
        f"<p>Hi {escape(name)},</p>"
        f"<p>Your subscription has entered you into the next {escape(lottery_name)} draw "
        f"on <strong>{draw_date.isoformat()}</strong>.</p>"
        f"<ul>{rows}</ul>"
        f"<p><strong>Current jackpot:</strong> {_money(jackpot_amount)}<br>"
        f"<strong>Monthly payment:</strong> {_money(payment_amount)}</p>"
    )
    return "Monthly Lottery Entry Confirmed", _frame("You're in the next draw", "#1e40af", body)


__all__ = [
    "draw_summary_email",
    "jackpot_winner_email",
    "lucky_dip_winner_email",
    "monthly_reminder_email",
]
