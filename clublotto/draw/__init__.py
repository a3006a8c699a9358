"""Rules and orchestration for settling a lottery draw."""

from .dates import current_draw_date, last_day_of_month, next_draw_date, parse_draw_date
from .engine import (
    DrawSettlementEngine,
    RenewalReport,
    ResultOutcome,
    SettlementSummary,
    SkippedEntry,
)
from .numbers import format_numbers, normalize_numbers
from .winners import (
    DrawInfo,
    EntryLine,
    WinnerRecord,
    determine_winners,
    is_jackpot_match,
    select_jackpot_winners,
    select_lucky_dip_winners,
    split_jackpot,
)

__all__ = [
    "DrawInfo",
    "DrawSettlementEngine",
    "EntryLine",
    "RenewalReport",
    "ResultOutcome",
    "SettlementSummary",
    "SkippedEntry",
    "WinnerRecord",
    "current_draw_date",
    "determine_winners",
    "format_numbers",
    "is_jackpot_match",
    "last_day_of_month",
    "next_draw_date",
    "normalize_numbers",
    "parse_draw_date",
    "select_jackpot_winners",
    "select_lucky_dip_winners",
    "split_jackpot",
]
