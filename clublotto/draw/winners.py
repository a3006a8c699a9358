"""Winner determination rules for a settled draw."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Collection, Iterable, Optional, Sequence

from ..models.draw import JACKPOT_MATCHES, LUCKY_DIP_MATCHES

JACKPOT = "jackpot"
LUCKY_DIP = "lucky_dip"

DEFAULT_LUCKY_DIP_WINNERS = 5


@dataclass(frozen=True)
class EntryLine:
    """Detached copy of an entry row.

    The settlement flow reads entries in one transaction and writes results in
    others, so it works on these snapshots rather than on ORM instances.
    """

    id: int
    user_id: int
    numbers: tuple[int, ...]
    line_number: int = 1
    draw_date: Optional[date] = None
    subscription_id: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: Any) -> "EntryLine":
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            numbers=tuple(entry.numbers),
            line_number=entry.line_number,
            draw_date=entry.draw_date,
            subscription_id=entry.subscription_id,
        )


@dataclass(frozen=True)
class DrawInfo:
    """Detached copy of a stored draw, handed to notifiers and summaries."""

    id: int
    draw_date: date
    winning_numbers: tuple[int, ...]
    jackpot_amount: float
    lucky_dip_amount: float
    is_test_draw: bool = False
    signature: Optional[str] = None

    @classmethod
    def from_draw(cls, draw: Any) -> "DrawInfo":
        return cls(
            id=draw.id,
            draw_date=draw.draw_date,
            winning_numbers=tuple(draw.winning_numbers),
            jackpot_amount=draw.jackpot_amount,
            lucky_dip_amount=draw.lucky_dip_amount,
            is_test_draw=draw.is_test_draw,
            signature=draw.random_signature,
        )


@dataclass(frozen=True)
class WinnerRecord:
    """A prize owed to one entry.

    Attributes
    ----------
    kind : str
        ``"jackpot"`` or ``"lucky_dip"``.
    entry_id : int
        Winning entry.
    user_id : int
        Owner of the winning entry.
    numbers : tuple[int, ...]
        The entry's numbers as chosen.
    matches : int
        4 for a jackpot, 0 for a lucky dip.
    prize_amount : float
        Amount awarded, in pounds.
    """

    kind: str
    entry_id: int
    user_id: int
    numbers: tuple[int, ...] = field(default_factory=tuple)
    matches: int = LUCKY_DIP_MATCHES
    prize_amount: float = 0.0

    @property
    def is_jackpot(self) -> bool:
        return self.kind == JACKPOT

    def to_json(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "entry_id": self.entry_id,
            "user_id": self.user_id,
            "numbers": list(self.numbers),
            "matches": self.matches,
            "prize_amount": self.prize_amount,
        }


def is_jackpot_match(entry_numbers: Iterable[int], winning_numbers: Iterable[int]) -> bool:
    """Order-independent comparison of an entry against the winning numbers."""
    return sorted(entry_numbers) == sorted(winning_numbers)


def select_jackpot_winners(
    entries: Iterable[EntryLine], winning_numbers: Sequence[int]
) -> list[EntryLine]:
    return [e for e in entries if is_jackpot_match(e.numbers, winning_numbers)]


def split_jackpot(jackpot_amount: float, winner_count: int) -> float:
    """Each jackpot winner's equal share."""
    if winner_count < 1:
        raise ValueError("cannot split a jackpot between fewer than one winner")
    return jackpot_amount / winner_count


def select_lucky_dip_winners(
    entries: Iterable[EntryLine],
    *,
    exclude_entry_ids: Collection[int] = (),
    limit: int = DEFAULT_LUCKY_DIP_WINNERS,
    rng: Optional[random.Random] = None,
) -> list[EntryLine]:
    """Pick up to ``limit`` entries at random, at most one per user.

    Eligible entries are shuffled and walked in order; an entry is taken when
    its owner has not been picked yet. Fewer than ``limit`` winners come back
    when there are fewer distinct eligible users.
    """

    if limit < 0:
        raise ValueError("limit must be non-negative")
    if limit == 0:
        return []

    excluded = set(exclude_entry_ids)
    eligible = [e for e in entries if e.id not in excluded]
    (rng or random.SystemRandom()).shuffle(eligible)

    winners: list[EntryLine] = []
    picked_users: set[int] = set()
    for entry in eligible:
        if len(winners) >= limit:
            break
        if entry.user_id in picked_users:
            continue
        winners.append(entry)
        picked_users.add(entry.user_id)
    return winners


def determine_winners(
    entries: Sequence[EntryLine],
    winning_numbers: Sequence[int],
    *,
    jackpot_amount: float,
    lucky_dip_amount: float,
    lucky_dip_count: int = DEFAULT_LUCKY_DIP_WINNERS,
    rng: Optional[random.Random] = None,
) -> list[WinnerRecord]:
    """Apply the jackpot rule, then the lucky-dip rule to the remaining entries.

    Jackpot winners come first in the returned list and share
    ``jackpot_amount`` equally; lucky-dip winners each receive
    ``lucky_dip_amount`` in full.
    """

    jackpot_entries = select_jackpot_winners(entries, winning_numbers)
    records: list[WinnerRecord] = []
    if jackpot_entries:
        share = split_jackpot(jackpot_amount, len(jackpot_entries))
        for entry in jackpot_entries:
            records.append(
                WinnerRecord(
                    kind=JACKPOT,
                    entry_id=entry.id,
                    user_id=entry.user_id,
                    numbers=entry.numbers,
                    matches=JACKPOT_MATCHES,
                    prize_amount=share,
                )
            )

    lucky_entries = select_lucky_dip_winners(
        entries,
        exclude_entry_ids={e.id for e in jackpot_entries},
        limit=lucky_dip_count,
        rng=rng,
    )
    for entry in lucky_entries:
        records.append(
            WinnerRecord(
                kind=LUCKY_DIP,
                entry_id=entry.id,
                user_id=entry.user_id,
                numbers=entry.numbers,
                matches=LUCKY_DIP_MATCHES,
                prize_amount=lucky_dip_amount,
            )
        )
    return records


__all__ = [
    "DEFAULT_LUCKY_DIP_WINNERS",
    "JACKPOT",
    "LUCKY_DIP",
    "DrawInfo",
    "EntryLine",
    "WinnerRecord",
    "determine_winners",
    "is_jackpot_match",
    "select_jackpot_winners",
    "select_lucky_dip_winners",
    "split_jackpot",
]
