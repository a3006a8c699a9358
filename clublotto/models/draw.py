"""Database models for draws and their settled results."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    select,
    text,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from ..db.utils import dt_iso

if TYPE_CHECKING:
    from .entry import LotteryEntry
    from .user import User


JACKPOT_MATCHES = 4
"""``matches`` value recorded for a jackpot result."""

LUCKY_DIP_MATCHES = 0
"""Sentinel ``matches`` value recorded for a lucky-dip result."""


class LotteryDraw(Base):
    """One dated draw and the signed winning numbers it produced."""

    __tablename__ = "lottery_draws"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    """Primary key."""

    draw_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    """Calendar date the draw settles."""

    winning_numbers: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    """Four distinct numbers in ascending order."""

    jackpot_amount: Mapped[float] = mapped_column(Float, nullable=False)
    """Jackpot in pounds, shared equally between jackpot winners."""

    lucky_dip_amount: Mapped[float] = mapped_column(Float, nullable=False)
    """Fixed prize paid to each lucky-dip winner."""

    random_signature: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """RANDOM.ORG signature over :attr:`random_payload`."""

    random_payload: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    """Signed ``random`` object, kept verbatim so the signature can be re-verified."""

    is_test_draw: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    """Test draws never move the schedule and never renew subscriptions."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    results: Mapped[list["LotteryResult"]] = relationship(
        back_populates="draw",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        # One live draw per date; any number of test draws may share it.
        Index(
            "uq_lottery_draws_live_date",
            "draw_date",
            unique=True,
            sqlite_where=text("NOT is_test_draw"),
            postgresql_where=text("NOT is_test_draw"),
        ),
    )

    def __init__(
        self,
        *,
        draw_date: date,
        winning_numbers: list[int],
        jackpot_amount: float,
        lucky_dip_amount: float,
        random_signature: Optional[str] = None,
        random_payload: Optional[dict] = None,
        is_test_draw: bool = False,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.draw_date = draw_date
        self.winning_numbers = list(winning_numbers)
        self.jackpot_amount = jackpot_amount
        self.lucky_dip_amount = lucky_dip_amount
        self.random_signature = random_signature
        self.random_payload = random_payload
        self.is_test_draw = is_test_draw
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<LotteryDraw(id={id}, draw_date={d}, numbers={n}, test={t})>".format(
            id=self.id,
            d=self.draw_date,
            n=self.winning_numbers,
            t=self.is_test_draw,
        )

    @classmethod
    def get_live_draw_for_date(
        cls, session: Session, draw_date: date
    ) -> Optional["LotteryDraw"]:
        """Return the non-test draw recorded for ``draw_date``, if any."""

        return session.scalar(
            select(cls).where(cls.draw_date == draw_date, cls.is_test_draw.is_(False))
        )

    @classmethod
    def latest_live_draw(cls, session: Session) -> Optional["LotteryDraw"]:
        """Return the most recent non-test draw."""

        stmt = (
            select(cls)
            .where(cls.is_test_draw.is_(False))
            .order_by(cls.draw_date.desc(), cls.id.desc())
        )
        return session.scalars(stmt).first()

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "draw_date": self.draw_date.isoformat(),
            "winning_numbers": list(self.winning_numbers),
            "jackpot_amount": self.jackpot_amount,
            "lucky_dip_amount": self.lucky_dip_amount,
            "random_signature": self.random_signature,
            "is_test_draw": self.is_test_draw,
            "created_at": dt_iso(self.created_at),
        }


class LotteryResult(Base):
    """A prize awarded to one entry in one draw."""

    __tablename__ = "lottery_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    draw_id: Mapped[int] = mapped_column(
        ForeignKey("lottery_draws.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    entry_id: Mapped[int] = mapped_column(
        ForeignKey("lottery_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    matches: Mapped[int] = mapped_column(Integer, nullable=False)
    """4 for the jackpot, 0 for a lucky dip."""

    prize_amount: Mapped[float] = mapped_column(Float, nullable=False)
    is_winner: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    draw: Mapped["LotteryDraw"] = relationship(back_populates="results")
    entry: Mapped["LotteryEntry"] = relationship(back_populates="results")
    user: Mapped["User"] = relationship()

    __table_args__ = (
        UniqueConstraint("draw_id", "entry_id", name="uq_lottery_results_draw_entry"),
    )

    def __init__(
        self,
        *,
        draw_id: int,
        entry_id: int,
        user_id: int,
        matches: int,
        prize_amount: float,
        is_winner: bool = True,
    ) -> None:
        self.draw_id = draw_id
        self.entry_id = entry_id
        self.user_id = user_id
        self.matches = matches
        self.prize_amount = prize_amount
        self.is_winner = is_winner

    @property
    def prize_type(self) -> str:
        return "jackpot" if self.matches == JACKPOT_MATCHES else "lucky_dip"

    @classmethod
    def for_draw(cls, session: Session, draw_id: int) -> list["LotteryResult"]:
        stmt = select(cls).where(cls.draw_id == draw_id).order_by(cls.id.asc())
        return list(session.scalars(stmt).all())

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "draw_id": self.draw_id,
            "entry_id": self.entry_id,
            "user_id": self.user_id,
            "matches": self.matches,
            "prize_type": self.prize_type,
            "prize_amount": self.prize_amount,
            "is_winner": self.is_winner,
            "created_at": dt_iso(self.created_at),
        }


__all__ = [
    "JACKPOT_MATCHES",
    "LUCKY_DIP_MATCHES",
    "LotteryDraw",
    "LotteryResult",
]
