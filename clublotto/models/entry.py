"""Database model for player entries."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from ..db.utils import dt_iso

if TYPE_CHECKING:
    from .draw import LotteryResult
    from .user import User


class LotteryEntry(Base):
    """One line of four numbers entered into one draw.

    Entries are written once and never edited afterwards; the only permitted
    change is clearing :attr:`is_active` through :meth:`deactivate`.
    """

    __tablename__ = "lottery_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    numbers: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    """Numbers in the order the player picked them."""

    line_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    """Position of this line among the player's lines (1-based)."""

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    subscription_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    """Stripe subscription id; set only on entries generated by a recurring plan."""

    payment_reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    """Checkout session that paid for this line, used to ignore webhook retries."""

    draw_date: Mapped[date] = mapped_column(Date, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user: Mapped["User"] = relationship(back_populates="entries")
    results: Mapped[list["LotteryResult"]] = relationship(back_populates="entry")

    __table_args__ = (
        UniqueConstraint(
            "subscription_id",
            "draw_date",
            "line_number",
            name="uq_lottery_entries_subscription_line",
        ),
        UniqueConstraint(
            "payment_reference",
            "draw_date",
            "line_number",
            name="uq_lottery_entries_payment_line",
        ),
        Index("ix_lottery_entries_draw_date_active", "draw_date", "is_active"),
    )

    def __init__(
        self,
        *,
        numbers: list[int],
        draw_date: date,
        user: Optional["User"] = None,
        user_id: Optional[int] = None,
        line_number: int = 1,
        is_active: bool = True,
        subscription_id: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> None:
        if user is not None:
            self.user = user
        if user_id is not None:
            self.user_id = user_id
        self.numbers = list(numbers)
        self.draw_date = draw_date
        self.line_number = line_number
        self.is_active = is_active
        self.subscription_id = subscription_id
        self.payment_reference = payment_reference

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<LotteryEntry(id={self.id}, user_id={self.user_id}, numbers={self.numbers}, "
            f"line={self.line_number}, draw_date={self.draw_date}, active={self.is_active})>"
        )

    @property
    def sorted_numbers(self) -> list[int]:
        return sorted(self.numbers)

    @property
    def is_subscription_entry(self) -> bool:
        return bool(self.subscription_id)

    def deactivate(self) -> None:
        self.is_active = False

    @classmethod
    def active_for_date(
        cls,
        session: Session,
        draw_date: date,
        *,
        subscription_only: bool = False,
    ) -> list["LotteryEntry"]:
        """Return active entries for ``draw_date`` in insertion order.

        With ``subscription_only`` the result is narrowed to entries created by
        a recurring subscription.
        """

        stmt = select(cls).where(cls.draw_date == draw_date, cls.is_active.is_(True))
        if subscription_only:
            stmt = stmt.where(cls.subscription_id.isnot(None))
        return list(session.scalars(stmt.order_by(cls.id.asc())).all())

    @classmethod
    def for_payment(
        cls, session: Session, user_id: int, payment_reference: str
    ) -> list["LotteryEntry"]:
        stmt = select(cls).where(
            cls.user_id == user_id,
            cls.payment_reference == payment_reference,
        )
        return list(session.scalars(stmt.order_by(cls.line_number.asc())).all())

    @classmethod
    def renewal_exists(
        cls,
        session: Session,
        *,
        subscription_id: str,
        draw_date: date,
        line_number: int,
    ) -> bool:
        """Whether a subscription line already has an entry for ``draw_date``."""

        found = session.scalar(
            select(cls.id).where(
                cls.subscription_id == subscription_id,
                cls.draw_date == draw_date,
                cls.line_number == line_number,
            )
        )
        return found is not None

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "numbers": list(self.numbers),
            "line_number": self.line_number,
            "is_active": self.is_active,
            "subscription_id": self.subscription_id,
            "draw_date": self.draw_date.isoformat(),
            "created_at": dt_iso(self.created_at),
        }


__all__ = ["LotteryEntry"]
