"""Local mirror of a player's recurring Stripe subscription."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from ..db.utils import dt_iso

if TYPE_CHECKING:
    from .user import User

ACTIVE = "active"
CANCELED = "canceled"


class LotterySubscription(Base):
    """Recurring billing arrangement for a number of lines.

    The row mirrors Stripe and may lag behind it; the settlement flow always
    re-checks Stripe before carrying an entry into the next draw.
    """

    __tablename__ = "lottery_subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    lines_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=ACTIVE)
    next_draw_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
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

    user: Mapped["User"] = relationship(back_populates="subscription")

    def __init__(
        self,
        *,
        user_id: Optional[int] = None,
        user: Optional["User"] = None,
        lines_count: int = 1,
        stripe_customer_id: Optional[str] = None,
        stripe_subscription_id: Optional[str] = None,
        status: str = ACTIVE,
        next_draw_date: Optional[date] = None,
    ) -> None:
        if user is not None:
            self.user = user
        if user_id is not None:
            self.user_id = user_id
        self.lines_count = lines_count
        self.stripe_customer_id = stripe_customer_id
        self.stripe_subscription_id = stripe_subscription_id
        self.status = status
        self.next_draw_date = next_draw_date

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<LotterySubscription(id={self.id}, user_id={self.user_id}, "
            f"stripe_subscription_id={self.stripe_subscription_id}, status={self.status})>"
        )

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE

    @classmethod
    def get_by_stripe_id(
        cls, session: Session, stripe_subscription_id: str
    ) -> Optional["LotterySubscription"]:
        return session.scalar(
            select(cls).where(cls.stripe_subscription_id == stripe_subscription_id)
        )

    @classmethod
    def get_for_user(cls, session: Session, user_id: int) -> Optional["LotterySubscription"]:
        return session.scalar(select(cls).where(cls.user_id == user_id))

    def mark_status(self, status: str) -> None:
        """Mirror a Stripe status; leaving ``active`` stamps :attr:`canceled_at`."""

        self.status = status
        if status != ACTIVE and self.canceled_at is None:
            self.canceled_at = datetime.now(timezone.utc)

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "lines_count": self.lines_count,
            "stripe_subscription_id": self.stripe_subscription_id,
            "status": self.status,
            "next_draw_date": self.next_draw_date.isoformat() if self.next_draw_date else None,
            "canceled_at": dt_iso(self.canceled_at),
        }


__all__ = ["ACTIVE", "CANCELED", "LotterySubscription"]
