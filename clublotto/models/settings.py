"""Versioned key/value settings read by the draw workflows."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import Base

NEXT_DRAW_DATE = "next_draw_date"
CURRENT_JACKPOT = "current_jackpot"


class LotterySetting(Base):
    """A named setting with a monotonically increasing version.

    The settlement flow is the only writer of ``next_draw_date``; readers
    query the row every time instead of holding on to a copy.
    """

    __tablename__ = "lottery_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    setting_key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    setting_value: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __init__(self, *, setting_key: str, setting_value: str, version: int = 1) -> None:
        self.setting_key = setting_key
        self.setting_value = setting_value
        self.version = version

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<LotterySetting({self.setting_key}={self.setting_value!r}, v{self.version})>"

    @classmethod
    def get(cls, session: Session, key: str) -> Optional["LotterySetting"]:
        return session.scalar(select(cls).where(cls.setting_key == key))

    @classmethod
    def get_value(
        cls, session: Session, key: str, default: Optional[str] = None
    ) -> Optional[str]:
        row = cls.get(session, key)
        return row.setting_value if row is not None else default

    @classmethod
    def set_value(cls, session: Session, key: str, value: str) -> "LotterySetting":
        """Insert or overwrite ``key``, bumping its version on every write."""

        row = cls.get(session, key)
        if row is None:
            row = cls(setting_key=key, setting_value=value)
            session.add(row)
        else:
            row.setting_value = value
            row.version = (row.version or 0) + 1
            row.updated_at = datetime.now(timezone.utc)
        session.flush()
        return row


def get_next_draw_date(session: Session) -> Optional[date]:
    raw = LotterySetting.get_value(session, NEXT_DRAW_DATE)
    if not raw:
        return None
    return date.fromisoformat(raw)


def set_next_draw_date(session: Session, value: date) -> LotterySetting:
    return LotterySetting.set_value(session, NEXT_DRAW_DATE, value.isoformat())


def get_current_jackpot(session: Session, default: float) -> float:
    raw = LotterySetting.get_value(session, CURRENT_JACKPOT)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def set_current_jackpot(session: Session, amount: float) -> LotterySetting:
    return LotterySetting.set_value(session, CURRENT_JACKPOT, f"{amount:g}")


__all__ = [
    "CURRENT_JACKPOT",
    "NEXT_DRAW_DATE",
    "LotterySetting",
    "get_current_jackpot",
    "get_next_draw_date",
    "set_current_jackpot",
    "set_next_draw_date",
]
