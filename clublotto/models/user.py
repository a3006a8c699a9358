from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import DateTime, Integer, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from ..db.utils import dt_iso

if TYPE_CHECKING:
    from .entry import LotteryEntry
    from .subscription import LotterySubscription


class User(Base):
    """A lottery player as known to the auth provider."""

    def __init__(
        self,
        external_id: str,
        email: str,
        full_name: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ):
        """Create a new :class:`User` record.

        Parameters
        ----------
        external_id : str
            Identifier issued by the auth provider.
        email : str
            Address winner and reminder e-mails are sent to.
        full_name : str, optional
            Name used to greet the player.
        created_at : datetime, optional
            Explicit creation timestamp.
        """

        self.external_id = external_id
        self.email = email
        self.full_name = full_name
        if created_at is not None:
            self.created_at = created_at

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    entries: Mapped[list["LotteryEntry"]] = relationship(back_populates="user")
    subscription: Mapped[Optional["LotterySubscription"]] = relationship(
        back_populates="user", uselist=False
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, external_id='{self.external_id}', email='{self.email}')>"

    @property
    def display_name(self) -> str:
        """Full name when known, otherwise the local part of the e-mail."""
        if self.full_name:
            return self.full_name
        return self.email.split("@", 1)[0]

    @classmethod
    def get_by_external_id(cls, session: Session, external_id: str) -> Optional["User"]:
        """Retrieve a user by auth-provider identifier."""

        return session.scalar(select(cls).where(cls.external_id == external_id))

    @classmethod
    def get_by_email(cls, session: Session, email: str) -> Optional["User"]:
        """Retrieve a user by e-mail address."""

        return session.scalar(select(cls).where(cls.email == email))

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "external_id": self.external_id,
            "email": self.email,
            "full_name": self.full_name,
            "created_at": dt_iso(self.created_at),
        }
