from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .user import User  # noqa: F401
from .draw import (  # noqa: F401
    JACKPOT_MATCHES,
    LUCKY_DIP_MATCHES,
    LotteryDraw,
    LotteryResult,
)
from .entry import LotteryEntry  # noqa: F401
from .settings import LotterySetting  # noqa: F401
from .subscription import LotterySubscription  # noqa: F401

__all__ = [
    "Base",
    "User",
    "JACKPOT_MATCHES",
    "LUCKY_DIP_MATCHES",
    "LotteryDraw",
    "LotteryResult",
    "LotteryEntry",
    "LotterySetting",
    "LotterySubscription",
]
