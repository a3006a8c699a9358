from __future__ import annotations

import argparse
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from clublotto.db.engine import get_sessionmaker, make_engine
from clublotto.models.settings import get_current_jackpot, get_next_draw_date


def upgrade_db(target_revision: str = "head") -> None:
    """Apply Alembic migrations up to the requested revision."""
    project_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def print_state() -> None:
    """Print the lottery tables and the stored draw schedule."""
    engine = make_engine()
    insp = inspect(engine)
    tables = sorted(insp.get_table_names())
    print("Current tables:", ", ".join(tables))
    if "lottery_settings" not in tables:
        return
    with get_sessionmaker(engine)() as session:
        next_draw = get_next_draw_date(session)
        jackpot = get_current_jackpot(session, 0.0)
    print("Next draw date:", next_draw.isoformat() if next_draw else "not scheduled")
    print(f"Current jackpot: {jackpot:g}")


def main() -> None:
    """Apply migrations (default to head) and report the resulting schema."""
    parser = argparse.ArgumentParser(description="Create or upgrade the lottery database.")
    parser.add_argument("--revision", default="head", help="Alembic revision to upgrade to.")
    args = parser.parse_args()
    upgrade_db(args.revision)
    print_state()


if __name__ == "__main__":
    main()
