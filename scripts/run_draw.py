from __future__ import annotations

import argparse
import json
import sys
from datetime import date

from clublotto.config import LotteryConfig
from clublotto.db.engine import get_sessionmaker, make_engine
from clublotto.errors import LotteryError
from clublotto.logging_config import configure_logging
from clublotto.workflows import conduct_draw, process_draw_completion, trigger_live_draw


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Conduct and settle a lottery draw.")
    parser.add_argument("--date", help="Draw date as YYYY-MM-DD.")
    parser.add_argument("--jackpot", help="Jackpot amount in pounds.")
    parser.add_argument(
        "--test", action="store_true", help="Conduct a test draw (no schedule change, no renewals)."
    )
    parser.add_argument(
        "--live",
        action="store_true",
        help="Use the stored next draw date and current jackpot.",
    )
    parser.add_argument(
        "--renew-only",
        action="store_true",
        help="Only renew subscription entries of --date.",
    )
    parser.add_argument("--database-url", help="Override DB_URL.")
    args = parser.parse_args(argv)

    if args.live and (args.test or args.renew_only):
        parser.error("--live cannot be combined with --test or --renew-only")
    if args.renew_only and not args.date:
        parser.error("--renew-only requires --date")
    if not args.live and not args.renew_only and not (args.date and args.jackpot):
        parser.error("--date and --jackpot are required unless --live is given")
    return args


def main(argv: list[str] | None = None) -> int:
    """Run the requested draw and print its JSON summary."""
    args = parse_args(argv)

    try:
        config = LotteryConfig.from_env()
        configure_logging(config.log_level)
        Session = get_sessionmaker(make_engine(args.database_url))

        if args.renew_only:
            result = process_draw_completion(Session, args.date, config=config)
        elif args.live:
            result = trigger_live_draw(Session, today=date.today(), config=config)
        else:
            result = conduct_draw(
                Session, args.date, args.jackpot, is_test_draw=args.test, config=config
            )
    except LotteryError as exc:
        print(json.dumps(exc.to_json(), indent=2), file=sys.stderr)
        return 1
    except ValueError as exc:
        # Missing API keys or malformed settings.
        payload = {"error": str(exc), "code": "configuration_error"}
        print(json.dumps(payload, indent=2), file=sys.stderr)
        return 1

    print(json.dumps(result.to_json(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
