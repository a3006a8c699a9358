import unittest
from datetime import date, datetime, timezone

from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from clublotto.models import (
    Base,
    LotteryDraw,
    LotteryEntry,
    LotteryResult,
    LotterySetting,
    LotterySubscription,
    User,
)
from clublotto.models.settings import (
    NEXT_DRAW_DATE,
    get_next_draw_date,
    set_next_draw_date,
)


def _draw(draw_date=date(2025, 6, 30), *, is_test_draw=False, **kwargs):
    return LotteryDraw(
        draw_date=draw_date,
        winning_numbers=kwargs.pop("winning_numbers", [3, 7, 15, 22]),
        jackpot_amount=kwargs.pop("jackpot_amount", 1000.0),
        lucky_dip_amount=kwargs.pop("lucky_dip_amount", 10.0),
        is_test_draw=is_test_draw,
        **kwargs,
    )


class DBTestCase(unittest.TestCase):
    def setUp(self):
        # In-memory SQLite for isolation
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def test_tables_created(self):
        tables = set(inspect(self.engine).get_table_names())
        self.assertEqual(
            tables,
            {
                "users",
                "lottery_draws",
                "lottery_entries",
                "lottery_results",
                "lottery_settings",
                "lottery_subscriptions",
            },
        )

    def test_user_lookups_and_display_name(self):
        with self.Session() as session:
            session.add_all(
                [
                    User(external_id="auth|1", email="ann@example.com", full_name="Ann Lee"),
                    User(external_id="auth|2", email="bob@example.com"),
                ]
            )
            session.commit()

            ann = User.get_by_external_id(session, "auth|1")
            bob = User.get_by_email(session, "bob@example.com")
            self.assertEqual(ann.display_name, "Ann Lee")
            self.assertEqual(bob.display_name, "bob")
            self.assertIsNone(User.get_by_email(session, "nobody@example.com"))
            self.assertEqual(ann.to_json()["external_id"], "auth|1")

    def test_user_email_unique(self):
        with self.Session() as session:
            session.add(User(external_id="a", email="same@example.com"))
            session.commit()
            session.add(User(external_id="b", email="same@example.com"))
            with self.assertRaises(IntegrityError):
                session.commit()
            session.rollback()

    def test_one_live_draw_per_date(self):
        with self.Session() as session:
            session.add(_draw())
            session.add(_draw(is_test_draw=True))
            session.add(_draw(is_test_draw=True))
            session.commit()

            session.add(_draw())
            with self.assertRaises(IntegrityError):
                session.commit()
            session.rollback()

            live = LotteryDraw.get_live_draw_for_date(session, date(2025, 6, 30))
            self.assertIsNotNone(live)
            self.assertFalse(live.is_test_draw)
            self.assertIsNone(LotteryDraw.get_live_draw_for_date(session, date(2025, 7, 31)))

    def test_latest_live_draw_ignores_test_draws(self):
        with self.Session() as session:
            session.add_all(
                [
                    _draw(date(2025, 5, 31)),
                    _draw(date(2025, 6, 30)),
                    _draw(date(2025, 7, 31), is_test_draw=True),
                ]
            )
            session.commit()
            self.assertEqual(
                LotteryDraw.latest_live_draw(session).draw_date, date(2025, 6, 30)
            )

    def test_draw_to_json(self):
        created = datetime(2025, 6, 30, 20, 0, tzinfo=timezone.utc)
        with self.Session() as session:
            draw = _draw(random_signature="sig", random_payload={"data": [1]}, created_at=created)
            session.add(draw)
            session.commit()
            payload = draw.to_json()
        self.assertEqual(payload["draw_date"], "2025-06-30")
        self.assertEqual(payload["winning_numbers"], [3, 7, 15, 22])
        self.assertEqual(payload["random_signature"], "sig")
        self.assertEqual(payload["created_at"], "2025-06-30T20:00:00+00:00")

    def test_entry_queries(self):
        with self.Session() as session:
            user = User(external_id="u", email="u@example.com")
            session.add(user)
            session.flush()
            one_off = LotteryEntry(
                user=user,
                numbers=[9, 1, 5, 20],
                draw_date=date(2025, 6, 30),
                payment_reference="cs_1",
            )
            recurring = LotteryEntry(
                user=user,
                numbers=[1, 2, 3, 4],
                draw_date=date(2025, 6, 30),
                line_number=2,
                subscription_id="sub_1",
            )
            inactive = LotteryEntry(
                user=user, numbers=[5, 6, 7, 8], draw_date=date(2025, 6, 30), is_active=False
            )
            session.add_all([one_off, recurring, inactive])
            session.commit()

            self.assertEqual(one_off.sorted_numbers, [1, 5, 9, 20])
            self.assertFalse(one_off.is_subscription_entry)
            self.assertTrue(recurring.is_subscription_entry)
            self.assertEqual(
                LotteryEntry.active_for_date(session, date(2025, 6, 30)), [one_off, recurring]
            )
            self.assertEqual(
                LotteryEntry.active_for_date(session, date(2025, 6, 30), subscription_only=True),
                [recurring],
            )
            self.assertEqual(LotteryEntry.for_payment(session, user.id, "cs_1"), [one_off])
            self.assertTrue(
                LotteryEntry.renewal_exists(
                    session, subscription_id="sub_1", draw_date=date(2025, 6, 30), line_number=2
                )
            )
            self.assertFalse(
                LotteryEntry.renewal_exists(
                    session, subscription_id="sub_1", draw_date=date(2025, 7, 31), line_number=2
                )
            )

            recurring.deactivate()
            session.commit()
            self.assertEqual(LotteryEntry.active_for_date(session, date(2025, 6, 30)), [one_off])
            self.assertEqual(recurring.to_json()["is_active"], False)

    def test_subscription_line_unique_per_draw(self):
        with self.Session() as session:
            user = User(external_id="u", email="u@example.com")
            session.add(user)
            session.flush()
            for _ in range(2):
                session.add(
                    LotteryEntry(
                        user_id=user.id,
                        numbers=[1, 2, 3, 4],
                        draw_date=date(2025, 7, 31),
                        subscription_id="sub_1",
                    )
                )
            with self.assertRaises(IntegrityError):
                session.commit()
            session.rollback()

    def test_result_unique_per_draw_and_entry(self):
        with self.Session() as session:
            user = User(external_id="u", email="u@example.com")
            draw = _draw()
            entry = LotteryEntry(user=user, numbers=[3, 7, 15, 22], draw_date=date(2025, 6, 30))
            session.add_all([draw, entry])
            session.flush()
            first = LotteryResult(
                draw_id=draw.id, entry_id=entry.id, user_id=user.id, matches=4, prize_amount=1000.0
            )
            session.add(first)
            session.commit()

            self.assertEqual(first.prize_type, "jackpot")
            self.assertEqual(LotteryResult.for_draw(session, draw.id), [first])
            self.assertEqual(first.to_json()["prize_type"], "jackpot")

            session.add(
                LotteryResult(
                    draw_id=draw.id, entry_id=entry.id, user_id=user.id, matches=0, prize_amount=10.0
                )
            )
            with self.assertRaises(IntegrityError):
                session.commit()
            session.rollback()

    def test_setting_versions_increase(self):
        with self.Session() as session:
            self.assertIsNone(get_next_draw_date(session))
            first = set_next_draw_date(session, date(2025, 6, 30))
            self.assertEqual(first.version, 1)
            second = set_next_draw_date(session, date(2025, 7, 31))
            session.commit()

            self.assertIs(first, second)
            self.assertEqual(second.version, 2)
            self.assertEqual(LotterySetting.get_value(session, NEXT_DRAW_DATE), "2025-07-31")
            self.assertEqual(LotterySetting.get_value(session, "missing", "x"), "x")
            self.assertEqual(get_next_draw_date(session), date(2025, 7, 31))

    def test_subscription_status_mirror(self):
        with self.Session() as session:
            user = User(external_id="u", email="u@example.com")
            session.add(user)
            session.flush()
            subscription = LotterySubscription(
                user_id=user.id, lines_count=2, stripe_subscription_id="sub_7"
            )
            session.add(subscription)
            session.commit()

            self.assertTrue(subscription.is_active)
            self.assertIs(LotterySubscription.get_by_stripe_id(session, "sub_7"), subscription)
            self.assertIs(LotterySubscription.get_for_user(session, user.id), subscription)
            self.assertIs(user.subscription, subscription)

            subscription.mark_status("past_due")
            self.assertFalse(subscription.is_active)
            stamped = subscription.canceled_at
            self.assertIsNotNone(stamped)
            subscription.mark_status("canceled")
            self.assertEqual(subscription.canceled_at, stamped)
            self.assertEqual(subscription.to_json()["status"], "canceled")


if __name__ == "__main__":
    unittest.main()
