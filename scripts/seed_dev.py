from datetime import date

from sqlalchemy.orm import sessionmaker
from clublotto.db.engine import make_engine
from clublotto.draw.dates import current_draw_date
from clublotto.models import (
    Base,
    LotteryEntry,
    LotterySubscription,
    User,
)
from clublotto.models.settings import set_current_jackpot, set_next_draw_date


def main() -> None:
    """Seed the development database with sample players and entries."""
    engine = make_engine()

    # Drop and recreate all tables so the seed is repeatable.
    with engine.begin() as conn:
        Base.metadata.drop_all(bind=conn)
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)

    draw_date = current_draw_date(date.today())

    with Session.begin() as session:
        ann = User(external_id="dev|ann", email="ann@example.com", full_name="Ann Lee")
        bob = User(external_id="dev|bob", email="bob@example.com", full_name="Bob Cole")
        cat = User(external_id="dev|cat", email="cat@example.com")
        dev = User(external_id="dev|dev", email="dev@example.com", full_name="Dev Patel")
        session.add_all([ann, bob, cat, dev])
        session.flush()

        # One-off purchases
        session.add_all(
            [
                LotteryEntry(
                    user_id=ann.id,
                    numbers=[3, 7, 15, 22],
                    draw_date=draw_date,
                    payment_reference="cs_dev_ann",
                ),
                LotteryEntry(
                    user_id=bob.id,
                    numbers=[1, 9, 17, 25],
                    draw_date=draw_date,
                    payment_reference="cs_dev_bob",
                ),
                LotteryEntry(
                    user_id=bob.id,
                    numbers=[2, 10, 18, 26],
                    line_number=2,
                    draw_date=draw_date,
                    payment_reference="cs_dev_bob",
                ),
                LotteryEntry(
                    user_id=cat.id,
                    numbers=[32, 31, 30, 29],
                    draw_date=draw_date,
                    payment_reference="cs_dev_cat",
                ),
            ]
        )

        # Recurring subscription with two lines
        session.add(
            LotterySubscription(
                user_id=dev.id,
                lines_count=2,
                stripe_customer_id="cus_dev",
                stripe_subscription_id="sub_dev",
                next_draw_date=draw_date,
            )
        )
        for line_number, numbers in enumerate([[4, 8, 12, 16], [5, 11, 19, 27]], start=1):
            session.add(
                LotteryEntry(
                    user_id=dev.id,
                    numbers=numbers,
                    line_number=line_number,
                    draw_date=draw_date,
                    subscription_id="sub_dev",
                )
            )

        set_next_draw_date(session, draw_date)
        set_current_jackpot(session, 250)

    print(f"Seeded 4 users and 6 entries for the {draw_date} draw")


if __name__ == "__main__":
    main()
