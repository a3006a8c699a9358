import random
import unittest
from datetime import date, datetime

from clublotto.draw.dates import (
    current_draw_date,
    last_day_of_month,
    next_draw_date,
    parse_draw_date,
)
from clublotto.draw.numbers import format_numbers, normalize_numbers
from clublotto.draw.winners import (
    JACKPOT,
    LUCKY_DIP,
    EntryLine,
    determine_winners,
    is_jackpot_match,
    select_lucky_dip_winners,
    split_jackpot,
)


def _line(entry_id, user_id, numbers):
    return EntryLine(id=entry_id, user_id=user_id, numbers=tuple(numbers))


class NormalizeNumbersTests(unittest.TestCase):
    def test_returns_sorted_tuple(self):
        self.assertEqual(normalize_numbers([22, 3, 15, 7]), (3, 7, 15, 22))

    def test_rejects_wrong_count(self):
        with self.assertRaises(ValueError):
            normalize_numbers([1, 2, 3])
        with self.assertRaises(ValueError):
            normalize_numbers([1, 2, 3, 4, 5])

    def test_rejects_duplicates(self):
        with self.assertRaises(ValueError):
            normalize_numbers([1, 1, 2, 3])

    def test_rejects_out_of_range(self):
        with self.assertRaises(ValueError):
            normalize_numbers([0, 2, 3, 4])
        with self.assertRaises(ValueError):
            normalize_numbers([1, 2, 3, 33])

    def test_rejects_non_integers(self):
        with self.assertRaises(TypeError):
            normalize_numbers([1, 2, 3, "4"])
        with self.assertRaises(TypeError):
            normalize_numbers([1, 2, 3, True])
        with self.assertRaises(TypeError):
            normalize_numbers("1234")

    def test_custom_bounds(self):
        self.assertEqual(normalize_numbers([6, 5], count=2, low=5, high=6), (5, 6))

    def test_format_numbers(self):
        self.assertEqual(format_numbers((3, 7, 15, 22)), "3, 7, 15, 22")


class DrawDateTests(unittest.TestCase):
    def test_parse_accepts_date_datetime_and_iso(self):
        d = date(2025, 6, 30)
        self.assertEqual(parse_draw_date(d), d)
        self.assertEqual(parse_draw_date(datetime(2025, 6, 30, 18, 0)), d)
        self.assertEqual(parse_draw_date(" 2025-06-30 "), d)

    def test_parse_rejects_garbage(self):
        with self.assertRaises(ValueError):
            parse_draw_date("30/06/2025")
        with self.assertRaises(ValueError):
            parse_draw_date(20250630)

    def test_last_day_of_month(self):
        self.assertEqual(last_day_of_month(date(2024, 2, 3)), date(2024, 2, 29))
        self.assertEqual(current_draw_date(date(2025, 4, 1)), date(2025, 4, 30))

    def test_next_draw_date_is_end_of_following_month(self):
        self.assertEqual(next_draw_date(date(2025, 6, 30)), date(2025, 7, 31))
        self.assertEqual(next_draw_date(date(2025, 1, 31)), date(2025, 2, 28))
        self.assertEqual(next_draw_date(date(2025, 12, 31)), date(2026, 1, 31))


class WinnerRuleTests(unittest.TestCase):
    def test_matching_is_order_independent(self):
        self.assertTrue(is_jackpot_match([5, 1, 20, 9], [1, 5, 9, 20]))
        self.assertTrue(is_jackpot_match((20, 9, 5, 1), (9, 20, 1, 5)))
        self.assertFalse(is_jackpot_match([5, 1, 20, 9], [1, 5, 9, 21]))

    def test_split_jackpot(self):
        self.assertEqual(split_jackpot(1000.0, 2), 500.0)
        self.assertEqual(split_jackpot(100.0, 3), 100.0 / 3)
        with self.assertRaises(ValueError):
            split_jackpot(100.0, 0)

    def test_lucky_dip_one_winner_per_user(self):
        entries = [_line(i, 1 + i % 3, [1, 2, 3, 4 + i]) for i in range(1, 10)]
        winners = select_lucky_dip_winners(entries, limit=5, rng=random.Random(7))
        self.assertEqual(len(winners), 3)
        self.assertEqual(len({w.user_id for w in winners}), 3)

    def test_lucky_dip_excludes_given_entries(self):
        entries = [_line(i, i, [1, 2, 3, 4 + i]) for i in range(1, 7)]
        for seed in range(20):
            winners = select_lucky_dip_winners(
                entries, exclude_entry_ids={1, 2}, limit=5, rng=random.Random(seed)
            )
            self.assertEqual(len(winners), 4)
            self.assertNotIn(1, [w.id for w in winners])
            self.assertNotIn(2, [w.id for w in winners])

    def test_lucky_dip_limits(self):
        entries = [_line(i, i, [1, 2, 3, 4 + i]) for i in range(1, 4)]
        self.assertEqual(select_lucky_dip_winners(entries, limit=0), [])
        with self.assertRaises(ValueError):
            select_lucky_dip_winners(entries, limit=-1)

    def test_determine_winners_jackpot_split_and_no_lucky_dip(self):
        entries = [
            _line(1, 1, [22, 15, 7, 3]),
            _line(2, 2, [3, 7, 15, 22]),
        ]
        winners = determine_winners(
            entries, (3, 7, 15, 22), jackpot_amount=1000.0, lucky_dip_amount=10.0
        )
        self.assertEqual([w.kind for w in winners], [JACKPOT, JACKPOT])
        self.assertEqual([w.prize_amount for w in winners], [500.0, 500.0])
        self.assertTrue(all(w.matches == 4 for w in winners))

    def test_determine_winners_lucky_dip_never_repeats_jackpot_entry(self):
        entries = [_line(1, 1, [3, 7, 15, 22])]
        entries += [_line(i, i, [1, 2, 3, 4 + i]) for i in range(2, 10)]
        winners = determine_winners(
            entries,
            [3, 7, 15, 22],
            jackpot_amount=100.0,
            lucky_dip_amount=10.0,
            rng=random.Random(3),
        )
        jackpot = [w for w in winners if w.kind == JACKPOT]
        lucky = [w for w in winners if w.kind == LUCKY_DIP]
        self.assertEqual(len(jackpot), 1)
        self.assertEqual(jackpot[0].prize_amount, 100.0)
        self.assertEqual(len(lucky), 5)
        self.assertNotIn(1, [w.entry_id for w in lucky])
        self.assertTrue(all(w.prize_amount == 10.0 and w.matches == 0 for w in lucky))

    def test_winner_record_to_json(self):
        [winner] = determine_winners(
            [_line(4, 9, [1, 2, 3, 4])],
            [4, 3, 2, 1],
            jackpot_amount=80.0,
            lucky_dip_amount=10.0,
        )
        self.assertEqual(
            winner.to_json(),
            {
                "type": "jackpot",
                "entry_id": 4,
                "user_id": 9,
                "numbers": [1, 2, 3, 4],
                "matches": 4,
                "prize_amount": 80.0,
            },
        )


if __name__ == "__main__":
    unittest.main()
