"""Validation helpers for lines of lottery numbers."""

from __future__ import annotations

from typing import Iterable

NUMBERS_PER_LINE = 4
LOWEST_NUMBER = 1
HIGHEST_NUMBER = 32


def normalize_numbers(
    numbers: Iterable[int],
    *,
    count: int = NUMBERS_PER_LINE,
    low: int = LOWEST_NUMBER,
    high: int = HIGHEST_NUMBER,
) -> tuple[int, ...]:
    """Validate a line of numbers and return it sorted ascending.

    Parameters
    ----------
    numbers : Iterable[int]
        Numbers as chosen by the player or returned by the randomness service.
    count : int, default: 4
        Exact number of values a line must hold.
    low, high : int
        Inclusive bounds every value must fall within.

    Returns
    -------
    tuple[int, ...]
        The same numbers in ascending order.

    Raises
    ------
    TypeError
        If ``numbers`` is not iterable or holds anything other than ints.
    ValueError
        If the line has the wrong length, repeats a number, or strays outside
        ``[low, high]``.
    """

    if numbers is None or isinstance(numbers, (str, bytes)):
        raise TypeError("numbers must be a sequence of integers")
    values = list(numbers)
    for value in values:
        # bool is an int subclass but True is not a lottery number.
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"lottery numbers must be integers, got {value!r}")
    if len(values) != count:
        raise ValueError(f"a line must contain exactly {count} numbers, got {len(values)}")
    if len(set(values)) != len(values):
        raise ValueError("a line must not repeat a number")
    out_of_range = [v for v in values if v < low or v > high]
    if out_of_range:
        raise ValueError(f"numbers must be between {low} and {high}: {out_of_range}")
    return tuple(sorted(values))


def format_numbers(numbers: Iterable[int]) -> str:
    """Render a line as ``"3, 7, 15, 22"``."""
    return ", ".join(str(n) for n in numbers)


__all__ = [
    "HIGHEST_NUMBER",
    "LOWEST_NUMBER",
    "NUMBERS_PER_LINE",
    "format_numbers",
    "normalize_numbers",
]
