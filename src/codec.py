# SPDX-License-Identifier: MIT
"""Arbitrary-base numeral conversion between ordered symbol alphabets.

An alphabet is an ordered sequence of distinct symbols; the position of a
symbol is its digit value. Values are handled as Python integers so codes of
any length convert without overflow.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

from constants import BASE62, DECIMAL

Alphabet = str | Sequence[str]


class InvalidAlphabet(ValueError):
    """Raised when an alphabet repeats a symbol or cannot render a value."""


class InvalidDigit(ValueError):
    """Raised when a value holds a symbol missing from its alphabet."""


@dataclass(frozen=True)
class AlphabetMatch:
    """Candidate alphabet able to represent a value."""

    alphabet: tuple[str, ...]
    index: int


@dataclass(frozen=True)
class AlphabetCheck:
    """Outcome of testing one candidate alphabet against a value."""

    index: int
    alphabet: tuple[str, ...]
    accepted: bool
    reason: Literal["duplicate_symbols", "foreign_symbol"] | None = None


def _symbols(alphabet: Alphabet) -> tuple[str, ...]:
    return tuple(alphabet)


def _has_duplicates(symbols: tuple[str, ...]) -> bool:
    return len(set(symbols)) != len(symbols)


def _validated(alphabet: Alphabet, name: str) -> tuple[str, ...]:
    symbols = _symbols(alphabet)
    if _has_duplicates(symbols):
        raise InvalidAlphabet(f"{name} contains duplicate symbols")
    return symbols


def decode(value: str, alphabet: Alphabet) -> int:
    """Return the integer represented by ``value`` in ``alphabet``.

    Raises:
        InvalidAlphabet: If ``alphabet`` repeats a symbol.
        InvalidDigit: If ``value`` holds a symbol outside ``alphabet``.
    """
    symbols = _validated(alphabet, "alphabet")
    digits = {symbol: index for index, symbol in enumerate(symbols)}
    base = len(symbols)
    number = 0
    for char in value:
        try:
            digit = digits[char]
        except KeyError:
            raise InvalidDigit(
                f"Character {char!r} does not exist in the source alphabet"
            ) from None
        number = number * base + digit
    return number


def encode(number: int, alphabet: Alphabet) -> str:
    """Render the non-negative ``number`` in ``alphabet``.

    Zero is the first symbol of any non-empty alphabet. A single-symbol
    alphabet can render nothing else.

    Raises:
        InvalidAlphabet: If ``alphabet`` repeats a symbol or cannot render
            ``number``.
    """
    if number < 0:
        raise ValueError("number must be greater than or equal to 0")
    symbols = _validated(alphabet, "alphabet")
    if not symbols:
        raise InvalidAlphabet("alphabet is empty")
    if number == 0:
        return symbols[0]
    base = len(symbols)
    if base < 2:
        raise InvalidAlphabet(f"cannot render {number} with a single symbol")
    out: list[str] = []
    while number > 0:
        number, remainder = divmod(number, base)
        out.append(symbols[remainder])
    return "".join(reversed(out))


def convert(value: str, from_alphabet: Alphabet, to_alphabet: Alphabet) -> str:
    """Convert ``value`` from ``from_alphabet`` into ``to_alphabet``.

    Args:
        value: Digits written with symbols of ``from_alphabet``.
        from_alphabet: Ordered symbols of the source base.
        to_alphabet: Ordered symbols of the target base.

    Returns:
        The same number written with ``to_alphabet``. Zero renders as the
        first target symbol.

    Raises:
        InvalidAlphabet: If either alphabet repeats a symbol, or the target
            has a single symbol and ``value`` is not zero.
        InvalidDigit: If ``value`` holds a symbol missing from ``from_alphabet``.
    """
    _validated(from_alphabet, "source alphabet")
    target = _validated(to_alphabet, "target alphabet")
    return encode(decode(value, from_alphabet), target)


def decimal_to_code(number: int | str, alphabet: Alphabet = BASE62) -> str:
    """Render a counter value, given as int or decimal digits, in ``alphabet``."""
    return convert(str(number), DECIMAL, alphabet)


def check_alphabets(
    value: str, candidates: Sequence[Alphabet]
) -> list[AlphabetCheck]:
    """Return one :class:`AlphabetCheck` per candidate, in candidate order."""
    checks: list[AlphabetCheck] = []
    for index, candidate in enumerate(candidates):
        symbols = _symbols(candidate)
        reason: Literal["duplicate_symbols", "foreign_symbol"] | None = None
        if _has_duplicates(symbols):
            reason = "duplicate_symbols"
        elif not set(value) <= set(symbols):
            reason = "foreign_symbol"
        checks.append(
            AlphabetCheck(
                index=index,
                alphabet=symbols,
                accepted=reason is None,
                reason=reason,
            )
        )
    return checks


def detect_alphabets(
    value: str, candidates: Sequence[Alphabet]
) -> list[AlphabetMatch]:
    """Return the candidates able to represent ``value``.

    Unusable candidates are filtered out rather than reported; call
    :func:`check_alphabets` for the reason each candidate was rejected.
    """
    return [
        AlphabetMatch(alphabet=check.alphabet, index=check.index)
        for check in check_alphabets(value, candidates)
        if check.accepted
    ]


__all__ = [
    "AlphabetCheck",
    "AlphabetMatch",
    "InvalidAlphabet",
    "InvalidDigit",
    "check_alphabets",
    "convert",
    "decimal_to_code",
    "decode",
    "detect_alphabets",
    "encode",
]
