"""Fractional-indexing rank keys for ordering tasks inside a status column.

Keys are plain strings compared with ordinary string comparison.  The
alphabet is base-36 (``0-9a-z``), whose code-point order matches its digit
order, so ``sorted(keys)`` is the intended task order.  Characters outside
the alphabet (for instance the ``|`` and ``:`` separators of imported
``0|hzzzzz:`` style ranks) are treated as opaque: they are copied through
shared prefixes but never incremented.

Generated keys never end in the minimum symbol ``0``; a key ending in ``0``
would leave no room directly below its own extensions.
"""

from __future__ import annotations

from typing import Optional

from ..errors import InvalidRange

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
BASE = len(ALPHABET)
MIN_SYMBOL = ALPHABET[0]
MAX_SYMBOL = ALPHABET[-1]
MID_SYMBOL = ALPHABET[BASE // 2]
INITIAL_WIDTH = 6

_INDEX = {symbol: idx for idx, symbol in enumerate(ALPHABET)}


def _above(tail: str) -> str:
    """Return a string greater than *tail*, growing by halving the gap to the top."""
    if not tail:
        return MID_SYMBOL
    head = tail[0]
    digit = _INDEX.get(head)
    if digit is not None and BASE - digit > 1:
        return ALPHABET[(digit + BASE) // 2]
    return head + _above(tail[1:])


def _midpoint(lower: str, upper: str) -> Optional[str]:
    """Return a key strictly between *lower* and *upper*, or None when none exists.

    *lower* may be empty (no lower bound).  A missing position in *lower* is
    read as the minimum symbol.
    """
    n = 0
    while n < len(upper):
        lower_char = lower[n] if n < len(lower) else MIN_SYMBOL
        if lower_char != upper[n]:
            break
        n += 1
    if n == len(upper):
        # upper is lower followed only by minimum symbols: nothing fits.
        return None

    prefix = upper[:n]
    lower_rest = lower[n:]
    upper_rest = upper[n:]
    lower_char = lower_rest[0] if lower_rest else MIN_SYMBOL
    upper_char = upper_rest[0]

    lo = _INDEX.get(lower_char)
    hi = _INDEX.get(upper_char)
    if lo is not None and hi is not None and hi - lo > 1:
        return prefix + ALPHABET[(lo + hi) // 2]
    if len(upper_rest) > 1 and upper_char != MIN_SYMBOL:
        # upper truncated right after the first differing symbol
        return prefix + upper_char
    # adjacent symbols: keep lower's symbol and extend precision above it
    return prefix + lower_char + _above(lower_rest[1:])


class RankKey:
    """Produce new rank keys relative to existing ones.

    All three operations are pure functions of their arguments, so they are
    safe to retry before a transaction commits.
    """

    alphabet = ALPHABET

    @staticmethod
    def initial() -> str:
        """Key for the first task of an empty column, with room on both sides."""
        return MID_SYMBOL * INITIAL_WIDTH

    @staticmethod
    def next(key: str) -> str:
        """Return a key after *key* and after everything derived from it.

        The trailing run of alphabet symbols is incremented as a base-36
        counter.  When that whole run is at the maximum symbol (or the key
        ends in an opaque character) a mid symbol is appended instead.
        """
        chars = list(key)
        pos = len(chars) - 1
        while pos >= 0 and chars[pos] in _INDEX:
            digit = _INDEX[chars[pos]]
            if digit < BASE - 1:
                chars[pos] = ALPHABET[digit + 1]
                break
            chars[pos] = MIN_SYMBOL
            pos -= 1
        else:
            return key + MID_SYMBOL
        if chars[-1] == MIN_SYMBOL:
            chars[-1] = ALPHABET[1]
        return "".join(chars)

    @staticmethod
    def between(prev: Optional[str], next_: Optional[str]) -> str:
        """Return a key strictly between *prev* and *next_*.

        Either bound may be None: ``between(None, None)`` is :meth:`initial`,
        ``between(prev, None)`` is :meth:`next`, and ``between(None, next_)``
        inserts before *next_*.  Equal or inverted bounds raise
        :class:`~taskboard.errors.InvalidRange`.
        """
        if prev is None and next_ is None:
            return RankKey.initial()
        if next_ is None:
            return RankKey.next(prev)  # type: ignore[arg-type]
        if not next_:
            raise InvalidRange(prev, next_, "upper bound is empty")
        if prev is not None and prev >= next_:
            raise InvalidRange(prev, next_)

        lower = prev or ""
        key = _midpoint(lower, next_)
        if key is None or not (lower < key < next_):
            raise InvalidRange(prev, next_, "no key fits between the bounds")
        return key
