"""Universally unique lexicographically sortable identifiers (ULIDs).

A ULID is a 128-bit value: the high 48 bits hold milliseconds since the Unix
epoch and the low 80 bits hold random entropy.  Its text form is 26
characters of Crockford base 32, so sorting the strings sorts by creation
time::

    01ARZ3NDEKTSV4RRFFQ69G5FAV
    |--------||--------------|
     timestamp    randomness
      48 bits       80 bits
"""

from __future__ import annotations

import secrets
import time
from datetime import UTC, datetime, timedelta
from functools import total_ordering

ENCODING = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
ENCODED_LENGTH = 26

TIMESTAMP_BITS = 48
RANDOMNESS_BITS = 80
MAX_TIMESTAMP_MS = (1 << TIMESTAMP_BITS) - 1
MAX_RANDOMNESS = (1 << RANDOMNESS_BITS) - 1
MAX_VALUE = (1 << 128) - 1

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_DECODING = {char: index for index, char in enumerate(ENCODING)}
_DECODING.update({char.lower(): index for char, index in list(_DECODING.items())})


class InvalidUlidError(ValueError):
    """Raised when text or parts cannot form a ULID."""


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


@total_ordering
class Ulid:
    """An immutable 128-bit ULID value."""

    __slots__ = ("_value",)

    def __init__(self, value: int) -> None:
        if not 0 <= value <= MAX_VALUE:
            raise InvalidUlidError(f"ULID value out of range: {value}")
        object.__setattr__(self, "_value", value)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("Ulid is immutable")

    @classmethod
    def new(cls) -> Ulid:
        """Build a ULID from the current wall-clock time and fresh entropy."""
        return cls.from_parts(_now_ms(), secrets.randbits(RANDOMNESS_BITS))

    @classmethod
    def from_parts(cls, timestamp_ms: int, randomness: int) -> Ulid:
        if not 0 <= timestamp_ms <= MAX_TIMESTAMP_MS:
            raise InvalidUlidError(f"Timestamp out of range: {timestamp_ms}")
        if not 0 <= randomness <= MAX_RANDOMNESS:
            raise InvalidUlidError(f"Randomness out of range: {randomness}")
        return cls((timestamp_ms << RANDOMNESS_BITS) | randomness)

    @classmethod
    def from_str(cls, text: str) -> Ulid:
        """Parse the 26-character text form (case-insensitive).

        The first character can only be 0-7: anything larger would not fit
        in 128 bits.
        """
        if len(text) != ENCODED_LENGTH:
            raise InvalidUlidError(
                f"ULID must be {ENCODED_LENGTH} characters, got {len(text)}: {text!r}"
            )
        value = 0
        for char in text:
            digit = _DECODING.get(char)
            if digit is None:
                raise InvalidUlidError(f"Invalid ULID character {char!r} in {text!r}")
            value = (value << 5) | digit
        if value > MAX_VALUE:
            raise InvalidUlidError(f"ULID overflows 128 bits: {text!r}")
        return cls(value)

    def increment(self) -> Ulid:
        """Return the next ULID in sort order.

        Carries from the random part into the timestamp; raises
        ``InvalidUlidError`` only when the whole 128-bit space is exhausted.
        """
        return Ulid(self._value + 1)

    @property
    def timestamp_ms(self) -> int:
        return self._value >> RANDOMNESS_BITS

    @property
    def randomness(self) -> int:
        return self._value & MAX_RANDOMNESS

    @property
    def created_at(self) -> datetime:
        return _EPOCH + timedelta(milliseconds=self.timestamp_ms)

    def __int__(self) -> int:
        return self._value

    def __str__(self) -> str:
        value = self._value
        chars = []
        for _ in range(ENCODED_LENGTH):
            chars.append(ENCODING[value & 0x1F])
            value >>= 5
        return "".join(reversed(chars))

    def __repr__(self) -> str:
        return f"Ulid({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Ulid):
            return NotImplemented
        return self._value == other._value

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Ulid):
            return NotImplemented
        return self._value < other._value

    def __hash__(self) -> int:
        return hash(self._value)
