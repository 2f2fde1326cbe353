import math
from functools import total_ordering


@total_ordering
class Infinity:
    """
    One end of the extended timeline.

    Compares against ints (and floats) so finite epoch seconds and the two
    infinities can share sorted containers. There is no arithmetic other
    than negation.
    """

    __slots__ = ("_sign",)

    def __init__(self, sign: int) -> None:
        if sign not in (-1, 1):
            raise ValueError("sign must be -1 or 1")
        self._sign = sign

    @property
    def sign(self) -> int:
        return self._sign

    def __float__(self) -> float:
        return self._sign * math.inf

    def __neg__(self) -> "Infinity":
        return POSITIVE_INFINITY if self._sign < 0 else NEGATIVE_INFINITY

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Infinity):
            return self._sign == other._sign
        if isinstance(other, float):
            return float(self) == other
        if isinstance(other, int):
            return False
        return NotImplemented

    def __lt__(self, other: object) -> bool:
        if isinstance(other, Infinity):
            return self._sign < other._sign
        if isinstance(other, (int, float)):
            return float(self) < other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(float(self))

    def __repr__(self) -> str:
        return "POSITIVE_INFINITY" if self._sign > 0 else "NEGATIVE_INFINITY"


NEGATIVE_INFINITY = Infinity(-1)
POSITIVE_INFINITY = Infinity(1)

Instant = int | Infinity


def is_finite(instant: Instant) -> bool:
    return not isinstance(instant, Infinity)
