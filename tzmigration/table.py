import bisect
from typing import Iterable

from .errors import InvariantViolation
from .instant import Infinity, Instant
from .models import TransitionEntry, TransitionRecord

BASELINE_OFFSET_SECS = 0


class TransitionTable:
    """
    Piecewise-constant UTC offset history of one zone in one tzdb release.

    Entry i covers [start_i, start_i+1); the last entry extends to +infinity
    and instants before the first entry use `initial_offset`. An empty table
    has no breakpoints and a constant baseline offset.
    """

    __slots__ = ("_entries", "_starts", "_initial_offset")

    def __init__(
        self,
        entries: Iterable[TransitionEntry] = (),
        initial_offset: int | None = None,
    ) -> None:
        self._entries = tuple(entries)
        self._starts = [entry.start for entry in self._entries]
        for prev, cur in zip(self._starts, self._starts[1:]):
            if cur <= prev:
                raise InvariantViolation(
                    f"Transition starts must be strictly increasing: {prev} then {cur}"
                )
        if initial_offset is None:
            initial_offset = (
                self._entries[0].offset if self._entries else BASELINE_OFFSET_SECS
            )
        self._initial_offset = initial_offset

    @classmethod
    def from_records(
        cls,
        records: Iterable[TransitionRecord],
        initial_offset: int | None = None,
    ) -> "TransitionTable":
        """
        Build a table from raw records. The first record's `utc_prev_offset`
        takes precedence over `initial_offset`.
        """
        records = tuple(records)
        if records and records[0].utc_prev_offset is not None:
            initial_offset = records[0].utc_prev_offset
        return cls(
            (TransitionEntry(r.utc_timestamp, r.utc_offset) for r in records),
            initial_offset,
        )

    @property
    def entries(self) -> tuple[TransitionEntry, ...]:
        return self._entries

    @property
    def initial_offset(self) -> int:
        return self._initial_offset

    def breakpoints(self) -> tuple[int, ...]:
        return tuple(self._starts)

    def effective_offset_at(self, instant: Instant) -> int:
        if isinstance(instant, Infinity):
            if instant.sign < 0 or not self._entries:
                return self._initial_offset
            return self._entries[-1].offset
        index = bisect.bisect_right(self._starts, instant)
        if index == 0:
            return self._initial_offset
        return self._entries[index - 1].offset

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransitionTable):
            return NotImplemented
        return (
            self._entries == other._entries
            and self._initial_offset == other._initial_offset
        )

    def __hash__(self) -> int:
        return hash((self._entries, self._initial_offset))

    def __repr__(self) -> str:
        return (
            f"TransitionTable(entries={self._entries!r}, "
            f"initial_offset={self._initial_offset!r})"
        )
