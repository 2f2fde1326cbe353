from dataclasses import dataclass

from .formatting import format_instant, format_offset
from .instant import Infinity, Instant


@dataclass(frozen=True)
class VersionRecord:
    """
    A tzdb release and the timezone names it contains.
    """

    version: str
    released_at: str | None
    timezones: frozenset[str]


@dataclass(frozen=True)
class OwnedTimezone:
    """
    A timezone with transition data of its own for each listed version.
    """

    name: str
    versions: frozenset[str]


@dataclass(frozen=True)
class AliasTimezone:
    """
    A timezone sharing the data of another, canonical, timezone.
    """

    name: str
    alias_of: str


TimezoneRecord = OwnedTimezone | AliasTimezone


@dataclass(frozen=True)
class TransitionRecord:
    """
    One raw transition as decoded from a data source.
    """

    utc_timestamp: int
    utc_offset: int
    utc_prev_offset: int | None = None


@dataclass(frozen=True)
class VersionData:
    """
    Transition data of one zone in one version. `initial_offset` is the
    offset before the first transition when the source states it.
    """

    released_at: str | None
    transitions: tuple[TransitionRecord, ...]
    initial_offset: int | None = None


@dataclass(frozen=True)
class TransitionEntry:
    start: int
    offset: int


def _json_instant(instant: Instant) -> int | str:
    if isinstance(instant, Infinity):
        return "-inf" if instant.sign < 0 else "inf"
    return instant


@dataclass(frozen=True)
class ChangeRecord:
    """
    A maximal interval [ini, fin) over which two transition tables disagree.

    `off` is the offset of the second table minus the offset of the first,
    i.e. how far a wall clock moves when migrating from one to the other.
    """

    ini: Instant
    fin: Instant
    off: int
    ini_str: str
    fin_str: str
    off_str: str

    @classmethod
    def create(cls, ini: Instant, fin: Instant, off: int) -> "ChangeRecord":
        return cls(
            ini,
            fin,
            off,
            format_instant(ini),
            format_instant(fin),
            format_offset(off),
        )

    def to_dict(self) -> dict[str, int | str]:
        """JSON-friendly view; infinite bounds become "-inf" or "inf"."""
        return {
            "ini": _json_instant(self.ini),
            "fin": _json_instant(self.fin),
            "off": self.off,
            "ini_str": self.ini_str,
            "fin_str": self.fin_str,
            "off_str": self.off_str,
        }
