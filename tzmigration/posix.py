import calendar
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import IO

from .models import TransitionRecord

# Footer rules are expanded into explicit transitions up to the end of this year
HORIZON_YEAR = 2037

DEFAULT_RULE_TIME_SECS = 7200

_EPOCH = datetime(1970, 1, 1)
_AVERAGE_YEAR_SECS = 31556952

_LOCAL_TZ_RE = re.compile(
    r"""
    (?P<std>[^<0-9:.+-]+|<[a-zA-Z0-9+-]+>)
    (?P<stdoff>[+-]?\d{1,3}(?::\d{2}(?::\d{2})?)?)
    (?:
        (?P<dst>[^0-9:.+-]+|<[a-zA-Z0-9+-]+>)
        (?P<dstoff>[+-]?\d{1,3}(?::\d{2}(?::\d{2})?)?)?
    )?
    """,
    re.ASCII | re.VERBOSE,
)
_HMS_RE = re.compile(
    r"(?P<sign>[+-])?(?P<h>\d{1,3})(?::(?P<m>\d{2})(?::(?P<s>\d{2}))?)?", re.ASCII
)
_MONTH_WEEK_DAY_RE = re.compile(r"M(\d{1,2})\.(\d)\.(\d)", re.ASCII)
_JULIAN_DAY_RE = re.compile(r"J(\d{1,3})", re.ASCII)
_ZERO_BASED_DAY_RE = re.compile(r"\d{1,3}", re.ASCII)


def _parse_hms(text: str, max_hours: int) -> int:
    match = _HMS_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"{text!r} is not a valid POSIX time")
    h, m, s = (int(v or 0) for v in match.group("h", "m", "s"))
    if h > max_hours or m >= 60 or s >= 60:
        raise ValueError(f"{text!r} is out of range")
    total = h * 3600 + m * 60 + s
    return -total if match.group("sign") == "-" else total


def _parse_utc_offset(text: str) -> int:
    # POSIX offsets count hours west of UTC
    return -_parse_hms(text, 24)


@dataclass(frozen=True)
class MonthWeekDay:
    """`Mm.w.d`: day `d` (Sunday=0) of week `w` of month `m`; week 5 is the last."""

    month: int
    week: int
    weekday: int

    def date(self, year: int) -> datetime:
        first = datetime(year, self.month, 1)
        # isoweekday() % 7 counts from Sunday=0, as POSIX does
        first_match = first + timedelta(days=(self.weekday - first.isoweekday()) % 7)
        target = first_match + timedelta(weeks=self.week - 1)
        while target.month != self.month:
            target -= timedelta(weeks=1)
        return target


@dataclass(frozen=True)
class JulianDay:
    """`Jn`: day 1 to 365, never counting February 29."""

    day_of_year: int

    def date(self, year: int) -> datetime:
        days = self.day_of_year - 1
        if calendar.isleap(year) and self.day_of_year >= 60:
            days += 1
        return datetime(year, 1, 1) + timedelta(days=days)


@dataclass(frozen=True)
class ZeroBasedDay:
    """`n`: day 0 to 365, counting February 29."""

    day_index: int

    def date(self, year: int) -> datetime:
        return datetime(year, 1, 1) + timedelta(days=self.day_index)


@dataclass(frozen=True)
class DstRule:
    day: MonthWeekDay | JulianDay | ZeroBasedDay
    time_secs: int = DEFAULT_RULE_TIME_SECS

    def local_time(self, year: int) -> datetime:
        return self.day.date(year) + timedelta(seconds=self.time_secs)

    @classmethod
    def parse(cls, text: str) -> "DstRule":
        date, _, time = text.partition("/")
        time_secs = _parse_hms(time, 167) if time else DEFAULT_RULE_TIME_SECS

        match = _MONTH_WEEK_DAY_RE.fullmatch(date)
        if match is not None:
            month, week, weekday = (int(x) for x in match.groups())
            if not (1 <= month <= 12 and 1 <= week <= 5 and 0 <= weekday <= 6):
                raise ValueError(f"Invalid M<m>.<w>.<d> rule: {text}")
            return cls(MonthWeekDay(month, week, weekday), time_secs)

        match = _JULIAN_DAY_RE.fullmatch(date)
        if match is not None:
            day = int(match.group(1))
            if not 1 <= day <= 365:
                raise ValueError(f"J<n> must be 1..365: {text}")
            return cls(JulianDay(day), time_secs)

        if _ZERO_BASED_DAY_RE.fullmatch(date):
            day = int(date)
            if not 0 <= day <= 365:
                raise ValueError(f"<n> must be 0..365: {text}")
            return cls(ZeroBasedDay(day), time_secs)

        raise ValueError(f"Invalid DST rule: {text}")


def _to_timestamp(local: datetime) -> int:
    return (local - _EPOCH) // timedelta(seconds=1)


@dataclass(frozen=True)
class PosixTzRule:
    """
    The POSIX TZ string in a TZif footer, describing local time after the
    last explicit transition.
    """

    posix_string: str
    std_abbrev: str
    std_offset: int
    dst_abbrev: str | None = None
    dst_offset: int | None = None
    dst_start: DstRule | None = None
    dst_end: DstRule | None = None

    @property
    def has_dst_rules(self) -> bool:
        return (
            self.dst_offset is not None
            and self.dst_start is not None
            and self.dst_end is not None
        )

    @classmethod
    def parse(cls, posix_string: str) -> "PosixTzRule":
        local_tz, _, rules = posix_string.partition(",")
        match = _LOCAL_TZ_RE.fullmatch(local_tz)
        if match is None:
            raise ValueError(f"{posix_string!r} is not a valid TZ string")

        std_abbrev = match.group("std").strip("<>")
        std_offset = _parse_utc_offset(match.group("stdoff"))
        dst_abbrev = match.group("dst")
        if dst_abbrev is None:
            if rules:
                raise ValueError(f"{posix_string!r} has rules but no DST name")
            return cls(posix_string, std_abbrev, std_offset)

        dst_offset = (
            _parse_utc_offset(match.group("dstoff"))
            if match.group("dstoff")
            else std_offset + 3600
        )
        if not rules:
            return cls(
                posix_string, std_abbrev, std_offset, dst_abbrev.strip("<>"), dst_offset
            )
        start, sep, end = rules.partition(",")
        if not sep:
            raise ValueError(f"{posix_string!r} needs both DST start and end rules")
        return cls(
            posix_string,
            std_abbrev,
            std_offset,
            dst_abbrev.strip("<>"),
            dst_offset,
            DstRule.parse(start),
            DstRule.parse(end),
        )

    @classmethod
    def read(cls, file: IO[bytes]) -> "PosixTzRule | None":
        """Read the newline-enclosed footer that follows a v2+ data block."""
        _ = file.readline()
        posix_line = file.readline().rstrip(b"\n\x00")
        if not posix_line:
            return None
        return cls.parse(posix_line.decode("ascii"))

    def transitions(
        self,
        after: int | None,
        prev_offset: int,
        until_year: int = HORIZON_YEAR,
    ) -> list[TransitionRecord]:
        """
        Transitions the DST rules produce strictly after `after` through the
        end of `until_year`, starting from local time at `prev_offset`.

        Only changes of UTC offset are reported.
        """
        if not self.has_dst_rules:
            return []

        if after is None:
            first_year = 1970
        else:
            first_year = max(1970 + after // _AVERAGE_YEAR_SECS - 1, 2)

        cutoff = _to_timestamp(datetime(until_year + 1, 1, 1))
        # Later boundaries at the same instant win
        boundaries: dict[int, int] = {}
        for year in range(first_year, until_year + 2):
            # Start is given in standard local time, end in daylight local time
            start = _to_timestamp(self.dst_start.local_time(year)) - self.std_offset
            end = _to_timestamp(self.dst_end.local_time(year)) - self.dst_offset
            boundaries[start] = self.dst_offset
            boundaries[end] = self.std_offset

        records = []
        for timestamp in sorted(boundaries):
            offset = boundaries[timestamp]
            if after is not None and timestamp <= after:
                continue
            if timestamp >= cutoff:
                break
            if offset == prev_offset:
                continue
            records.append(TransitionRecord(timestamp, offset, prev_offset))
            prev_offset = offset
        return records
