import logging
import os
import struct
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import IO

from .errors import DataFetchFailure
from .models import (
    AliasTimezone,
    OwnedTimezone,
    TimezoneRecord,
    TransitionRecord,
    VersionData,
    VersionRecord,
)
from .posix import HORIZON_YEAR, PosixTzRule
from .sources import validate_timezone_key

logger = logging.getLogger(__name__)

TZIF_MAGIC = b"TZif"

# Subtrees of a zoneinfo install that duplicate the main tree
_SKIPPED_SUBTREES = frozenset({"posix", "right"})


@dataclass
class TzifHeader:
    version: int
    is_utc_flag_count: int
    wall_standard_flag_count: int
    leap_second_transitions_count: int
    transitions_count: int
    local_time_type_count: int
    timezone_abbrev_byte_count: int

    @classmethod
    def read(cls, file: IO[bytes]) -> "TzifHeader":
        format_ = ">4s1c15x6I"
        header_size = struct.calcsize(format_)
        data = file.read(header_size)
        if len(data) != header_size:
            raise DataFetchFailure("Invalid TZif file: truncated header.")
        (
            magic,
            version_byte,
            is_utc_flag_count,
            wall_standard_flag_count,
            leap_second_count,
            transitions_count,
            local_time_type_count,
            timezone_abbrev_byte_count,
        ) = struct.unpack(format_, data)

        if magic != TZIF_MAGIC:
            raise DataFetchFailure("Invalid TZif file: Magic sequence not found.")

        version = 1 if version_byte == b"\x00" else int(version_byte.decode("ascii"))

        return cls(
            version,
            is_utc_flag_count,
            wall_standard_flag_count,
            leap_second_count,
            transitions_count,
            local_time_type_count,
            timezone_abbrev_byte_count,
        )

    def body_size(self, time_size: int) -> int:
        return (
            self.transitions_count * (time_size + 1)
            + self.local_time_type_count * 6
            + self.timezone_abbrev_byte_count
            + self.leap_second_transitions_count * (time_size + 4)
            + self.wall_standard_flag_count
            + self.is_utc_flag_count
        )


def _read_exact(file: IO[bytes], size: int) -> bytes:
    data = file.read(size)
    if len(data) != size:
        raise DataFetchFailure("Invalid TZif file: truncated data block.")
    return data


@dataclass(frozen=True)
class TzifData:
    """
    What a TZif stream says about UTC offsets: the offset before the first
    transition, the transitions themselves, and the footer rule.
    """

    initial_offset: int
    transitions: tuple[TransitionRecord, ...]
    footer: PosixTzRule | None = None


def _read_transitions_block(
    file: IO[bytes], header: TzifHeader, time_size: int
) -> tuple[int, tuple[TransitionRecord, ...]]:
    count = header.transitions_count
    fmt = f">{count}q" if time_size == 8 else f">{count}i"
    times = struct.unpack(fmt, _read_exact(file, time_size * count))
    indices = list(_read_exact(file, count))
    # ttinfo: 4-byte signed utoff, 1-byte isdst, 1-byte abbreviation index
    ttinfos = [
        struct.unpack(">i?B", _read_exact(file, 6))
        for _ in range(header.local_time_type_count)
    ]
    if not ttinfos:
        raise DataFetchFailure("Invalid TZif file: no local time types.")
    if any(index >= len(ttinfos) for index in indices):
        raise DataFetchFailure("Invalid TZif file: local time type index out of range.")
    # abbreviations, leap seconds and indicators carry no offsets
    _read_exact(
        file,
        header.timezone_abbrev_byte_count
        + header.leap_second_transitions_count * (time_size + 4)
        + header.wall_standard_flag_count
        + header.is_utc_flag_count,
    )

    # Before the first transition: first standard-time type, else type 0
    initial = next((tt for tt in ttinfos if not tt[1]), ttinfos[0])
    records = []
    prev_offset = initial[0]
    for transition_time, index in zip(times, indices):
        utc_offset = ttinfos[index][0]
        records.append(TransitionRecord(transition_time, utc_offset, prev_offset))
        prev_offset = utc_offset
    return initial[0], tuple(records)


def read_tzif(file: IO[bytes], until_year: int = HORIZON_YEAR) -> TzifData:
    """
    Decode a TZif stream (RFC 8536, v1 to v4).

    The 64-bit block is preferred when present. DST rules in the footer are
    expanded into transitions through the end of `until_year`.
    """
    try:
        header = TzifHeader.read(file)
        if header.version < 2:
            return TzifData(*_read_transitions_block(file, header, 4))
        _read_exact(file, header.body_size(4))
        v2_header = TzifHeader.read(file)
        initial_offset, transitions = _read_transitions_block(file, v2_header, 8)
        footer = PosixTzRule.read(file)
    except (struct.error, ValueError) as exc:
        raise DataFetchFailure(f"Invalid TZif file: {exc}") from exc

    if footer is not None:
        last = transitions[-1] if transitions else None
        transitions += tuple(
            footer.transitions(
                last.utc_timestamp if last else None,
                last.utc_offset if last else initial_offset,
                until_year,
            )
        )
    return TzifData(initial_offset, transitions, footer)


def read_tzif_transitions(file: IO[bytes]) -> tuple[TransitionRecord, ...]:
    return read_tzif(file).transitions


def _is_tzif(filepath: str) -> bool:
    try:
        with open(filepath, "rb") as file:
            return file.read(4) == TZIF_MAGIC
    except OSError:
        return False


def _format_mtime(path: str) -> str:
    mtime = datetime.fromtimestamp(os.stat(path).st_mtime, tz=timezone.utc)
    return mtime.strftime("%Y-%m-%d %H:%M:%S +0000")


class TzifDirectorySource:
    """
    Serves transition data from compiled zoneinfo trees, one per version:

        <root>/<version>/<Zone/Name>

    A zone whose file is a symlink to the same target zone in every version
    it appears in is reported as an alias of that zone.
    """

    def __init__(self, root: str) -> None:
        self.root = root
        self._scans: dict[str, dict[str, str | None]] = {}
        self._lock = threading.Lock()

    def versions(self) -> list[str]:
        try:
            entries = os.listdir(self.root)
        except OSError as exc:
            raise DataFetchFailure(f"Could not list {self.root}: {exc}") from exc
        return sorted(
            entry for entry in entries if os.path.isdir(os.path.join(self.root, entry))
        )

    def load_version_index(self) -> dict[str, VersionRecord]:
        return {
            version: VersionRecord(
                version,
                _format_mtime(os.path.join(self.root, version)),
                frozenset(self._scan(version)),
            )
            for version in self.versions()
        }

    def load_timezone_index(self) -> dict[str, TimezoneRecord]:
        appearances: dict[str, dict[str, str | None]] = {}
        for version in self.versions():
            for name, link_target in self._scan(version).items():
                appearances.setdefault(name, {})[version] = link_target

        index: dict[str, TimezoneRecord] = {}
        for name, by_version in appearances.items():
            targets = set(by_version.values())
            if len(targets) == 1 and None not in targets:
                index[name] = AliasTimezone(name, targets.pop())
            else:
                index[name] = OwnedTimezone(name, frozenset(by_version))
        return index

    def load_version_data(self, timezone_name: str, version: str) -> VersionData:
        key = validate_timezone_key(timezone_name)
        version_dir = os.path.join(self.root, validate_timezone_key(version))
        filepath = os.path.join(version_dir, *key.split("/"))
        logger.debug("Reading %s", filepath)
        try:
            with open(filepath, "rb") as file:
                data = read_tzif(file)
            released_at = _format_mtime(version_dir)
        except OSError as exc:
            raise DataFetchFailure(f"Could not read {filepath}: {exc}") from exc
        return VersionData(released_at, data.transitions, data.initial_offset)

    def load_transitions(
        self, timezone_name: str, version: str
    ) -> tuple[TransitionRecord, ...]:
        return self.load_version_data(timezone_name, version).transitions

    def _scan(self, version: str) -> dict[str, str | None]:
        with self._lock:
            if version not in self._scans:
                self._scans[version] = self._scan_version_dir(
                    os.path.join(self.root, version)
                )
            return self._scans[version]

    @staticmethod
    def _scan_version_dir(version_dir: str) -> dict[str, str | None]:
        """
        Map every TZif zone name under `version_dir` to the zone its symlink
        points at, or None for a regular file.
        """
        logger.debug("Scanning %s", version_dir)
        zones: dict[str, str | None] = {}
        for dirpath, dirnames, filenames in os.walk(version_dir):
            if dirpath == version_dir:
                dirnames[:] = [d for d in dirnames if d not in _SKIPPED_SUBTREES]
            for filename in filenames:
                path = os.path.join(dirpath, filename)
                if not _is_tzif(path):
                    continue
                name = os.path.relpath(path, version_dir).replace(os.sep, "/")
                link_target = None
                if os.path.islink(path):
                    target = os.path.normpath(
                        os.path.join(dirpath, os.readlink(path))
                    )
                    relative = os.path.relpath(target, version_dir)
                    if not relative.startswith(os.pardir):
                        link_target = relative.replace(os.sep, "/")
                zones[name] = link_target
        return zones
