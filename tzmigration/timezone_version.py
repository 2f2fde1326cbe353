from typing import TYPE_CHECKING

from .diff import diff
from .models import ChangeRecord, TransitionRecord, VersionData
from .table import TransitionTable

if TYPE_CHECKING:
    from .resolver import Resolver


class TimezoneVersion:
    """
    A timezone resolved against one tzdb version, with its transition data.

    `name` is what the caller asked for; `canonical_name` differs from it
    when `name` is an alias.
    """

    def __init__(
        self,
        name: str,
        canonical_name: str,
        version: str,
        version_data: VersionData,
        table: TransitionTable | None = None,
        released_at: str | None = None,
    ) -> None:
        self.name = name
        self.canonical_name = canonical_name
        self.version = version
        self.version_data = version_data
        self.table = (
            table
            if table is not None
            else TransitionTable.from_records(
                version_data.transitions, version_data.initial_offset
            )
        )
        self._released_at = released_at

    @classmethod
    def load(
        cls, name: str, version: str, *, resolver: "Resolver | None" = None
    ) -> "TimezoneVersion":
        from .resolver import default_resolver

        return (resolver or default_resolver()).resolve(name, version)

    @property
    def is_alias(self) -> bool:
        return self.name != self.canonical_name

    @property
    def released_at(self) -> str | None:
        """Release timestamp of the version, as published with the data."""
        return self.version_data.released_at or self._released_at

    @property
    def transitions(self) -> tuple[TransitionRecord, ...]:
        return self.version_data.transitions

    def changes(self, other: "TimezoneVersion") -> list[ChangeRecord]:
        """
        Intervals where wall clocks differ between this version and `other`.

        Each record's `off` is how much a wall clock moves when a timestamp
        stored under this version is read under `other`.
        """
        return diff(self.table, other.table)

    def __repr__(self) -> str:
        return (
            f"TimezoneVersion(name={self.name!r}, "
            f"canonical_name={self.canonical_name!r}, "
            f"version={self.version!r})"
        )
