import logging
import threading
from functools import lru_cache

from .config import Configuration
from .errors import InvariantViolation, UnknownTimezone, UnknownVersion
from .indices import Indices
from .models import (
    AliasTimezone,
    OwnedTimezone,
    TimezoneRecord,
    VersionData,
    VersionRecord,
)
from .sources import DataSource, create_source
from .table import TransitionTable
from .timezone_version import TimezoneVersion

logger = logging.getLogger(__name__)


class Resolver:
    """
    Resolves (timezone name, version) pairs against a data source.

    Loaded version data is cached per (canonical name, version) for the
    lifetime of the resolver. The cache is unbounded and never invalidated;
    entries are immutable, so handles for an alias and its target share them.
    """

    def __init__(self, source: DataSource) -> None:
        self.source = source
        self.indices = Indices(source)
        self._cache: dict[tuple[str, str], tuple[VersionData, TransitionTable]] = {}
        self._key_locks: dict[tuple[str, str], threading.Lock] = {}
        self._lock = threading.Lock()

    @property
    def versions(self) -> dict[str, VersionRecord]:
        return self.indices.versions

    @property
    def timezones(self) -> dict[str, TimezoneRecord]:
        return self.indices.timezones

    def canonical_record(self, name: str) -> OwnedTimezone:
        record = self.indices.timezone(name)
        if record is None:
            raise UnknownTimezone(name)

        match record:
            case OwnedTimezone():
                return record
            case AliasTimezone(alias_of=target_name):
                target = self.indices.timezone(target_name)
                match target:
                    case OwnedTimezone():
                        logger.debug("Resolved alias %s -> %s", name, target_name)
                        return target
                    case AliasTimezone():
                        raise InvariantViolation(
                            f"Alias {name} points at {target_name}, "
                            f"which is itself an alias of {target.alias_of}"
                        )
                    case _:
                        raise InvariantViolation(
                            f"Alias {name} points at unknown timezone {target_name}"
                        )
        raise InvariantViolation(f"Unexpected timezone record for {name}: {record!r}")

    def resolve(self, name: str, version: str) -> TimezoneVersion:
        record = self.canonical_record(name)
        if version not in record.versions:
            raise UnknownVersion(version, name, record.name)

        version_data, table = self._load(record.name, version)
        version_record = self.indices.version(version)
        return TimezoneVersion(
            name,
            record.name,
            version,
            version_data,
            table,
            released_at=version_record.released_at if version_record else None,
        )

    def _load(
        self, canonical_name: str, version: str
    ) -> tuple[VersionData, TransitionTable]:
        key = (canonical_name, version)
        with self._lock:
            if key in self._cache:
                return self._cache[key]
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        with key_lock:
            with self._lock:
                if key in self._cache:
                    return self._cache[key]
            logger.debug("Loading transitions for %s %s", canonical_name, version)
            try:
                version_data = self.source.load_version_data(canonical_name, version)
                entry = (
                    version_data,
                    TransitionTable.from_records(
                        version_data.transitions, version_data.initial_offset
                    ),
                )
                with self._lock:
                    self._cache[key] = entry
            finally:
                with self._lock:
                    self._key_locks.pop(key, None)
            return entry


@lru_cache(maxsize=None)
def _resolver_for(config: Configuration) -> Resolver:
    return Resolver(create_source(config))


def default_resolver(config: Configuration | None = None) -> Resolver:
    """
    The shared resolver for `config` (from the environment when omitted).

    One resolver, and therefore one cache, is kept per distinct
    configuration for the lifetime of the process.
    """
    return _resolver_for(config or Configuration.from_env())
