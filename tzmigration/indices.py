import logging
import threading

from .models import TimezoneRecord, VersionRecord
from .sources import DataSource

logger = logging.getLogger(__name__)


class Indices:
    """
    The version and timezone indices of one data source.

    Each index is loaded on first access and then kept until `clear()` is
    called; concurrent first accesses load it once.
    """

    def __init__(self, source: DataSource) -> None:
        self.source = source
        self._versions: dict[str, VersionRecord] | None = None
        self._timezones: dict[str, TimezoneRecord] | None = None
        self._lock = threading.Lock()

    @property
    def versions(self) -> dict[str, VersionRecord]:
        with self._lock:
            if self._versions is None:
                logger.debug("Loading version index")
                self._versions = self.source.load_version_index()
            return self._versions

    @property
    def timezones(self) -> dict[str, TimezoneRecord]:
        with self._lock:
            if self._timezones is None:
                logger.debug("Loading timezone index")
                self._timezones = self.source.load_timezone_index()
            return self._timezones

    def version(self, version: str) -> VersionRecord | None:
        return self.versions.get(version)

    def timezone(self, name: str) -> TimezoneRecord | None:
        return self.timezones.get(name)

    def clear(self) -> None:
        with self._lock:
            self._versions = None
            self._timezones = None
