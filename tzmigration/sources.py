import json
import logging
import os
import threading
from typing import Any, Mapping, Protocol
from urllib.parse import quote, urlparse
from urllib.request import url2pathname

import requests

from .config import Configuration
from .errors import DataFetchFailure
from .models import (
    AliasTimezone,
    OwnedTimezone,
    TimezoneRecord,
    TransitionRecord,
    VersionData,
    VersionRecord,
)

logger = logging.getLogger(__name__)


class DataSource(Protocol):
    def load_version_index(self) -> dict[str, VersionRecord]: ...

    def load_timezone_index(self) -> dict[str, TimezoneRecord]: ...

    def load_version_data(self, timezone_name: str, version: str) -> VersionData: ...

    def load_transitions(
        self, timezone_name: str, version: str
    ) -> tuple[TransitionRecord, ...]: ...


def validate_timezone_key(key: str) -> str:
    """
    Reject timezone names that would escape the data root once joined to it.
    """
    if not key or os.path.isabs(key):
        raise DataFetchFailure(f"Invalid timezone name: {key!r}")

    # Normalizing must not change the length, which rules out ../ and //
    normalized = os.path.normpath(key)
    if len(normalized) != len(key) or normalized in (os.curdir, os.pardir):
        raise DataFetchFailure(f"Invalid timezone name: {key!r}")

    _base = os.path.normpath(os.path.join("_", "_"))[:-1]
    resolved = os.path.normpath(os.path.join(_base, normalized))
    if not resolved.startswith(_base):
        raise DataFetchFailure(f"Invalid timezone name: {key!r}")

    return normalized


def _require_int(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DataFetchFailure(f"Malformed {what}: expected an integer, got {value!r}")
    return value


def _require_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise DataFetchFailure(f"Malformed {what}: expected an object")
    return value


def _require_names(value: Any, what: str) -> frozenset[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise DataFetchFailure(f"Malformed {what}: expected a list of strings")
    return frozenset(value)


def parse_version_index(payload: Any) -> dict[str, VersionRecord]:
    versions: dict[str, VersionRecord] = {}
    for version, entry in _require_mapping(payload, "version index").items():
        entry = _require_mapping(entry, f"version index entry {version!r}")
        released_at = entry.get("released_at")
        versions[version] = VersionRecord(
            version,
            released_at if isinstance(released_at, str) else None,
            _require_names(entry.get("timezones", []), f"timezones of {version!r}"),
        )
    return versions


def parse_timezone_record(name: str, entry: Any) -> TimezoneRecord:
    entry = _require_mapping(entry, f"timezone index entry {name!r}")
    match entry:
        case {"alias": str(alias_of)} if "versions" not in entry:
            return AliasTimezone(name, alias_of)
        case {"versions": versions} if "alias" not in entry:
            # zone documents map version -> data, the index lists the labels
            if isinstance(versions, Mapping):
                return OwnedTimezone(name, frozenset(versions))
            return OwnedTimezone(name, _require_names(versions, f"versions of {name!r}"))
        case _:
            raise DataFetchFailure(
                f"Malformed timezone index entry {name!r}: "
                "expected exactly one of 'versions' or 'alias'"
            )


def parse_timezone_index(payload: Any) -> dict[str, TimezoneRecord]:
    return {
        name: parse_timezone_record(name, entry)
        for name, entry in _require_mapping(payload, "timezone index").items()
    }


def parse_transition(raw: Any) -> TransitionRecord:
    raw = _require_mapping(raw, "transition")
    prev = raw.get("utc_prev_offset")
    return TransitionRecord(
        _require_int(raw.get("utc_timestamp"), "transition utc_timestamp"),
        _require_int(raw.get("utc_offset"), "transition utc_offset"),
        None if prev is None else _require_int(prev, "transition utc_prev_offset"),
    )


def parse_version_data(
    document: Any, timezone_name: str, version: str
) -> VersionData:
    document = _require_mapping(document, f"timezone document {timezone_name!r}")
    versions = _require_mapping(
        document.get("versions"), f"versions of {timezone_name!r}"
    )
    if version not in versions:
        raise DataFetchFailure(
            f"Timezone document {timezone_name!r} has no data for version {version}"
        )
    entry = _require_mapping(versions[version], f"{timezone_name!r} {version}")
    transitions = entry.get("transitions") or []
    if not isinstance(transitions, list):
        raise DataFetchFailure(
            f"Malformed transitions for {timezone_name!r} {version}: expected a list"
        )
    released_at = entry.get("released_at")
    return VersionData(
        released_at if isinstance(released_at, str) else None,
        tuple(parse_transition(raw) for raw in transitions),
    )


class JsonDataSource:
    """
    Reads the published JSON data set from an http(s) URL or a local path.

    Layout under the base location:
        versions.json
        timezones.json
        timezones/<Zone/Name>.json
    """

    def __init__(
        self,
        config: Configuration | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config or Configuration()
        self._session = session
        self._documents: dict[str, Any] = {}
        self._lock = threading.Lock()

    @property
    def is_remote(self) -> bool:
        return urlparse(self.config.base_url).scheme in ("http", "https")

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers["User-Agent"] = self.config.user_agent
        return self._session

    def load_version_index(self) -> dict[str, VersionRecord]:
        return parse_version_index(self._fetch_json("versions.json"))

    def load_timezone_index(self) -> dict[str, TimezoneRecord]:
        return parse_timezone_index(self._fetch_json("timezones.json"))

    def load_version_data(self, timezone_name: str, version: str) -> VersionData:
        return parse_version_data(
            self._timezone_document(timezone_name), timezone_name, version
        )

    def load_transitions(
        self, timezone_name: str, version: str
    ) -> tuple[TransitionRecord, ...]:
        return self.load_version_data(timezone_name, version).transitions

    def _timezone_document(self, timezone_name: str) -> Any:
        key = validate_timezone_key(timezone_name)
        with self._lock:
            if key in self._documents:
                return self._documents[key]
        document = self._fetch_json(f"timezones/{key}.json")
        with self._lock:
            return self._documents.setdefault(key, document)

    def _fetch_json(self, path: str) -> Any:
        if self.is_remote:
            return self._fetch_remote(path)
        return self._fetch_local(path)

    def _fetch_remote(self, path: str) -> Any:
        url = self.config.base_url.rstrip("/") + "/" + quote(path)
        logger.debug("Fetching %s", url)
        try:
            response = self.session.get(url, timeout=self.config.timeout_seconds)
        except requests.RequestException as exc:
            raise DataFetchFailure(f"Could not fetch {url}: {exc}") from exc
        if response.status_code >= 400:
            raise DataFetchFailure(
                f"Could not fetch {url}: HTTP {response.status_code}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise DataFetchFailure(f"Malformed JSON at {url}: {exc}") from exc

    def _fetch_local(self, path: str) -> Any:
        parsed = urlparse(self.config.base_url)
        root = (
            url2pathname(parsed.path) if parsed.scheme == "file" else self.config.base_url
        )
        filepath = os.path.join(root, *path.split("/"))
        logger.debug("Reading %s", filepath)
        try:
            with open(filepath, "rb") as file:
                return json.load(file)
        except OSError as exc:
            raise DataFetchFailure(f"Could not read {filepath}: {exc}") from exc
        except ValueError as exc:
            raise DataFetchFailure(f"Malformed JSON in {filepath}: {exc}") from exc


def create_source(config: Configuration | None = None) -> DataSource:
    config = config or Configuration.from_env()
    if config.source_format == "tzif":
        from .tzif import TzifDirectorySource

        return TzifDirectorySource(config.base_url)
    return JsonDataSource(config)
