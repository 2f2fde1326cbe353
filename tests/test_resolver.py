import threading
from datetime import datetime, timedelta, timezone

import pytest

from tzmigration import (
    Configuration,
    DataFetchFailure,
    InvariantViolation,
    JsonDataSource,
    Resolver,
    TimezoneVersion,
    UnknownTimezone,
    UnknownVersion,
)
from tzmigration.instant import NEGATIVE_INFINITY, POSITIVE_INFINITY
from tzmigration.models import AliasTimezone, OwnedTimezone

from .conftest import write_dataset


def test_can_load_version_index(resolver):
    versions = resolver.versions
    assert {"2013c", "2018e"} <= set(versions)
    assert {"America/Santiago", "Zulu"} <= versions["2013c"].timezones


def test_can_load_timezone_index(resolver):
    timezones = resolver.timezones
    assert {"America/Santiago", "Zulu"} <= set(timezones)
    assert isinstance(timezones["America/Santiago"], OwnedTimezone)
    assert {"2016c", "2018e"} <= timezones["America/Santiago"].versions
    assert timezones["Chile/Continental"] == AliasTimezone(
        "Chile/Continental", "America/Santiago"
    )


def test_released_at(resolver):
    tz_version = resolver.resolve("America/Santiago", "2018e")
    assert tz_version.released_at == "2018-05-01 23:42:51 -0700"


def test_released_at_falls_back_to_version_index(tmp_path):
    root = tmp_path / "data"
    write_dataset(str(root))
    # drop released_at from the zone document only
    path = root / "timezones" / "UTC.json"
    path.write_text(path.read_text().replace('"released_at"', '"_released_at"'))

    tz_version = Resolver(JsonDataSource(Configuration(base_url=str(root)))).resolve(
        "UTC", "2018e"
    )
    assert tz_version.released_at == "2018-05-01 23:42:51 -0700"


def test_alias_has_same_data_as_target(resolver):
    tz_a = resolver.resolve("America/Santiago", "2018e")
    tz_b = resolver.resolve("Chile/Continental", "2018e")

    assert tz_a.version_data is not None
    assert tz_a.version_data == tz_b.version_data
    assert tz_a.table is tz_b.table
    assert tz_b.is_alias
    assert not tz_a.is_alias
    assert tz_b.name == "Chile/Continental"
    assert tz_b.canonical_name == "America/Santiago"
    assert tz_a.changes(tz_b) == []


def test_unknown_version(resolver):
    with pytest.raises(UnknownVersion, match=r"^Version 1800a not found for America/Santiago\.$"):
        resolver.resolve("America/Santiago", "1800a")


def test_unknown_version_echoes_requested_alias(resolver):
    with pytest.raises(UnknownVersion) as exc_info:
        resolver.resolve("Chile/Continental", "1800a")
    assert str(exc_info.value) == "Version 1800a not found for Chile/Continental."
    assert exc_info.value.canonical_name == "America/Santiago"


def test_unknown_timezone(resolver):
    with pytest.raises(UnknownTimezone) as exc_info:
        resolver.resolve("America/Santiagors", "2018e")
    assert not isinstance(exc_info.value, UnknownVersion)
    assert exc_info.value.name == "America/Santiagors"


def test_alias_of_alias_is_an_invariant_violation(tmp_path):
    root = tmp_path / "data"
    write_dataset(str(root), aliases={"Zulu": "UTC", "Etc/Zulu": "Zulu"})
    resolver = Resolver(JsonDataSource(Configuration(base_url=str(root))))
    with pytest.raises(InvariantViolation):
        resolver.resolve("Etc/Zulu", "2018e")


def test_alias_to_unknown_target_is_an_invariant_violation(tmp_path):
    root = tmp_path / "data"
    write_dataset(str(root), aliases={"Mars/Olympus": "Mars/Base"})
    resolver = Resolver(JsonDataSource(Configuration(base_url=str(root))))
    with pytest.raises(InvariantViolation):
        resolver.resolve("Mars/Olympus", "2018e")


def test_no_changes_between_identical_versions(resolver):
    tz_a = resolver.resolve("America/Santiago", "2016c")
    tz_b = resolver.resolve("America/Santiago", "2016d")
    assert tz_a.changes(tz_b) == []


def test_changes_between_different_zones(resolver):
    tz_a = resolver.resolve("America/Santiago", "2018e")
    tz_b = resolver.resolve("America/Punta_Arenas", "2018e")
    changes = tz_a.changes(tz_b)
    assert [(c.ini, c.fin, c.off) for c in changes] == [(1526180400, 1534046400, 3600)]


def test_caracas_2016c_to_2016d(resolver):
    tz_a = resolver.resolve("America/Caracas", "2016c")
    tz_b = resolver.resolve("America/Caracas", "2016d")
    changes = tz_a.changes(tz_b)

    expected_ini = datetime(2016, 5, 1, 2, 30, tzinfo=timezone(timedelta(hours=-4, minutes=-30)))
    assert len(changes) == 1
    first = changes[0]
    assert first.off == 1800
    assert first.ini == int(expected_ini.timestamp())
    assert first.fin == float("inf")
    assert first.fin is POSITIVE_INFINITY
    assert first.ini_str == "2016-05-01 07:00:00 UTC"
    assert first.fin_str == "∞"
    assert first.off_str == "+00:30:00"


def test_utc_versions_without_transitions(resolver):
    tz_a = resolver.resolve("UTC", "2013c")
    tz_b = resolver.resolve("UTC", "2018e")
    assert tz_a.transitions == ()
    assert tz_a.changes(tz_b) == []


def test_empty_against_non_empty(resolver):
    abidjan = resolver.resolve("Africa/Abidjan", "2018e")
    utc = resolver.resolve("UTC", "2018e")

    assert [c.to_dict() for c in abidjan.changes(utc)] == [
        {
            "ini": "-inf",
            "fin": -1830383032,
            "off": 968,
            "ini_str": "-∞",
            "fin_str": "1912-01-01 00:16:08 UTC",
            "off_str": "+00:16:08",
        }
    ]
    (change,) = utc.changes(abidjan)
    assert (change.ini, change.fin, change.off) == (NEGATIVE_INFINITY, -1830383032, -968)
    assert change.off_str == "-00:16:08"


def test_santiago_2013c_to_2018e(resolver):
    tz_a = resolver.resolve("America/Santiago", "2013c")
    tz_b = resolver.resolve("Chile/Continental", "2018e")
    assert [(c.ini, c.fin, c.off) for c in tz_a.changes(tz_b)] == [
        (1463281200, 1471147200, 3600),
        (1471147200, 1494730800, 7200),
        (1494730800, 1502596800, 3600),
        (1502596800, 1526180400, 7200),
        (1526180400, 1534046400, 3600),
        (1534046400, POSITIVE_INFINITY, 7200),
    ]


VERSIONS = ["2013c", "2016c", "2016d", "2018e"]


@pytest.mark.parametrize(
    "version_a, version_b",
    [(a, b) for a in VERSIONS for b in VERSIONS],
)
def test_inverse_changes_for_santiago(resolver, version_a, version_b):
    tz_a = resolver.resolve("America/Santiago", version_a)
    tz_b = resolver.resolve("America/Santiago", version_b)
    changes_ab = tz_a.changes(tz_b)
    changes_ba = tz_b.changes(tz_a)

    assert len(changes_ab) == len(changes_ba)
    for item_a, item_b in zip(changes_ab, changes_ba):
        assert item_a.ini == item_b.ini
        assert item_a.fin == item_b.fin
        assert item_a.off == -item_b.off
        assert item_a.ini_str == item_b.ini_str
        assert item_a.fin_str == item_b.fin_str


class CountingSource:
    def __init__(self, source):
        self._source = source
        self.loads = 0
        self._lock = threading.Lock()

    def load_version_index(self):
        return self._source.load_version_index()

    def load_timezone_index(self):
        return self._source.load_timezone_index()

    def load_version_data(self, timezone_name, version):
        with self._lock:
            self.loads += 1
        return self._source.load_version_data(timezone_name, version)

    def load_transitions(self, timezone_name, version):
        return self.load_version_data(timezone_name, version).transitions


def test_version_data_is_loaded_once_per_key(config):
    source = CountingSource(JsonDataSource(config))
    resolver = Resolver(source)

    threads = [
        threading.Thread(target=resolver.resolve, args=(name, "2018e"))
        for name in ["America/Santiago", "Chile/Continental"] * 8
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert source.loads == 1
    resolver.resolve("America/Santiago", "2016c")
    assert source.loads == 2


class FlakySource(CountingSource):
    def __init__(self, source, failures):
        super().__init__(source)
        self.failures = failures

    def load_version_data(self, timezone_name, version):
        if self.failures:
            self.failures -= 1
            raise DataFetchFailure(f"{timezone_name} {version} is unavailable")
        return super().load_version_data(timezone_name, version)


def test_failed_load_is_not_cached(config):
    source = FlakySource(JsonDataSource(config), failures=1)
    resolver = Resolver(source)

    with pytest.raises(DataFetchFailure):
        resolver.resolve("America/Santiago", "2018e")
    assert resolver._key_locks == {}
    assert resolver._cache == {}

    assert resolver.resolve("America/Santiago", "2018e").canonical_name == (
        "America/Santiago"
    )
    assert source.loads == 1
    assert resolver._key_locks == {}


def test_unreachable_location_fails_loudly(tmp_path):
    resolver = Resolver(
        JsonDataSource(Configuration(base_url=str(tmp_path / "missing")))
    )
    with pytest.raises(DataFetchFailure):
        resolver.resolve("America/Santiago", "2018e")


def test_index_cache_can_be_cleared(config):
    source = JsonDataSource(config)
    resolver = Resolver(source)
    first = resolver.timezones
    assert resolver.timezones is first
    resolver.indices.clear()
    assert resolver.timezones is not first
    assert resolver.timezones == first


def test_timezone_version_load_uses_given_resolver(resolver):
    tz_version = TimezoneVersion.load("Zulu", "2013c", resolver=resolver)
    assert tz_version.canonical_name == "UTC"
    assert tz_version.version == "2013c"
