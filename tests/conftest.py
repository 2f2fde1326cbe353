import json
import os

import pytest

from tzmigration import Configuration, JsonDataSource, Resolver

RELEASES = {
    "2013c": "2013-05-27 08:51:09 -0700",
    "2016c": "2016-03-23 10:29:33 -0700",
    "2016d": "2016-04-17 22:50:29 -0700",
    "2018e": "2018-05-01 23:42:51 -0700",
}


def _tr(utc_timestamp, utc_offset, utc_prev_offset):
    return {
        "utc_timestamp": utc_timestamp,
        "utc_offset": utc_offset,
        "utc_prev_offset": utc_prev_offset,
    }


CARACAS_2016C = [
    _tr(-2524505536, -16060, -16064),
    _tr(-1826739140, -16200, -16060),
    _tr(-157750200, -14400, -16200),
    _tr(1197183600, -16200, -14400),
]
CARACAS_2016D = CARACAS_2016C + [_tr(1462086000, -14400, -16200)]

SANTIAGO_2013C = [
    _tr(-1892661435, -18000, -16966),
    _tr(-740520000, -14400, -18000),
    _tr(-736376400, -18000, -14400),
]
SANTIAGO_2016C = SANTIAGO_2013C + [
    _tr(1463281200, -14400, -18000),
    _tr(1471147200, -10800, -14400),
]
SANTIAGO_2018E = SANTIAGO_2016C + [
    _tr(1494730800, -14400, -10800),
    _tr(1502596800, -10800, -14400),
    _tr(1526180400, -14400, -10800),
    _tr(1534046400, -10800, -14400),
]
PUNTA_ARENAS_2018E = SANTIAGO_2016C + [
    _tr(1494730800, -14400, -10800),
    _tr(1502596800, -10800, -14400),
]

ZONES = {
    "UTC": {"2013c": [], "2018e": []},
    "Africa/Abidjan": {"2018e": [_tr(-1830383032, 0, -968)]},
    "America/Caracas": {"2016c": CARACAS_2016C, "2016d": CARACAS_2016D},
    "America/Santiago": {
        "2013c": SANTIAGO_2013C,
        "2016c": SANTIAGO_2016C,
        "2016d": SANTIAGO_2016C,
        "2018e": SANTIAGO_2018E,
    },
    "America/Punta_Arenas": {"2018e": PUNTA_ARENAS_2018E},
}

ALIASES = {
    "Zulu": "UTC",
    "Chile/Continental": "America/Santiago",
}


def _write_json(path, payload) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as file:
        json.dump(payload, file)


def write_dataset(root, zones=ZONES, aliases=ALIASES) -> None:
    versions = {
        version: {"released_at": released_at, "timezones": []}
        for version, released_at in RELEASES.items()
    }
    timezones = {}
    for name, by_version in zones.items():
        timezones[name] = {"versions": sorted(by_version)}
        for version in by_version:
            versions[version]["timezones"].append(name)
        _write_json(
            os.path.join(root, "timezones", *name.split("/")) + ".json",
            {
                "name": name,
                "versions": {
                    version: {
                        "released_at": RELEASES[version],
                        "transitions": transitions,
                    }
                    for version, transitions in by_version.items()
                },
            },
        )
    for name, target in aliases.items():
        timezones[name] = {"alias": target}
        for version in zones.get(target, {}):
            versions[version]["timezones"].append(name)

    _write_json(os.path.join(root, "versions.json"), versions)
    _write_json(os.path.join(root, "timezones.json"), timezones)


@pytest.fixture
def data_dir(tmp_path):
    root = tmp_path / "data"
    write_dataset(str(root))
    return root


@pytest.fixture
def config(data_dir):
    return Configuration(base_url=str(data_dir))


@pytest.fixture
def resolver(config):
    return Resolver(JsonDataSource(config))
