class TzMigrationError(Exception):
    """
    Base class for every error raised by tzmigration.
    """


class UnknownTimezone(TzMigrationError, LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Timezone {name} not found.")
        self.name = name


class UnknownVersion(TzMigrationError, LookupError):
    """
    The version is not available for the (alias-resolved) zone.

    The message always echoes the name the caller asked for, so alias
    requests read the same as requests for the canonical zone.
    """

    def __init__(self, version: str, name: str, canonical_name: str | None = None) -> None:
        super().__init__(f"Version {version} not found for {name}.")
        self.version = version
        self.name = name
        self.canonical_name = canonical_name or name


class DataFetchFailure(TzMigrationError):
    """
    The data source could not produce index or transition data.
    """


class InvariantViolation(TzMigrationError, ValueError):
    """
    Source data or caller input broke an invariant the diff relies on.
    """
