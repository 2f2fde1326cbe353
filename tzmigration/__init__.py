from .config import Configuration
from .diff import diff
from .errors import (
    DataFetchFailure,
    InvariantViolation,
    TzMigrationError,
    UnknownTimezone,
    UnknownVersion,
)
from .formatting import format_instant, format_offset
from .instant import NEGATIVE_INFINITY, POSITIVE_INFINITY, Infinity
from .models import ChangeRecord
from .resolver import Resolver, default_resolver
from .sources import JsonDataSource, create_source
from .table import TransitionTable
from .timezone_version import TimezoneVersion
from .tzif import TzifDirectorySource

__all__ = [
    "NEGATIVE_INFINITY",
    "POSITIVE_INFINITY",
    "ChangeRecord",
    "Configuration",
    "DataFetchFailure",
    "Infinity",
    "InvariantViolation",
    "JsonDataSource",
    "Resolver",
    "TimezoneVersion",
    "TransitionTable",
    "TzMigrationError",
    "TzifDirectorySource",
    "UnknownTimezone",
    "UnknownVersion",
    "create_source",
    "default_resolver",
    "diff",
    "format_instant",
    "format_offset",
]
