import argparse
import json
import logging
import sys

from .config import SOURCE_FORMATS, Configuration
from .errors import DataFetchFailure, InvariantViolation, UnknownTimezone, UnknownVersion
from .resolver import Resolver
from .sources import create_source

logger = logging.getLogger("tzmigration")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if not number > 0:
        raise argparse.ArgumentTypeError(f"must be > 0: {value!r}")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tzmigration",
        description="Show how wall clocks change when migrating between tzdb versions.",
    )
    parser.add_argument("zone_a")
    parser.add_argument("version_a")
    parser.add_argument("zone_b")
    parser.add_argument("version_b")
    parser.add_argument("--base-url", help="Data location (URL or local path).")
    parser.add_argument("--source-format", choices=SOURCE_FORMATS)
    parser.add_argument("--timeout", type=_positive_float, help="HTTP timeout in seconds.")
    parser.add_argument("--json", action="store_true", help="Emit JSON.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=LOG_LEVELS,
    )
    return parser


def _configuration(args: argparse.Namespace) -> Configuration:
    config = Configuration.from_env()
    return Configuration(
        base_url=args.base_url or config.base_url,
        timeout_seconds=(
            args.timeout if args.timeout is not None else config.timeout_seconds
        ),
        source_format=args.source_format or config.source_format,
    )


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        resolver = Resolver(create_source(_configuration(args)))
        tz_a = resolver.resolve(args.zone_a, args.version_a)
        tz_b = resolver.resolve(args.zone_b, args.version_b)
        changes = tz_a.changes(tz_b)
    except (UnknownTimezone, UnknownVersion) as exc:
        logger.error("%s", exc)
        return 2
    except DataFetchFailure as exc:
        logger.error("%s", exc)
        return 3
    except InvariantViolation as exc:
        logger.error("%s", exc)
        return 4

    if args.json:
        json.dump([change.to_dict() for change in changes], sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        for change in changes:
            print(f"{change.ini_str:>23}  {change.fin_str:>23}  {change.off_str}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
