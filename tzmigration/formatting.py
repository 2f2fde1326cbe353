import math
from datetime import datetime, timedelta, timezone

from .instant import Infinity, Instant

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

NEGATIVE_INFINITY_STR = "-∞"
POSITIVE_INFINITY_STR = "∞"


def _check_integral(value: object, what: str) -> None:
    # bool is an int subclass but never a meaningful instant or offset
    if isinstance(value, float) and math.isnan(value):
        raise ValueError(f"{what} must not be NaN")
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{what} must be an int, got {type(value).__name__}")


def instant_to_datetime(instant: int) -> datetime:
    """
    Convert epoch seconds to an aware UTC datetime, clamping values that
    overflow the datetime range.
    """
    _check_integral(instant, "instant")
    try:
        return _EPOCH + timedelta(seconds=instant)
    except OverflowError:
        return (datetime.max if instant > 0 else datetime.min).replace(
            tzinfo=timezone.utc
        )


def format_instant(instant: Instant | float) -> str:
    if isinstance(instant, Infinity):
        return POSITIVE_INFINITY_STR if instant.sign > 0 else NEGATIVE_INFINITY_STR
    if isinstance(instant, float) and math.isinf(instant):
        return POSITIVE_INFINITY_STR if instant > 0 else NEGATIVE_INFINITY_STR
    dt = instant_to_datetime(instant)
    # strftime's %Y is not zero padded below year 1000 on every platform
    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} UTC"
    )


def format_offset(offset_secs: int) -> str:
    _check_integral(offset_secs, "offset")
    sign = "-" if offset_secs < 0 else "+"
    hours, remainder = divmod(abs(offset_secs), 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"
