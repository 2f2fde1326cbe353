import os
from dataclasses import dataclass
from typing import Mapping

from .errors import InvariantViolation

DEFAULT_BASE_URL = "https://a0.github.io/a0-tzmigration-ruby/data/"
DEFAULT_TIMEOUT_SECS = 30.0
DEFAULT_USER_AGENT = "tzmigration/0.1"

SOURCE_FORMATS = ("json", "tzif")


@dataclass(frozen=True)
class Configuration:
    """
    Where and how transition data is fetched.

    `base_url` is either an http(s) URL, a file:// URL, or a local path.
    With `source_format="tzif"` it must name a local directory holding one
    compiled zoneinfo tree per tzdb version.
    """

    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECS
    source_format: str = "json"
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if not self.base_url:
            raise InvariantViolation("base_url must not be empty")
        if self.timeout_seconds <= 0:
            raise InvariantViolation("timeout_seconds must be > 0")
        if self.source_format not in SOURCE_FORMATS:
            raise InvariantViolation(
                f"source_format must be one of {SOURCE_FORMATS}: {self.source_format!r}"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Configuration":
        env = os.environ if environ is None else environ
        timeout = env.get("TZMIGRATION_TIMEOUT")
        try:
            timeout_seconds = float(timeout) if timeout else DEFAULT_TIMEOUT_SECS
        except ValueError as exc:
            raise InvariantViolation(
                f"TZMIGRATION_TIMEOUT is not a number: {timeout!r}"
            ) from exc
        return cls(
            base_url=env.get("TZMIGRATION_BASE_URL") or DEFAULT_BASE_URL,
            timeout_seconds=timeout_seconds,
            source_format=env.get("TZMIGRATION_SOURCE_FORMAT") or "json",
        )
