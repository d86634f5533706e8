"""Configuration management with validation.

All settings come from the environment.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Configuration constants with documented bounds
DEFAULT_INTERVAL_SECONDS = 60.0
DEFAULT_LOG_LEVEL = "info"
DEFAULT_LOG_FORMAT = "json"
DEFAULT_IDENTITY_CACHE_TTL_SECONDS = 0
MAX_IDENTITY_CACHE_TTL_SECONDS = 86400

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}
LOG_FORMATS = ("json", "text")

# Input validation patterns
VALID_SUBSCRIPTION_ID_PATTERN = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Parse a Go-style duration string into seconds.

    Accepts the same syntax as Go's ``time.ParseDuration``: an optional sign
    followed by one or more decimal numbers, each with a unit suffix
    (``ns``, ``us``, ``ms``, ``s``, ``m``, ``h``), e.g. ``"90s"``, ``"1m30s"``,
    ``"1.5h"``. The bare string ``"0"`` is also accepted.

    Raises:
        ValueError: If the string is not a valid duration.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty duration")

    sign = 1.0
    if text[0] in "+-":
        if text[0] == "-":
            sign = -1.0
        text = text[1:]

    if text == "0":
        return 0.0
    if not text:
        raise ValueError(f"invalid duration: {value!r}")

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration: {value!r}")
        number, unit = match.groups()
        total += float(number) * _DURATION_UNITS[unit]
        pos = match.end()

    return sign * total


def resolve_log_level(value: str | None) -> int:
    """Map a LOG_LEVEL string to a logging level, defaulting to INFO."""
    return LOG_LEVELS.get((value or "").strip().lower(), logging.INFO)


@dataclass(frozen=True)
class Config:
    """Controller configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing at runtime.
    """

    # Required fields
    subscription_id: str

    # Timing
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS

    # Identity lookups
    identity_cache_ttl_seconds: int = DEFAULT_IDENTITY_CACHE_TTL_SECONDS

    # Credentials
    require_secretless: bool = False

    # Logging
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: str = DEFAULT_LOG_FORMAT

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.subscription_id:
            errors.append("AZURE_SUBSCRIPTION_ID is required")
        elif not re.match(VALID_SUBSCRIPTION_ID_PATTERN, self.subscription_id.lower()):
            errors.append(f"AZURE_SUBSCRIPTION_ID must be a valid GUID: {self.subscription_id}")

        if self.interval_seconds <= 0:
            errors.append(f"INTERVAL must be positive: {self.interval_seconds}s")

        if not 0 <= self.identity_cache_ttl_seconds <= MAX_IDENTITY_CACHE_TTL_SECONDS:
            errors.append(
                f"IDENTITY_CACHE_TTL must be between 0 and {MAX_IDENTITY_CACHE_TTL_SECONDS} seconds"
            )

        if self.log_format not in LOG_FORMATS:
            errors.append(f"LOG_FORMAT must be one of {list(LOG_FORMATS)}: {self.log_format}")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def log_level_value(self) -> int:
        """Numeric logging level for this configuration."""
        return resolve_log_level(self.log_level)

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            AZURE_SUBSCRIPTION_ID: Subscription whose managed identities are listed
            INTERVAL: Poll interval as a Go duration string (default: 60s)
            IDENTITY_CACHE_TTL: Seconds to cache resolved client ids, 0 disables (default: 0)
            REQUIRE_SECRETLESS: Refuse secret-based Azure credentials (default: false)
            LOG_LEVEL: debug, info, warn or error (default: info)
            LOG_FORMAT: json or text (default: json)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None or value == "":
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        def get_interval() -> float:
            value = os.environ.get("INTERVAL", "")
            if not value:
                return DEFAULT_INTERVAL_SECONDS
            try:
                seconds = parse_duration(value)
            except ValueError as e:
                logger.warning(
                    "Invalid INTERVAL, using default",
                    extra={
                        "value": value,
                        "error": str(e),
                        "default_seconds": DEFAULT_INTERVAL_SECONDS,
                    },
                )
                return DEFAULT_INTERVAL_SECONDS
            if seconds <= 0:
                logger.warning(
                    "Non-positive INTERVAL, using default",
                    extra={"value": value, "default_seconds": DEFAULT_INTERVAL_SECONDS},
                )
                return DEFAULT_INTERVAL_SECONDS
            return seconds

        return cls(
            subscription_id=os.environ.get("AZURE_SUBSCRIPTION_ID", ""),
            interval_seconds=get_interval(),
            identity_cache_ttl_seconds=get_int(
                "IDENTITY_CACHE_TTL", DEFAULT_IDENTITY_CACHE_TTL_SECONDS
            ),
            require_secretless=get_bool("REQUIRE_SECRETLESS", False),
            log_level=os.environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().lower()
            or DEFAULT_LOG_LEVEL,
            log_format=os.environ.get("LOG_FORMAT", DEFAULT_LOG_FORMAT).strip().lower()
            or DEFAULT_LOG_FORMAT,
        )
