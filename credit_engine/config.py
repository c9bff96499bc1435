"""Configuration for the credit engine.

All date comparisons made by the engine happen in one fixed business
timezone. The timezone is an explicit configuration value which is handed to
``BusinessClock`` and from there to the status engine and statement builder.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from .exceptions import ConfigurationError

BUSINESS_TIMEZONE = "America/Managua"
BALANCE_EPSILON = Decimal("0.01")
MAX_ADJUST_ITERATIONS = 30


@dataclass
class EngineConfig:
    """Main configuration for the credit engine."""

    timezone: str = BUSINESS_TIMEZONE
    balance_epsilon: Decimal = BALANCE_EPSILON
    max_adjust_iterations: int = MAX_ADJUST_ITERATIONS
    log_level: str = "INFO"
    log_format: str = "standard"
    database_url: str = "sqlite:///credit_engine.sqlite3"

    def __post_init__(self) -> None:
        if self.max_adjust_iterations <= 0:
            raise ConfigurationError("max_adjust_iterations must be positive")
        if self.balance_epsilon < 0:
            raise ConfigurationError("balance_epsilon cannot be negative")
        if self.log_format not in ("standard", "json"):
            raise ConfigurationError(f"Unknown log format: {self.log_format}")
        # resolve eagerly so a bad name fails at startup
        self.tzinfo

    @property
    def tzinfo(self) -> tzinfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError(f"Unknown timezone: {self.timezone}") from exc

    def clock(self) -> "BusinessClock":
        return BusinessClock(self.tzinfo)

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "EngineConfig":
        """Create config from ``CREDIT_ENGINE_*`` environment variables."""
        load_dotenv(dotenv_path)
        try:
            epsilon = Decimal(os.getenv("CREDIT_ENGINE_BALANCE_EPSILON", str(BALANCE_EPSILON)))
            iterations = int(os.getenv("CREDIT_ENGINE_MAX_ADJUST_ITERATIONS", str(MAX_ADJUST_ITERATIONS)))
        except (InvalidOperation, ValueError) as exc:
            raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc
        return cls(
            timezone=os.getenv("CREDIT_ENGINE_TIMEZONE", BUSINESS_TIMEZONE),
            balance_epsilon=epsilon,
            max_adjust_iterations=iterations,
            log_level=os.getenv("CREDIT_ENGINE_LOG_LEVEL", "INFO"),
            log_format=os.getenv("CREDIT_ENGINE_LOG_FORMAT", "standard"),
            database_url=os.getenv("CREDIT_ENGINE_DATABASE_URL", "sqlite:///credit_engine.sqlite3"),
        )


@dataclass
class BusinessClock:
    """Current time in the business timezone.

    ``now_func`` exists so tests can pin the clock; it must return an aware
    datetime.
    """

    tz: tzinfo = field(default_factory=lambda: ZoneInfo(BUSINESS_TIMEZONE))
    now_func: Optional[Callable[[tzinfo], datetime]] = None

    def now(self) -> datetime:
        if self.now_func is not None:
            return self.now_func(self.tz).astimezone(self.tz)
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()

    @classmethod
    def fixed(cls, moment: datetime, tz: Optional[tzinfo] = None) -> "BusinessClock":
        """A clock frozen at ``moment`` (naive values are business time)."""
        zone = tz or ZoneInfo(BUSINESS_TIMEZONE)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=zone)
        return cls(tz=zone, now_func=lambda _tz: moment)
