"""
Application configuration schema.

Every section of the YAML file is parsed into one of these frozen
dataclasses by ``budget_config.loader``.  Runtime code receives an
``AppConfiguration`` from ``budget_config.get_active_config()`` and never
reads YAML or environment variables itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings for ``budget_kernel.db.init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5
    pool_timeout: int = 30

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url must not be empty")
        if self.pool_size < 1:
            raise ValueError(f"database.pool_size must be >= 1, got {self.pool_size}")
        if self.max_overflow < 0:
            raise ValueError(f"database.max_overflow cannot be negative, got {self.max_overflow}")

    def pool_options(self) -> dict[str, int]:
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
        }


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"

    def __post_init__(self) -> None:
        if self.level not in LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {LOG_LEVELS}, got {self.level!r}")


@dataclass(frozen=True)
class LedgerSettings:
    """How often a line edit is retried after an optimistic-lock conflict."""

    conflict_retries: int = 3

    def __post_init__(self) -> None:
        if self.conflict_retries < 0:
            raise ValueError(
                f"ledger.conflict_retries cannot be negative, got {self.conflict_retries}"
            )


@dataclass(frozen=True)
class CatalogSettings:
    allow_zero_price: bool = True


@dataclass(frozen=True)
class AppConfiguration:
    """The parsed configuration file plus where it came from."""

    database: DatabaseSettings
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    catalog: CatalogSettings = field(default_factory=CatalogSettings)
    source: str = "<memory>"
    checksum: str = ""
