"""
Budget Module Configuration Schema.
"""

from dataclasses import dataclass
from typing import Self

from budget_kernel.logging_config import get_logger

logger = get_logger("modules.budget.config")


@dataclass
class BudgetModuleConfig:
    """Configuration schema for budgets and their material lines."""

    conflict_retries: int = 3
    max_name_length: int = 255

    def __post_init__(self):
        if self.conflict_retries < 0:
            raise ValueError("conflict_retries cannot be negative")
        if self.max_name_length < 1:
            raise ValueError("max_name_length must be at least 1")
        logger.info("budget_config_initialized", extra={
            "conflict_retries": self.conflict_retries,
        })

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_settings(cls, settings) -> Self:
        """Build from ``budget_config.LedgerSettings``."""
        return cls(conflict_retries=settings.conflict_retries)
