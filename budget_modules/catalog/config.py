"""
Catalog Configuration Schema.
"""

from dataclasses import dataclass
from typing import Self

from budget_kernel.logging_config import get_logger

logger = get_logger("modules.catalog.config")


@dataclass
class CatalogConfig:
    """Configuration schema for the material catalog."""

    allow_zero_price: bool = True
    max_name_length: int = 255

    def __post_init__(self):
        if self.max_name_length < 1:
            raise ValueError("max_name_length must be at least 1")
        logger.info("catalog_config_initialized", extra={
            "allow_zero_price": self.allow_zero_price,
        })

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_settings(cls, settings) -> Self:
        """Build from ``budget_config.CatalogSettings``."""
        return cls(allow_zero_price=settings.allow_zero_price)
