"""
budget_config -- single public entrypoint for application configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration.  Sits beside ``budget_kernel`` and below
    ``budget_modules``.  The kernel never imports from ``budget_config``;
    ``bootstrap()`` translates settings into kernel calls.

Environment:
    BUDGET_TRACKER_CONFIG  path of the YAML file (default: defaults.yaml)
    DATABASE_URL           overrides ``database.url``

Failure modes:
    - ``FileNotFoundError`` -- the configured file does not exist.
    - ``ValueError`` -- schema validation failures.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from budget_config.loader import load_yaml_file, parse_configuration
from budget_config.schema import (
    AppConfiguration,
    CatalogSettings,
    DatabaseSettings,
    LedgerSettings,
    LoggingSettings,
)

_logger = logging.getLogger("budget_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_PATH_ENV = "BUDGET_TRACKER_CONFIG"
DATABASE_URL_ENV = "DATABASE_URL"


def get_active_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfiguration:
    """
    The ONLY public configuration entrypoint.

    Args:
        config_path: Explicit YAML file.  Takes precedence over
            ``BUDGET_TRACKER_CONFIG``.
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        A validated, frozen ``AppConfiguration``.
    """
    env = os.environ if environ is None else environ
    path = Path(config_path or env.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)

    config = parse_configuration(load_yaml_file(path), source=str(path))

    url_override = env.get(DATABASE_URL_ENV)
    if url_override:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=url_override),
        )

    _logger.info(
        "BUDGET_CONFIG_TRACE",
        extra={
            "source": config.source,
            "checksum": config.checksum,
            "database_override": bool(url_override),
            "log_level": config.logging.level,
        },
    )
    return config


def bootstrap(config: AppConfiguration | None = None):
    """
    Wire logging, the engine, tables and a change feed from configuration.

    Returns:
        The attached ``ChangeFeed`` for the configured session factory.
    """
    from budget_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
    from budget_kernel.logging_config import configure_logging
    from budget_kernel.store.change_feed import ChangeFeed

    config = config or get_active_config()
    configure_logging(level=config.logging.level)
    init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        **config.database.pool_options(),
    )
    create_tables()
    feed = ChangeFeed(get_session_factory())
    feed.attach()
    return feed


__all__ = [
    "get_active_config",
    "bootstrap",
    "AppConfiguration",
    "DatabaseSettings",
    "LoggingSettings",
    "LedgerSettings",
    "CatalogSettings",
    "DEFAULT_CONFIG_PATH",
]
