"""
Configuration Loader (``budget_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses each section into the frozen
dataclasses of ``budget_config.schema``.  Runtime code goes through
``budget_config.get_active_config()`` instead of calling this directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``database.url``  -> ``KeyError`` propagates.
* Wrongly typed or out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from budget_config.schema import (
    AppConfiguration,
    CatalogSettings,
    DatabaseSettings,
    LedgerSettings,
    LoggingSettings,
)

_KNOWN_SECTIONS = frozenset({"database", "logging", "ledger", "catalog"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Section {name!r} must be a mapping, got {type(value).__name__}")
    return value


def _bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def _int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value


def parse_database(data: Mapping[str, Any]) -> DatabaseSettings:
    return DatabaseSettings(
        url=str(data["url"]),
        echo=_bool(data.get("echo", False), "database.echo"),
        pool_size=_int(data.get("pool_size", 10), "database.pool_size"),
        max_overflow=_int(data.get("max_overflow", 5), "database.max_overflow"),
        pool_timeout=_int(data.get("pool_timeout", 30), "database.pool_timeout"),
    )


def parse_logging(data: Mapping[str, Any]) -> LoggingSettings:
    return LoggingSettings(level=str(data.get("level", "INFO")).upper())


def parse_ledger(data: Mapping[str, Any]) -> LedgerSettings:
    return LedgerSettings(
        conflict_retries=_int(data.get("conflict_retries", 3), "ledger.conflict_retries"),
    )


def parse_catalog(data: Mapping[str, Any]) -> CatalogSettings:
    return CatalogSettings(
        allow_zero_price=_bool(data.get("allow_zero_price", True), "catalog.allow_zero_price"),
    )


def parse_configuration(
    data: Mapping[str, Any],
    source: str = "<memory>",
) -> AppConfiguration:
    """
    Parse a whole configuration document.

    Unknown top-level sections are rejected so typos do not silently fall
    back to defaults.
    """
    unknown = set(data) - _KNOWN_SECTIONS
    if unknown:
        raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")
    return AppConfiguration(
        database=parse_database(_section(data, "database")),
        logging=parse_logging(_section(data, "logging")),
        ledger=parse_ledger(_section(data, "ledger")),
        catalog=parse_catalog(_section(data, "catalog")),
        source=source,
        checksum=compute_checksum(data),
    )


def compute_checksum(data: Mapping[str, Any]) -> str:
    """SHA-256 of the canonical JSON form; identical input, identical checksum."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
