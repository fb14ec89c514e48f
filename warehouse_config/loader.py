"""
Configuration Loader (``warehouse_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``warehouse_config.schema`` dataclasses, then applies environment
overrides.  Callers normally go through ``warehouse_config.get_settings()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Unknown sections and keys are rejected, so a typo never silently falls
  back to a default.
* Environment variables win over the file:
  ``WAREHOUSE_DATABASE_URL`` -> ``database.url``,
  ``WAREHOUSE_LOG_LEVEL`` -> ``logging.level``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong types, out-of-range numbers, unknown keys  -> ``ValueError``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from warehouse_config.schema import (
    DatabaseSettings,
    DeliverySettings,
    IdentifierSettings,
    LoggingSettings,
    ReportingSettings,
    RetrySettings,
    WarehouseSettings,
)

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

ENV_CONFIG_PATH = "WAREHOUSE_CONFIG"
ENV_DATABASE_URL = "WAREHOUSE_DATABASE_URL"
ENV_LOG_LEVEL = "WAREHOUSE_LOG_LEVEL"

_SECTIONS = {
    "database": DatabaseSettings,
    "retry": RetrySettings,
    "identifiers": IdentifierSettings,
    "delivery": DeliverySettings,
    "reporting": ReportingSettings,
    "logging": LoggingSettings,
}

_OVER_DELIVERY_MODES = ("reject", "allow")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _coerce(section: str, name: str, expected: type, value: Any) -> Any:
    if expected is bool:
        if isinstance(value, bool):
            return value
    elif expected is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif expected is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif expected is str:
        if isinstance(value, str) and value.strip():
            return value.strip()
    raise ValueError(
        f"{section}.{name}: expected {expected.__name__}, got {value!r}"
    )


def parse_section(section: str, data: Mapping[str, Any] | None):
    """Parse one top-level section into its dataclass."""
    cls = _SECTIONS[section]
    data = data or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{section}: expected a mapping, got {data!r}")

    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ValueError(f"{section}: unknown keys {', '.join(unknown)}")

    types = {"bool": bool, "int": int, "float": float, "str": str}
    values = {
        name: _coerce(section, name, types[known[name].type], value)
        for name, value in data.items()
    }
    return cls(**values)


def validate_settings(settings: WarehouseSettings) -> WarehouseSettings:
    """Range and enum checks that the type coercion cannot express."""
    errors: list[str] = []

    if settings.database.pool_size < 1:
        errors.append("database.pool_size must be at least 1")
    if settings.database.max_overflow < 0:
        errors.append("database.max_overflow must not be negative")
    if settings.retry.max_attempts < 1:
        errors.append("retry.max_attempts must be at least 1")
    if settings.retry.base_delay_seconds < 0:
        errors.append("retry.base_delay_seconds must not be negative")
    if settings.identifiers.max_attempts < 1:
        errors.append("identifiers.max_attempts must be at least 1")
    if settings.delivery.over_delivery.lower() not in _OVER_DELIVERY_MODES:
        errors.append(
            f"delivery.over_delivery must be one of {', '.join(_OVER_DELIVERY_MODES)}"
        )
    if settings.delivery.max_attempts < 1:
        errors.append("delivery.max_attempts must be at least 1")
    if not isinstance(logging.getLevelName(settings.logging.level.upper()), int):
        errors.append(f"logging.level {settings.logging.level!r} is not a logging level")
    try:
        ZoneInfo(settings.reporting.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"reporting.timezone {settings.reporting.timezone!r} is not a known zone")

    if errors:
        raise ValueError(
            "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )
    return settings


def parse_settings(data: Mapping[str, Any]) -> WarehouseSettings:
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown configuration sections: {', '.join(unknown)}")
    return WarehouseSettings(
        **{section: parse_section(section, data.get(section)) for section in _SECTIONS}
    )


def apply_env_overrides(
    settings: WarehouseSettings,
    environ: Mapping[str, str] | None = None,
) -> WarehouseSettings:
    env = os.environ if environ is None else environ
    url = env.get(ENV_DATABASE_URL, "").strip()
    if url:
        settings = replace(settings, database=replace(settings.database, url=url))
    level = env.get(ENV_LOG_LEVEL, "").strip()
    if level:
        settings = replace(settings, logging=replace(settings.logging, level=level.upper()))
    return settings


def load_settings(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> WarehouseSettings:
    """
    Load, override and validate settings.

    ``path`` defaults to ``$WAREHOUSE_CONFIG``, then the packaged
    ``defaults.yaml``.
    """
    env = os.environ if environ is None else environ
    if path is None:
        path = env.get(ENV_CONFIG_PATH) or DEFAULTS_PATH
    settings = parse_settings(load_yaml_file(Path(path)))
    return validate_settings(apply_env_overrides(settings, env))
