"""
warehouse_config -- runtime settings for the warehouse kernel.

Responsibility:
    Provides ``get_settings()``, which loads the YAML configuration (the
    packaged ``defaults.yaml`` unless a path or ``WAREHOUSE_CONFIG`` says
    otherwise), applies environment overrides and validates the result.

Architecture position:
    Configuration.  This package sits above ``warehouse_kernel``; the
    kernel MUST NEVER import from ``warehouse_config``.  ``bridges``
    translates settings into kernel policy objects.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- schema or range validation failures.
"""

from __future__ import annotations

import logging
from pathlib import Path

from warehouse_config.loader import load_settings
from warehouse_config.schema import WarehouseSettings

_logger = logging.getLogger("warehouse_kernel.config")


def get_settings(path: Path | str | None = None) -> WarehouseSettings:
    """Load and validate the active settings."""
    settings = load_settings(path)
    _logger.info(
        "warehouse_config_loaded",
        extra={
            "source": str(path) if path is not None else "default",
            "dialect": settings.database.url.split(":", 1)[0],
            "over_delivery": settings.delivery.over_delivery,
            "reporting_timezone": settings.reporting.timezone,
        },
    )
    return settings


__all__ = ["WarehouseSettings", "get_settings"]
