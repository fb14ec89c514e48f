"""
WarehouseSettings schema.

The typed form of a warehouse configuration file.  YAML documents are
parsed into these types by the loader and turned into kernel inputs by
the bridges.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///warehouse.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30


@dataclass(frozen=True)
class RetrySettings:
    """Whole-transaction retry used by ``run_in_transaction`` callers."""

    max_attempts: int = 3
    base_delay_seconds: float = 0.05


@dataclass(frozen=True)
class IdentifierSettings:
    unique_id_prefix: str = "UML"
    barcode_prefix: str = "BC"
    max_attempts: int = 8


@dataclass(frozen=True)
class DeliverySettings:
    over_delivery: str = "reject"  # reject | allow
    max_attempts: int = 3
    base_delay_seconds: float = 0.02


@dataclass(frozen=True)
class ReportingSettings:
    timezone: str = "UTC"


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class WarehouseSettings:
    """Complete runtime configuration."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)
    identifiers: IdentifierSettings = field(default_factory=IdentifierSettings)
    delivery: DeliverySettings = field(default_factory=DeliverySettings)
    reporting: ReportingSettings = field(default_factory=ReportingSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
