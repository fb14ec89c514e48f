"""
Config -> Kernel Bridges.

Functions that convert WarehouseSettings into kernel-compatible inputs.
They live in warehouse_config (the producer) because the kernel must
never import warehouse_config.

Usage:
    from warehouse_config import get_settings
    from warehouse_config.bridges import build_delivery_policy, init_engine

    settings = get_settings()
    init_engine(settings)
    service = ScanInService(session, SystemClock(), build_delivery_policy(settings))
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from warehouse_config.schema import WarehouseSettings
from warehouse_kernel.db.engine import init_engine_from_url
from warehouse_kernel.domain.policies import (
    DeliveryPolicy,
    IdentifierPolicy,
    OverDeliveryMode,
    RetryPolicy,
)
from warehouse_kernel.logging_config import configure_logging


def build_delivery_policy(settings: WarehouseSettings) -> DeliveryPolicy:
    delivery = settings.delivery
    return DeliveryPolicy(
        over_delivery=OverDeliveryMode(delivery.over_delivery.lower()),
        max_attempts=delivery.max_attempts,
        base_delay_seconds=delivery.base_delay_seconds,
    )


def build_identifier_policy(settings: WarehouseSettings) -> IdentifierPolicy:
    identifiers = settings.identifiers
    return IdentifierPolicy(
        unique_id_prefix=identifiers.unique_id_prefix,
        barcode_prefix=identifiers.barcode_prefix,
        max_attempts=identifiers.max_attempts,
    )


def build_retry_policy(settings: WarehouseSettings) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.retry.max_attempts,
        base_delay_seconds=settings.retry.base_delay_seconds,
    )


def init_engine(settings: WarehouseSettings) -> Engine:
    """Initialise the kernel's engine from the database settings."""
    db = settings.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
    )


def init_logging(settings: WarehouseSettings) -> None:
    configure_logging(level=settings.logging.level.upper())
