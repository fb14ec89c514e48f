"""
Kernel policy objects.

Plain frozen values the services are constructed with.  They are built from
configuration by ``warehouse_config.bridges``; the kernel never reads
configuration itself.
"""

from dataclasses import dataclass
from enum import Enum


class OverDeliveryMode(str, Enum):
    """What ``apply_delivery`` does when delivered would exceed total."""

    REJECT = "reject"
    ALLOW = "allow"


@dataclass(frozen=True)
class DeliveryPolicy:
    over_delivery: OverDeliveryMode = OverDeliveryMode.REJECT
    # Savepoint retries of the conditional UPDATE under lock contention
    max_attempts: int = 3
    base_delay_seconds: float = 0.02

    @property
    def caps_at_total(self) -> bool:
        return self.over_delivery == OverDeliveryMode.REJECT


@dataclass(frozen=True)
class IdentifierPolicy:
    unique_id_prefix: str = "UML"
    barcode_prefix: str = "BC"
    max_attempts: int = 8
    suffix_length: int = 4

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_seconds: float = 0.05
