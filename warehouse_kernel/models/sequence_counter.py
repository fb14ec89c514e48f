"""
Module: warehouse_kernel.models.sequence_counter
Responsibility: Named counters allocated under a row lock by SequenceService
    (barcode serials).
Architecture position: Kernel > Models.  May import from db/ only.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from warehouse_kernel.db.base import Base


class SequenceCounter(Base):
    """One named serial; ``current_value`` is the last value handed out."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
