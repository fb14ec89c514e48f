"""
SequenceService -- serial numbers from named counter rows.

Responsibility:
    Hands out strictly increasing serials for barcodes.  Each named
    sequence is one row of ``sequence_counters``; a value is allocated by
    a single ``UPDATE ... SET current_value = current_value + 1 RETURNING``,
    which row-locks the counter until the caller's transaction ends.

Architecture position:
    Kernel > Services.  Called by IdentifierService for the
    ``item_barcode`` sequence.

Invariants enforced:
    - The counter row is the only source of the next value; serials are
      never derived from the highest barcode already stored.
    - The increment belongs to the caller's transaction: a rolled-back
      Scan-In gives its serial back.

Failure modes:
    - IntegrityError on the very first use of a name by two writers at
      once; the loser rolls back its savepoint and increments the row the
      winner created.
"""

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.sequence_counter import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """Does not commit; the caller owns the transaction."""

    ITEM_BARCODE = "item_barcode"

    def __init__(self, session: Session):
        self._session = session

    def _increment(self, sequence_name: str) -> int | None:
        return self._session.execute(
            update(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .values(current_value=SequenceCounter.current_value + 1)
            .returning(SequenceCounter.current_value)
            .execution_options(synchronize_session=False)
        ).scalar_one_or_none()

    def _create(self, sequence_name: str) -> int:
        savepoint = self._session.begin_nested()
        try:
            self._session.add(SequenceCounter(name=sequence_name, current_value=1))
            self._session.flush()
        except IntegrityError:
            savepoint.rollback()
            logger.debug("sequence_counter_race_retry", extra={"sequence_name": sequence_name})
            value = self._increment(sequence_name)
            if value is None:
                raise
            return value
        savepoint.commit()
        return 1

    def next_value(self, sequence_name: str) -> int:
        """Allocate the next serial of ``sequence_name`` (1 on first use)."""
        value = self._increment(sequence_name)
        if value is None:
            value = self._create(sequence_name)
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": value},
        )
        return value

    def current_value(self, sequence_name: str) -> int | None:
        """Last allocated value, or None if the sequence was never used."""
        return self._session.execute(
            select(SequenceCounter.current_value)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
